from __future__ import annotations

import argparse

from ecopoints.db import Base, SessionLocal, engine
from ecopoints.models import User
from ecopoints.security import ADMIN_ROLE, get_password_hash


def bootstrap_admin(email: str, password: str, full_name: str | None = None, session_factory=SessionLocal) -> User:
    session = session_factory()
    try:
        user = session.query(User).filter(User.email == email.strip().lower()).first()
        hashed = get_password_hash(password)
        name = full_name or email.split("@")[0]
        if user:
            user.role = ADMIN_ROLE
            user.hashed_password = hashed
            user.full_name = name
        else:
            user = User(
                email=email.strip().lower(),
                hashed_password=hashed,
                full_name=name,
                role=ADMIN_ROLE,
                points_balance=0,
            )
            session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="Create or promote an admin user.")
    parser.add_argument("--email", required=True, help="Email address for the admin account")
    parser.add_argument(
        "--password",
        required=True,
        help="Plain-text password that will be hashed before storing",
    )
    parser.add_argument("--name", default=None, help="Optional display name override")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    user = bootstrap_admin(args.email, args.password, args.name)
    print(f"Admin ready: {user.email} (id={user.id})")


if __name__ == "__main__":
    main()
