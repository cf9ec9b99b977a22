from __future__ import annotations

from ecopoints import models
from ecopoints.db import Base, SessionLocal, engine
from ecopoints.logging_config import setup_logging
from ecopoints.security import CITIZEN_ROLE, get_password_hash
from ecopoints.services.badges import seed_default_badges
from ecopoints.services.ledger import grant_points

SEED_USER = {
    "email": "demo@ecopoints.local",
    "password": "recycle-demo",
    "full_name": "Demo Resident",
    "starting_points": 120,
}

VOUCHERS = [
    {
        "partner_name": "Green Grocer",
        "title": "10% off fresh produce",
        "description": "One-time discount on fruit and vegetables at any Green Grocer branch.",
        "points_required": 40,
        "quantity": 25,
    },
    {
        "partner_name": "City Transit",
        "title": "Free day bus pass",
        "description": "Unlimited rides on city buses for one calendar day.",
        "points_required": 60,
        "quantity": 10,
    },
    {
        "partner_name": "Repair Cafe",
        "title": "Small appliance repair",
        "description": "Labour for one small appliance repair at the community Repair Cafe.",
        "points_required": 150,
        "quantity": 3,
    },
]


def main() -> None:
    setup_logging(fmt="plain")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = db.query(models.User).filter(models.User.email == SEED_USER["email"]).first()
        if not user:
            user = models.User(
                email=SEED_USER["email"],
                hashed_password=get_password_hash(SEED_USER["password"]),
                full_name=SEED_USER["full_name"],
                role=CITIZEN_ROLE,
                points_balance=0,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            grant_points(db, user.id, SEED_USER["starting_points"], "Welcome bonus")

        existing_titles = {row.title for row in db.query(models.Voucher.title).all()}
        created = 0
        for payload in VOUCHERS:
            if payload["title"] in existing_titles:
                continue
            db.add(models.Voucher(status=models.VOUCHER_ACTIVE, **payload))
            created += 1

        db.commit()
        badges_added = seed_default_badges(db)
        print(f"Seeded {created} vouchers and {badges_added} badges (user: {user.email}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
