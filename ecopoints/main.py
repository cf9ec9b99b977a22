import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import Base, engine, ensure_sqlite_schema
from .error_handlers import register_exception_handlers
from .logging_config import setup_logging
from .routers import auth, cashouts, notifications, points, redemptions, rewards, vouchers

setup_logging()

# create tables on startup (for dev)
Base.metadata.create_all(bind=engine)
ensure_sqlite_schema()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
DEFAULT_CORS_REGEX = r"https?://(localhost|127\.0\.0\.1|\d{1,3}(?:\.\d{1,3}){3})(:\d+)?"


def _parse_origin_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


app = FastAPI(
    title="EcoPoints API",
    description="Citizen recycling points, voucher redemptions and the admin points ledger",
    version="0.1.0",
)

cors_origins = _parse_origin_list(os.getenv("CORS_ALLOW_ORIGINS")) or DEFAULT_CORS_ORIGINS
cors_regex = os.getenv("CORS_ALLOW_ORIGIN_REGEX", DEFAULT_CORS_REGEX)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=cors_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(rewards.router)
app.include_router(vouchers.router)
app.include_router(redemptions.router)
app.include_router(points.router)
app.include_router(cashouts.router)
app.include_router(notifications.router)


@app.get("/")
def root():
    return {
        "message": "EcoPoints API is running.",
        "docs_url": "/docs",
        "health_check": "/health",
    }


@app.get("/health")
def health():
    return {"ok": True}
