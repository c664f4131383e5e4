# backend/backoffice/config.py
from __future__ import annotations
import os


def _csv(value: str) -> set[str]:
    return {part.strip() for part in value.split(",") if part.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Dotted paths ("module:attr") to the external collaborators
    IDENTITY_VERIFIER = os.environ.get("IDENTITY_VERIFIER")
    PUSH_TRANSPORT = os.environ.get("PUSH_TRANSPORT")

    DEVICE_TOKEN_RETENTION_DAYS = int(os.environ.get("DEVICE_TOKEN_RETENTION_DAYS", "60"))
    CUSTOMERS_PER_PAGE = int(os.environ.get("CUSTOMERS_PER_PAGE", "5"))

    CORS_ALLOWED_ORIGINS = _csv(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))
