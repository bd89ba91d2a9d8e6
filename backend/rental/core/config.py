# backend/rental/core/config.py

from __future__ import annotations

from typing import List

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEV_SECRET = "dev-secret-change-me"
_DEV_ADMIN_PASSWORD = "admin123"


class AdminAccount(BaseModel):
    username: str
    password: str
    name: str


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # -----------------------------
    # Record store / uploads
    # -----------------------------
    DATA_FILE: str = "data.json"
    UPLOADS_DIR: str = "uploads"
    UPLOADS_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_UPLOAD_FILES: int = 5
    ALLOWED_UPLOAD_EXTENSIONS: List[str] = [".jpeg", ".jpg", ".png", ".gif", ".pdf"]

    # -----------------------------
    # JWT
    # -----------------------------
    JWT_SECRET: str = _DEV_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # -----------------------------
    # Accounts
    # -----------------------------
    # JSON list in the environment, e.g.
    # ADMIN_ACCOUNTS='[{"username":"landlord","password":"...","name":"Landlord"}]'
    ADMIN_ACCOUNTS: List[AdminAccount] = [
        AdminAccount(username="admin", password=_DEV_ADMIN_PASSWORD, name="Administrator"),
    ]

    SEED_TENANT_USERNAME: str = "tenant"
    SEED_TENANT_PASSWORD: str = "123456"
    SEED_TENANT_NAME: str = "Test Tenant"
    SEED_TENANT_EMAIL: str = "tenant@example.com"
    SEED_TENANT_PHONE: str = "0911111111"
    SEED_TENANT_ROOM: str = "101"
    SEED_TENANT_RENT: float = 15000

    DEFAULT_BANK_NAME: str = "Yuanta Bank"
    DEFAULT_BRANCH_NAME: str = "Head Office"
    DEFAULT_ACCOUNT_NAME: str = "Guangda City"
    DEFAULT_ACCOUNT_NUMBER: str = "1111-2222-3333"

    # -----------------------------
    # Listings
    # -----------------------------
    PAYMENTS_PAGE_SIZE: int = 10
    IMAGES_PAGE_SIZE: int = 12
    TENANTS_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    DASHBOARD_RECENT_LIMIT: int = 10

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"staging", "production"}

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        # Never run staging/production with placeholder credentials.
        if self.is_production_like:
            if not self.JWT_SECRET or self.JWT_SECRET.strip() == _DEV_SECRET:
                raise ValueError("JWT_SECRET must be set to a strong value in staging/production.")
            if len(self.JWT_SECRET.strip()) < 32:
                raise ValueError("JWT_SECRET is too short; use at least 32 characters in staging/production.")
            if any(a.password == _DEV_ADMIN_PASSWORD for a in self.ADMIN_ACCOUNTS):
                raise ValueError("ADMIN_ACCOUNTS still uses the development password.")

        if self.JWT_ALGORITHM not in {"HS256"}:
            raise ValueError(f"Unsupported JWT_ALGORITHM={self.JWT_ALGORITHM!r}. Allowed: HS256")

        if self.MAX_PAGE_SIZE < 1:
            raise ValueError("MAX_PAGE_SIZE must be positive.")


settings = Settings()
