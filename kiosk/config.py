"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    APP_NAME: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    ADMIN_USERNAME: str
    ADMIN_PASSWORD: str
    PAGE_SIZE_DEFAULT: int
    PAGE_SIZE_MAX: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.APP_NAME = os.getenv("APP_NAME", "kioskApp")
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'kiosk.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "")
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
        self.PAGE_SIZE_DEFAULT = int(os.getenv("PAGE_SIZE_DEFAULT", "20"))
        self.PAGE_SIZE_MAX = int(os.getenv("PAGE_SIZE_MAX", "2000"))
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.PAGE_SIZE_DEFAULT < 1 or self.PAGE_SIZE_MAX < self.PAGE_SIZE_DEFAULT:
            raise RuntimeError("PAGE_SIZE_DEFAULT must be >= 1 and <= PAGE_SIZE_MAX")


settings = Settings()
