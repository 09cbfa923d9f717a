"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    BCRYPT_ROUNDS: int
    SESSION_TTL_HOURS: int
    SESSION_COOKIE_NAME: str
    COOKIE_SECURE: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'studyhub.db'}")
        self.BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
        self.SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "studyhub_session")
        # not Secure by default so plain-http local deployments keep working
        self.COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_HOURS * 3600

    def _validate(self):
        if self.ENV not in ("dev", "test") and self.BCRYPT_ROUNDS < 12:
            raise RuntimeError("BCRYPT_ROUNDS must be at least 12 outside dev/test environments")
        if self.SESSION_TTL_HOURS <= 0:
            raise RuntimeError("SESSION_TTL_HOURS must be positive")


settings = Settings()
