import os
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()


class Settings:
    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent.parent.parent
        self.APP_NAME: str = os.getenv("APP_NAME", "EquipTrak API")
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
        self.ACCESS_TOKEN_EXPIRE_HOURS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))
        self.ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
        self.SQLALCHEMY_DATABASE_URI: str = os.getenv(
            "SQLALCHEMY_DATABASE_URI",
            f"sqlite:///{(base_dir / 'equiptrak.db').as_posix()}",
        )
        self.ENV: str = os.getenv("ENV", "development")

        self.CERTIFICATE_PREFIX: str = os.getenv("CERTIFICATE_PREFIX", "BWS")
        self.CERTIFICATE_START: int = int(os.getenv("CERTIFICATE_START", "1000"))

        # Client side
        self.API_BASE_URL: str = os.getenv("EQUIPTRAK_API_BASE_URL", "http://127.0.0.1:8000")
        self.API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "30"))
        self.SESSION_FILE: str = os.getenv(
            "EQUIPTRAK_SESSION_FILE",
            str(Path.home() / ".equiptrak" / "session.json"),
        )
        self.LOGIN_PATH: str = os.getenv("LOGIN_PATH", "/login")

        # the web frontend dev server runs on port 3000
        cors_origins = os.getenv("BACKEND_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
        self.BACKEND_CORS_ORIGINS: List[str] = [item.strip() for item in cors_origins.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
