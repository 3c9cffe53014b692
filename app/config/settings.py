# app/config/settings.py
# Application settings loaded from the environment

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Runtime configuration for the task manager service"""

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./task_manager.db")
    DB_SSLMODE = os.getenv("DB_SSLMODE")

    # Tokens
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))
    RELOAD = os.getenv("RELOAD", "true").lower() == "true"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    SERVICE_NAME = os.getenv("SERVICE_NAME", "employee-productivity-backend")

    # Bootstrap admin
    DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")

    @classmethod
    def get_cors_origins(cls) -> List[str]:
        """Allowed CORS origins, FRONTEND_URL first"""
        origins = [os.getenv("FRONTEND_URL", "http://localhost:3000")]
        extra = os.getenv("CORS_ORIGINS", "")
        for origin in extra.split(","):
            origin = origin.strip()
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    @classmethod
    def get_connect_args(cls) -> dict:
        """Driver specific connect arguments for DATABASE_URL"""
        if cls.DATABASE_URL.startswith("sqlite"):
            return {"check_same_thread": False}
        if cls.DB_SSLMODE:
            return {"sslmode": cls.DB_SSLMODE}
        return {}


settings = Settings()
