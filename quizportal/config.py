import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv


base_dir = Path(__file__).resolve().parent
load_dotenv(base_dir / ".env", override=False)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    # Default to a writable, ephemeral SQLite path (/tmp); override with DATABASE_URL
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:////tmp/quizportal.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    BCRYPT_LOG_ROUNDS = int(os.getenv("BCRYPT_LOG_ROUNDS", "12"))

    # Admin credentials
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@college.edu")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "change-me-admin")

    # Seed secrets for the per-college quiz settings row; hashed before they are stored
    ADMIN_OVERRIDE_PASSWORD = os.getenv("ADMIN_OVERRIDE_PASSWORD", "admin123")
    EMERGENCY_PASSWORD = os.getenv("EMERGENCY_PASSWORD", "Quiz@123")
    COLLEGE_ID = os.getenv("COLLEGE_ID", "default")

    # Excel export directory
    EXCEL_OUTPUT_DIR = os.getenv("EXCEL_OUTPUT_DIR", "/var/data/exports")

    # Flask-Login settings
    REMEMBER_COOKIE_DURATION = timedelta(hours=6)
    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
    _raw_samesite = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    if _raw_samesite.lower() == "none" and not SESSION_COOKIE_SECURE:
        # Browsers reject SameSite=None without Secure, so fall back to Lax for local dev
        SESSION_COOKIE_SAMESITE = "Lax"
    else:
        SESSION_COOKIE_SAMESITE = _raw_samesite
    REMEMBER_COOKIE_SAMESITE = SESSION_COOKIE_SAMESITE
    REMEMBER_COOKIE_SECURE = SESSION_COOKIE_SECURE

    CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_LOG_ROUNDS = 4
    ADMIN_EMAIL = "admin@test.local"
    ADMIN_PASSWORD = "admin-pass"
    ADMIN_OVERRIDE_PASSWORD = "override-pass"
    EMERGENCY_PASSWORD = "Emergency@1"
    CORS_ORIGIN = "http://localhost:3000"
