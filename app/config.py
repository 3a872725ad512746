import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ekah.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Web API key is only needed for email/password sign-in through the Identity Toolkit REST API
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "EkahHealth <hello@ekah.life>")
BOOKINGS_FROM_ADDRESS = os.getenv("BOOKINGS_FROM_ADDRESS", "EkahHealth Bookings <bookings@ekah.life>")
# Receives a copy of every booking notification
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@ekah.life")

# Account promoted to admin when the system is first initialized
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL")

# Meeting links (Jitsi by default, no account needed)
MEETING_BASE_URL = os.getenv("MEETING_BASE_URL", "https://meet.jit.si").rstrip("/")
MEETING_ROOM_PREFIX = os.getenv("MEETING_ROOM_PREFIX", "EkahHealth")

# Consultation rooms
MESSAGE_MAX_LENGTH = int(os.getenv("MESSAGE_MAX_LENGTH", "5000"))
MESSAGE_RATE_LIMIT = int(os.getenv("MESSAGE_RATE_LIMIT", "30"))  # per minute per user

# Outbound HTTP calls (Firebase, Google certs)
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))

# Redis backs rate limiting and the catalog cache; both degrade gracefully without it
REDIS_ENABLED = os.getenv("REDIS_ENABLED", "true").lower() == "true"
CATALOG_CACHE_TTL = int(os.getenv("CATALOG_CACHE_TTL", "300"))
