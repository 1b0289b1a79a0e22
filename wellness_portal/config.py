import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wellness_portal.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Web API key used for the Identity Toolkit REST endpoints (account creation)
FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY")
FIREBASE_HTTP_TIMEOUT = float(os.getenv("FIREBASE_HTTP_TIMEOUT", "10"))

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "wellness-portal")

# Scheduling
# Operating window and slot cadence are interpreted in the centre's local time
CENTRE_TIMEZONE = os.getenv("CENTRE_TIMEZONE", "Africa/Johannesburg")
DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "South Africa")

# Frontend base URL for redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
