import os
from typing import List

from dotenv import load_dotenv

load_dotenv(override=False)

DB_PATH = os.environ.get("DB_PATH", "courses.db")
DATABASE_URL = os.environ.get("DATABASE_URL")
if DATABASE_URL:
    DATABASE_URL = "".join(DATABASE_URL.split())

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development").lower()
DEV_BYPASS_AUTH = (
    ENVIRONMENT == "development"
    and os.environ.get("DEV_BYPASS_AUTH", "true").lower() == "true"
)
DEV_USER_ID = "dev_user"

SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_PUBLISHABLE_KEY = os.environ.get("SUPABASE_PUBLISHABLE_KEY")
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET")

SUPABASE_ANON_KEY = SUPABASE_PUBLISHABLE_KEY or os.environ.get("SUPABASE_ANON_KEY")

ADMIN_RPC_TIMEOUT = float(os.environ.get("ADMIN_RPC_TIMEOUT", "10"))

SLUG_MAX_LENGTH = 50
SLUG_RETRY_ATTEMPTS = 5
MAX_AUTHOR_TONE_LENGTH = 2000

LOCAL_DRAFT_STORAGE_KEY = "courseData"

USER_ROLES = {"user", "admin"}

DASHBOARD_COPY = {
    True: {
        "title": "All courses (admin)",
        "subtitle": "Manage every course on the platform",
        "section": "All platform courses",
    },
    False: {
        "title": "My courses",
        "subtitle": "Manage your courses",
        "section": "Courses from your profile",
    },
}


def get_cors_origins() -> List[str]:
    raw = os.environ.get("CORS_ALLOWED_ORIGINS", "*")
    origins = [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]
    return origins or ["*"]
