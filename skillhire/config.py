"""
Application settings.

Values come from the environment; a ``.env`` file next to the project root is
loaded first with python-dotenv.
"""
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Request
from pydantic import BaseModel

# skillhire/ -> project root
ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    """Runtime configuration, built once at startup."""

    environment: str = "development"  # development, staging, production
    debug: bool = False

    # MongoDB
    mongo_uri: Optional[str] = None
    database_name: str = "skillhire"

    # URLs
    allowed_origins: List[str] = []
    app_url: str = "http://localhost:3000"
    public_base_url: str = "http://localhost:8000"

    # Clerk (identity provider)
    clerk_jwt_key: Optional[str] = None
    clerk_jwt_algorithm: str = "RS256"
    clerk_secret_key: Optional[str] = None
    clerk_api_url: str = "https://api.clerk.com/v1"

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None

    # Lemon Squeezy
    lemonsqueezy_api_key: Optional[str] = None
    lemonsqueezy_store_id: Optional[str] = None
    lemonsqueezy_webhook_secret: Optional[str] = None
    lemonsqueezy_basic_variant_id: Optional[str] = None
    lemonsqueezy_premium_variant_id: Optional[str] = None

    payments_test_mode: bool = False

    # Remote jobs feed
    remote_jobs_url: str = "https://remotive.com/api/remote-jobs"

    # Uploads
    max_upload_mb: int = 5

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.environment in ("production", "staging")

    @classmethod
    def from_env(cls) -> "Settings":
        """Load ``.env`` (if present) and read every setting from the environment."""
        if ENV_PATH.exists():
            load_dotenv(dotenv_path=ENV_PATH)
        else:
            load_dotenv()

        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            debug=_env_bool("DEBUG"),
            mongo_uri=os.getenv("MONGO_URI"),
            database_name=os.getenv("DATABASE_NAME", "skillhire"),
            allowed_origins=_env_list("ALLOWED_ORIGINS"),
            app_url=os.getenv("APP_URL", "http://localhost:3000"),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000"),
            clerk_jwt_key=os.getenv("CLERK_JWT_KEY"),
            clerk_jwt_algorithm=os.getenv("CLERK_JWT_ALGORITHM", "RS256"),
            clerk_secret_key=os.getenv("CLERK_SECRET_KEY"),
            clerk_api_url=os.getenv("CLERK_API_URL", "https://api.clerk.com/v1"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
            lemonsqueezy_api_key=os.getenv("LEMONSQUEEZY_API_KEY"),
            lemonsqueezy_store_id=os.getenv("LEMONSQUEEZY_STORE_ID"),
            lemonsqueezy_webhook_secret=os.getenv("LEMONSQUEEZY_WEBHOOK_SECRET"),
            lemonsqueezy_basic_variant_id=os.getenv("LEMONSQUEEZY_BASIC_VARIANT_ID"),
            lemonsqueezy_premium_variant_id=os.getenv("LEMONSQUEEZY_PREMIUM_VARIANT_ID"),
            payments_test_mode=_env_bool("PAYMENTS_TEST_MODE"),
            remote_jobs_url=os.getenv("REMOTE_JOBS_URL", "https://remotive.com/api/remote-jobs"),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "5")),
        )

    def validate_for_startup(self) -> None:
        """Fail loud on settings the running service cannot do without."""
        if not self.mongo_uri:
            raise ValueError("MONGO_URI environment variable is not set! Check your .env file.")

        if self.is_production:
            if self.stripe_secret_key and not self.stripe_webhook_secret:
                raise ValueError("STRIPE_WEBHOOK_SECRET must be set when Stripe is configured")
            if self.lemonsqueezy_api_key and not self.lemonsqueezy_webhook_secret:
                raise ValueError("LEMONSQUEEZY_WEBHOOK_SECRET must be set when Lemon Squeezy is configured")


def get_settings(request: Request) -> Settings:
    """FastAPI dependency: the settings the app was built with."""
    return request.app.state.settings
