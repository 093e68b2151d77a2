"""
Application configuration with automatic environment detection
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

class Settings:
    """Application settings with automatic environment detection"""

    # Environment detection
    ENV = os.getenv("ENV", "DEV").upper()
    IS_PRODUCTION = ENV == "PROD" or ENV == "PRODUCTION"
    IS_DEVELOPMENT = not IS_PRODUCTION

    # Render sets RENDER=true, Heroku sets DYNO, Railway sets RAILWAY_ENVIRONMENT
    RENDER = os.getenv("RENDER", "").lower() == "true"
    HEROKU = bool(os.getenv("DYNO"))
    RAILWAY = bool(os.getenv("RAILWAY_ENVIRONMENT"))
    IS_CLOUD = RENDER or HEROKU or RAILWAY

    # Server configuration
    HOST = os.getenv("HOST", "0.0.0.0" if IS_CLOUD else "127.0.0.1")
    PORT = int(os.getenv("PORT", 8000))

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./labelsync.db")

    # Authentication (tokens are issued by the auth provider; we only verify them)
    JWT_SECRET = os.getenv("JWT_SECRET", "supersecret_fallback_key_change_in_production")
    AUTH_ALGORITHM = os.getenv("AUTH_ALGORITHM", "HS256")

    # Encryption for stored marketplace credentials
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "your-32-character-encryption-key!!")

    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        """Get allowed CORS origins from the comma-separated ALLOWED_ORIGINS env var"""
        origins = []
        if self.IS_DEVELOPMENT:
            origins.extend([
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ])
        env_origins = os.getenv("ALLOWED_ORIGINS", "")
        for origin in env_origins.split(","):
            origin = origin.strip()
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    @property
    def CORS_ORIGIN_REGEX(self) -> Optional[str]:
        regex = os.getenv("CORS_ORIGIN_REGEX", "")
        if regex:
            return regex
        if self.IS_DEVELOPMENT:
            return r"http://localhost:\d+|http://127\.0\.0\.1:\d+"
        return None

    # Veeqo
    VEEQO_API_BASE = os.getenv("VEEQO_API_BASE", "https://api.veeqo.com")
    VEEQO_PAGE_SIZE = int(os.getenv("VEEQO_PAGE_SIZE", "250"))

    # Trendyol (max 14 days per request window upstream)
    TRENDYOL_API_BASE = os.getenv("TRENDYOL_API_BASE", "https://apigw.trendyol.com/integration/order/sellers")
    TRENDYOL_PAGE_SIZE = int(os.getenv("TRENDYOL_PAGE_SIZE", "200"))
    TRENDYOL_LOOKBACK_DAYS = int(os.getenv("TRENDYOL_LOOKBACK_DAYS", "14"))

    # Shippo
    SHIPPO_API_BASE = os.getenv("SHIPPO_API_BASE", "https://api.goshippo.com")
    SHIPPO_PAGE_SIZE = int(os.getenv("SHIPPO_PAGE_SIZE", "100"))

    # Per-marketplace fetch timeout applied by the order sync
    MARKETPLACE_FETCH_TIMEOUT_SEC = float(os.getenv("MARKETPLACE_FETCH_TIMEOUT_SEC", "60"))

    # Google Apps Script label backend
    APPS_SCRIPT_BASE_URL = os.getenv("APPS_SCRIPT_BASE_URL", "https://script.google.com/macros/s")
    APPS_SCRIPT_TIMEOUT_SEC = float(os.getenv("APPS_SCRIPT_TIMEOUT_SEC", "60"))

    # Shipping-info sweep (background loop in main.py)
    SHIPPING_INFO_INTERVAL_SEC = int(os.getenv("SHIPPING_INFO_INTERVAL_SEC", "3600"))
    SHIPPING_INFO_FIRST_DELAY_SEC = int(os.getenv("SHIPPING_INFO_FIRST_DELAY_SEC", "120"))
    SHIPPING_INFO_ENABLED = os.getenv("SHIPPING_INFO_ENABLED", "true").lower() in ("1", "true", "yes")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG")

    # API Configuration
    API_PREFIX = "/api"

    def __str__(self):
        return f"Settings(ENV={self.ENV}, IS_PRODUCTION={self.IS_PRODUCTION}, IS_CLOUD={self.IS_CLOUD})"

# Global settings instance
settings = Settings()
