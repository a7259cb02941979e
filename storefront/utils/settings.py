# storefront/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

BACKEND_API_URL = os.getenv("BACKEND_API_URL", "http://localhost:8000")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 5))

# pusty REDIS_URL -> koszyk i sesja trzymane w pamieci procesu
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CART_STORAGE_KEY = os.getenv("CART_STORAGE_KEY", "beverages_cart")
CART_CONFLICT_ATTEMPTS = int(os.getenv("CART_CONFLICT_ATTEMPTS", 5))

SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", 24*60*60))

TICKER_ENABLED = os.getenv("TICKER_ENABLED", "true").lower() in ("1", "true", "yes")
TICKER_INTERVAL_SECONDS = float(os.getenv("TICKER_INTERVAL_SECONDS", 30))
TICKER_JITTER_SECONDS = float(os.getenv("TICKER_JITTER_SECONDS", 0))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
