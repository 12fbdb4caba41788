# techshop/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("TECHSHOP_DATABASE_URL", "sqlite+aiosqlite:///./techshop.db")
SQL_ECHO = _flag("TECHSHOP_SQL_ECHO")

SECRET_KEY = os.getenv("TECHSHOP_SECRET_KEY", "techshop-development-secret-key-change-me")
SESSION_SECRET = os.getenv("TECHSHOP_SESSION_SECRET", SECRET_KEY)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("TECHSHOP_TOKEN_EXPIRE_MINUTES", "30"))

# Conditional stock decrement at checkout instead of the plain subtraction
STRICT_STOCK = _flag("TECHSHOP_STRICT_STOCK")

LOG_LEVEL = os.getenv("TECHSHOP_LOG_LEVEL", "INFO").upper()

# Fill an empty catalog with demo products on startup
SEED_DEMO = _flag("TECHSHOP_SEED_DEMO")
