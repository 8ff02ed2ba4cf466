import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

SECRET_KEY: str = os.getenv("SECRET_KEY", "curriculum-lifecycle-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

# Database (backend/data/ by default)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "curriculum.db"),
)
MIGRATIONS_DIR: str = os.path.join(BACKEND_DIR, "migrations")

# Seconds a writer waits on the store lock before giving up
DB_BUSY_TIMEOUT_SECONDS: float = float(os.getenv("DB_BUSY_TIMEOUT_SECONDS", "5"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# List endpoints
DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "200"))

# Seeded administrator
ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin")
