import os
from dotenv import load_dotenv

load_dotenv()

ORIGINS = os.getenv("ORIGINS", "http://localhost:5173").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_database_url() -> str:
    """Return the store connection string.

    Raises:
        RuntimeError: If DATABASE_URL is not defined (fatal at startup).
    """
    url = (os.getenv("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("Please define the DATABASE_URL environment variable (or put it in .env)")
    return url


def get_operator_secret() -> str:
    return os.getenv("OPERATOR_SECRET", "")


def get_bcrypt_rounds() -> int:
    try:
        return int(os.getenv("BCRYPT_ROUNDS", "12"))
    except ValueError:
        return 12
