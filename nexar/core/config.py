import os
from pathlib import Path


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            key = key.strip()
            if not key or key in os.environ:
                continue
            cleaned = value.strip().strip('"').strip("'")
            os.environ[key] = cleaned
    except OSError:
        return


def _load_env() -> None:
    current = Path(__file__).resolve()
    for candidate in (current.parents[2] / ".env", Path.cwd() / ".env"):
        _load_env_file(candidate)


_load_env()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _normalize_cors(origins: str) -> list[str]:
    items: list[str] = []
    for raw in origins.split(","):
        value = raw.strip()
        if value and value not in items:
            items.append(value)
    return items


def _default_database_url() -> str:
    explicit_path = os.getenv("NEXAR_DB_PATH", "").strip()
    if explicit_path:
        return f"sqlite:///{Path(explicit_path).as_posix()}"
    backend_root = Path(__file__).resolve().parents[2]
    return f"sqlite:///{(backend_root / 'nexar.db').as_posix()}"


RECORD_STORE_BACKEND = os.getenv("RECORD_STORE_BACKEND", "sql").strip().lower() or "sql"
DATABASE_URL = os.getenv("DATABASE_URL", _default_database_url())
DATA_DIR = os.getenv("DATA_DIR", "./data")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-prod")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))
PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "6"))
PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "15"))
ADMIN_SECRET = os.getenv("ADMIN_SECRET", "")

FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "http://localhost:5000").rstrip("/")

_DEFAULT_CORS_ORIGINS = (
    "http://localhost:5000,http://localhost:5173,http://127.0.0.1:5000,http://127.0.0.1:5173"
)
CORS_ORIGINS = _normalize_cors(os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS))

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY", "")
STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION", "2023-10-16")
WALLET_CURRENCY = os.getenv("WALLET_CURRENCY", "gbp").strip().lower() or "gbp"
WALLET_MIN_DEPOSIT = int(os.getenv("WALLET_MIN_DEPOSIT", "5"))
WALLET_MAX_DEPOSIT = int(os.getenv("WALLET_MAX_DEPOSIT", "100"))
NEXAR_PLUS_PRICE = float(os.getenv("NEXAR_PLUS_PRICE", "4.99"))

RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
EMAIL_FROM = os.getenv("EMAIL_FROM", "NexarOS <hello@nexargames.co.uk>")
EMAIL_REQUEST_TIMEOUT_SECONDS = int(os.getenv("EMAIL_REQUEST_TIMEOUT_SECONDS", "10"))
EMAILS_ENABLED = _env_flag("EMAILS_ENABLED", "true")
