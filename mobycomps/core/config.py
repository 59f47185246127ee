import os


def get_secret(secret_name: str) -> str | None:
    secret_path = f'/run/secrets/{secret_name}'
    try:
        with open(secret_path, 'r', encoding='utf-8') as secret_file:
            return secret_file.read().strip()
    except IOError:
        return os.getenv(secret_name)


class ConfigError(RuntimeError):
    pass


DB_PASSWORD = get_secret('db_password')
SECRET_KEY = get_secret('secret_key')
ADMIN_PASSWORD = get_secret('admin_password')
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

POSTGRES_DB = os.getenv("POSTGRES_DB")
POSTGRES_USER = os.getenv("POSTGRES_USER")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


def build_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if POSTGRES_USER and DB_PASSWORD and POSTGRES_DB:
        return f"postgresql+asyncpg://{POSTGRES_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{POSTGRES_DB}"
    raise ConfigError("Can't build DATABASE_URL")


DATABASE_URL = build_database_url()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30
JWT_ISSUER = "mobycomps-api"
JWT_AUDIENCE = "mobycomps-web"

# Reservations
HOLD_MINUTES = int(os.getenv("HOLD_MINUTES", "15"))
SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "60"))
SWEEP_BATCH = int(os.getenv("SWEEP_BATCH", "5000"))
TICKET_INSERT_BATCH = 1000
SESSION_HEADER = "X-Session-ID"

CURRENCY = os.getenv("CURRENCY", "GBP")

AUDIT_STREAM = os.getenv("AUDIT_STREAM", "audit:events")
AUDIT_GROUP = os.getenv("AUDIT_GROUP", "audit-g1")
AUDIT_BATCH = int(os.getenv("AUDIT_BATCH", "200"))
AUDIT_BLOCK_MS = int(os.getenv("AUDIT_BLOCK_MS", "5000"))
