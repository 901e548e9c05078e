# budget_api/config.py
from __future__ import annotations
import os
from typing import List

# ------------------------------- Store -----------------------------------
# "memory" keeps the tree in-process; "sql" persists it through SQLAlchemy
STORE_BACKEND = os.getenv("BUDGET_STORE", "memory").lower()

DEFAULT_DBNAME = os.getenv("PGDATABASE", "presupuestos")
DEFAULT_USER   = os.getenv("PGUSER", "postgres")
DEFAULT_PASS   = os.getenv("PGPASSWORD", "postgres")
DEFAULT_HOST   = os.getenv("PGHOST", "localhost")
DEFAULT_PORT   = int(os.getenv("PGPORT", "5432"))

def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    return (
        f"postgresql+psycopg2://{DEFAULT_USER}:{DEFAULT_PASS}"
        f"@{DEFAULT_HOST}:{DEFAULT_PORT}/{DEFAULT_DBNAME}"
    )

# ------------------------------- Auth ------------------------------------
SECRET_KEY    = os.getenv("SECRET_KEY", "dev-secret-change-me")
TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", "3600"))  # segundos

def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]

ADMIN_EMAILS = [e.lower() for e in _split(os.getenv("ADMIN_EMAILS", ""))]

# ------------------------------- HTTP ------------------------------------
CORS_ORIGINS = _split(os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"))
