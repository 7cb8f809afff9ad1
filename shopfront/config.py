from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../shopfront repo root
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        raise RuntimeError(f"{keys[0]} must be an integer, got {v!r}") from None


def _get_float(*keys: str, default: float | None = None) -> float | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        raise RuntimeError(f"{keys[0]} must be a number, got {v!r}") from None


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    api_url: str
    order_service_url: str
    db_path: str
    currency: str
    decimals: int
    http_timeout: float
    session_cookie: str
    log_level: str
    host: str
    port: int


_api_url = (_get_env("API_URL", "NEXT_PUBLIC_API_URL", default="http://localhost:5002") or "").rstrip("/")

settings = Settings(
    api_url=_api_url,
    order_service_url=(_get_env("ORDER_SERVICE_URL", default=_api_url) or "").rstrip("/"),
    db_path=_get_path("DB_PATH", "DATABASE_PATH", default=str(ROOT_DIR / "data" / "sessions.db")),
    currency=_get_env("CURRENCY", default="USD") or "USD",
    decimals=_get_int("DECIMALS", default=2),
    http_timeout=_get_float("HTTP_TIMEOUT", default=10.0),
    session_cookie=_get_env("SESSION_COOKIE", default="shopfront_sid") or "shopfront_sid",
    log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
    host=_get_env("HOST", default="127.0.0.1") or "127.0.0.1",
    port=_get_int("PORT", default=8000) or 8000,
)

if not settings.api_url.startswith(("http://", "https://")):
    raise RuntimeError("API_URL must be an http(s) URL. Set API_URL in .env")
if settings.decimals is None or settings.decimals < 0:
    raise RuntimeError("DECIMALS must be >= 0")
if settings.http_timeout is not None and settings.http_timeout <= 0:
    raise RuntimeError("HTTP_TIMEOUT must be > 0")
