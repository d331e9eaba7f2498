import logging
import time
from pathlib import Path
from typing import Any

from alembic.config import Config
from alembic.script import ScriptDirectory
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter()
logger = logging.getLogger(__name__)

_HEADS_CACHE: dict[str, Any] = {"timestamp": 0.0, "heads": None, "skip_reason": None}
_HEADS_CACHE_TTL_SECONDS = 60


def _expected_heads() -> tuple[list[str] | None, str | None]:
    """Return ``(heads, skip_reason)`` for the packaged Alembic scripts.

    Deployments without migration files report ``skipped_no_alembic_files``
    and are treated as current.
    """
    now = time.monotonic()
    if now - _HEADS_CACHE["timestamp"] < _HEADS_CACHE_TTL_SECONDS:
        return _HEADS_CACHE["heads"], _HEADS_CACHE["skip_reason"]

    repo_root = Path(__file__).resolve().parents[2]
    alembic_ini = repo_root / "alembic.ini"
    script_location = repo_root / "alembic"
    heads: list[str] | None
    skip_reason: str | None
    if not alembic_ini.exists() or not script_location.exists():
        heads, skip_reason = None, "skipped_no_alembic_files"
    else:
        try:
            cfg = Config(str(alembic_ini))
            cfg.set_main_option("script_location", str(script_location))
            heads, skip_reason = list(ScriptDirectory.from_config(cfg).get_heads()), None
        except Exception as exc:  # noqa: BLE001
            logger.warning("migrations_check_error_loading_alembic", extra={"extra": {"error": str(exc)}})
            heads, skip_reason = [], "error_loading_alembic"

    _HEADS_CACHE.update({"timestamp": now, "heads": heads, "skip_reason": skip_reason})
    return heads, skip_reason


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


async def _current_revision(session) -> str | None:
    try:
        result = await session.execute(text("SELECT version_num FROM alembic_version"))
    except SQLAlchemyError:
        return None
    row = result.first()
    return row[0] if row else None


async def _database_status(request: Request) -> dict[str, Any]:
    session_factory = getattr(request.app.state, "db_session_factory", None)
    expected_heads, skip_reason = _expected_heads()
    status: dict[str, Any] = {
        "ok": False,
        "migrations_current": False,
        "current_version": None,
        "expected_heads": expected_heads or [],
        "migrations_check": skip_reason or "not_run",
    }
    if session_factory is None:
        status["message"] = "database session factory unavailable"
        return status

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            current_version = await _current_revision(session)
    except Exception as exc:  # noqa: BLE001
        logger.debug("database_check_failed", exc_info=exc)
        status.update({"message": "database check failed", "error": exc.__class__.__name__})
        return status

    if skip_reason == "skipped_no_alembic_files":
        migrations_current = True
    elif not expected_heads:
        migrations_current = False
    else:
        migrations_current = current_version in expected_heads

    status.update(
        {
            "ok": True,
            "message": "database reachable",
            "migrations_current": migrations_current,
            "current_version": current_version,
            "migrations_check": skip_reason or "ok",
        }
    )
    return status


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    database = await _database_status(request)
    overall_ok = bool(database.get("ok")) and bool(database.get("migrations_current"))
    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={"status": "ok" if overall_ok else "unhealthy", "database": database},
    )
