"""
Stockgate — Health endpoint

Reports the order database, the ledger database (when the decrementer has its
own connection) and the cooldown store. Any failing dependency turns the
response into a 503 so a load balancer stops routing checkouts here.
"""
import asyncio
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from stockgate.core.config import get_settings
from stockgate.core.redis_client import get_redis
from stockgate.db.database import engine, ledger_engine

settings = get_settings()
router = APIRouter(tags=["health"])


async def _check_engine(target: AsyncEngine) -> str:
    try:
        async with target.connect() as conn:
            await asyncio.wait_for(conn.execute(text("SELECT 1")), timeout=settings.HEALTH_CHECK_TIMEOUT)
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


async def _check_cooldown_store() -> str:
    try:
        await asyncio.wait_for(get_redis().ping(), timeout=settings.HEALTH_CHECK_TIMEOUT)
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health")
async def health_check():
    deps = {"database": await _check_engine(engine)}
    if ledger_engine is not engine:
        deps["ledger"] = await _check_engine(ledger_engine)
    deps["redis"] = await _check_cooldown_store()

    healthy = all(state == "ok" for state in deps.values())
    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "dependencies": deps,
        },
        status_code=200 if healthy else 503,
    )
