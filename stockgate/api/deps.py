"""
Stockgate — Shared FastAPI dependencies
"""
import secrets
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockgate.core.config import get_settings
from stockgate.core.rate_guard import CheckoutRateGuard
from stockgate.core.redis_client import get_redis
from stockgate.db.admission import OrderAdmissionPipeline
from stockgate.db.database import get_ledger_sessions

settings = get_settings()


def get_pipeline(
    ledger_sessions: async_sessionmaker[AsyncSession] = Depends(get_ledger_sessions),
) -> OrderAdmissionPipeline:
    return OrderAdmissionPipeline(ledger_sessions)


def get_rate_guard() -> CheckoutRateGuard:
    return CheckoutRateGuard(get_redis(), settings.CHECKOUT_COOLDOWN_SECONDS)


async def require_service_token(x_service_token: str | None = Header(None)) -> None:
    """Only internal callers holding the ledger token may run the decrementer."""
    if not x_service_token or not secrets.compare_digest(x_service_token, settings.LEDGER_SERVICE_TOKEN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Service token required.")
