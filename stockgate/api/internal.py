"""
Stockgate — Internal ledger RPC

POST /internal/stock/decrement takes a JSON array of {id, quantity} and applies
it as one batch. Callers must present the ledger service token.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockgate.api.deps import require_service_token
from stockgate.core.errors import DecrementFailure, GENERIC_RETRY_MESSAGE
from stockgate.db.database import get_ledger_sessions
from stockgate.db.stock_ops import run_decrement
from stockgate.schemas.inventory import DecrementEntry

router = APIRouter(prefix="/internal", tags=["internal"], dependencies=[Depends(require_service_token)])


@router.post("/stock/decrement", status_code=status.HTTP_204_NO_CONTENT)
async def decrement_stock(
    entries: list[DecrementEntry],
    ledger_sessions: async_sessionmaker[AsyncSession] = Depends(get_ledger_sessions),
):
    try:
        await run_decrement(ledger_sessions, [(e.id, e.quantity) for e in entries])
    except DecrementFailure:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=GENERIC_RETRY_MESSAGE)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
