"""
Quotes API - price offers per work order, at most one of them final.
"""
from fastapi import APIRouter, status

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal
from shiprepair_erp.schemas.quote import (
    QuoteCreate,
    QuoteUpdate,
    QuoteResponse,
    QuoteListResponse,
)
from shiprepair_erp.services import income_ledger

router = APIRouter()


@router.get("/work-orders/{work_order_id}/quotes", response_model=QuoteListResponse)
async def list_quotes(work_order_id: str, db: DbSession, principal: CurrentPrincipal):
    quotes = await income_ledger.list_quotes(db, principal, work_order_id)
    return QuoteListResponse(items=[QuoteResponse.model_validate(q) for q in quotes])


@router.post(
    "/work-orders/{work_order_id}/quotes",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(work_order_id: str, data: QuoteCreate, db: DbSession, principal: CurrentPrincipal):
    """Create a quote. Passing is_final demotes the current final quote."""
    return await income_ledger.create_quote(db, principal, work_order_id, data)


@router.get("/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(quote_id: str, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.get_quote(db, principal, quote_id)


@router.patch("/quotes/{quote_id}", response_model=QuoteResponse)
async def update_quote(quote_id: str, data: QuoteUpdate, db: DbSession, principal: CurrentPrincipal):
    return await income_ledger.update_quote(db, principal, quote_id, data)


@router.delete("/quotes/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(quote_id: str, db: DbSession, principal: CurrentPrincipal):
    await income_ledger.delete_quote(db, principal, quote_id)
