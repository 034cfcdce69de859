"""
Ledger API Endpoints.

Per-profile running-balance ledgers with TDS-aware totals.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, Path
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.dependencies import get_current_user
from paylog.app.db.session import get_db
from paylog.app.domain.ledger.ledger_service import LedgerService, export_ledger_csv
from paylog.app.schemas.ledger import (
    LedgerEntryType, LedgerFilters, LedgerProfileOption, LedgerResponse, LedgerSummary
)

router = APIRouter(prefix="/ledger", tags=["Ledger"])


def ledger_filters(
    profile_id: int = Path(..., description="Invoice profile ID"),
    start_date: date = Query(None, description="Invoices dated on or after"),
    end_date: date = Query(None, description="Invoices dated on or before"),
    entry_type: LedgerEntryType = Query(None, description="Show only invoice, payment or credit note entries"),
    search: str = Query(None, max_length=100, description="Invoice number contains")
) -> LedgerFilters:
    return LedgerFilters(
        profile_id=profile_id,
        start_date=start_date,
        end_date=end_date,
        entry_type=entry_type,
        search=search
    )


@router.get("/profiles", response_model=List[LedgerProfileOption])
async def get_ledger_profiles(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Invoice profiles with outstanding balance and unpaid invoice count.
    """
    return await LedgerService.get_ledger_profiles(db)


@router.get("/profiles/{profile_id}", response_model=LedgerResponse)
async def get_ledger_by_profile(
    filters: LedgerFilters = Depends(ledger_filters),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Chronological ledger of a profile.

    Date range and search narrow the invoice set before the ledger is
    built. `entry_type` only hides rows; running balances are unchanged.
    """
    return await LedgerService.get_ledger_by_profile(db, filters)


@router.get("/profiles/{profile_id}/summary", response_model=LedgerSummary)
async def get_ledger_summary(
    profile_id: int = Path(..., description="Invoice profile ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Unfiltered ledger totals of a profile."""
    return await LedgerService.get_ledger_summary(db, profile_id)


@router.get("/profiles/{profile_id}/export")
async def export_ledger(
    filters: LedgerFilters = Depends(ledger_filters),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Ledger entries as CSV, same filters as the ledger view."""
    ledger = await LedgerService.get_ledger_by_profile(db, filters)

    return Response(
        content=export_ledger_csv(ledger),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="ledger-profile-{filters.profile_id}.csv"'}
    )
