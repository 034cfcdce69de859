"""
TDS API Endpoints.

TDS calculator preview and the monthly TDS report.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from paylog.app.core.dependencies import get_current_user
from paylog.app.db.session import get_db
from paylog.app.domain.ledger.tds_calculator import calculate_tds
from paylog.app.domain.ledger.tds_report import TdsReportService, export_tds_report_csv
from paylog.app.schemas.tds import TdsCalculateRequest, TdsCalculateResponse, TdsReportResponse

router = APIRouter(prefix="/tds", tags=["TDS"])


@router.post("/calculate", response_model=TdsCalculateResponse)
async def calculate(
    request: TdsCalculateRequest,
    current_user: dict = Depends(get_current_user)
):
    """
    Preview TDS and payable amount for a gross amount.

    Out-of-range input returns 400 ERR_INVALID_ARGUMENT.
    """
    result = calculate_tds(request.gross_amount, request.tds_percentage, request.round_to_whole)

    return TdsCalculateResponse(
        gross_amount=request.gross_amount,
        tds_percentage=request.tds_percentage,
        tds_amount=result.tds_amount,
        payable_amount=result.payable_amount,
        exact_tds=result.exact_tds,
        is_rounded=result.is_rounded,
        rounding_difference=result.tds_amount - result.exact_tds
    )


@router.get("/report", response_model=TdsReportResponse)
async def monthly_report(
    year: int = Query(..., ge=2000, le=9999),
    month: int = Query(..., ge=1, le=12),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    TDS deducted on the month's invoices and reversed by its credit notes.
    """
    return await TdsReportService.build_monthly_report(db, year, month)


@router.get("/report/export")
async def export_monthly_report(
    year: int = Query(..., ge=2000, le=9999),
    month: int = Query(..., ge=1, le=12),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Monthly TDS report as CSV."""
    report = await TdsReportService.build_monthly_report(db, year, month)

    return Response(
        content=export_tds_report_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="tds-report-{year:04d}-{month:02d}.csv"'}
    )
