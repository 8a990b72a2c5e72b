"""Fund list, search and detail routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fundwatch.api.deps import get_user_id
from fundwatch.api.schemas import FundPageResponse, FundSearchResult, HoldingResponse
from fundwatch.config import (
    DEFAULT_ALLOW_LIST,
    DEFAULT_DENY_LIST,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from fundwatch.models.database import get_db
from fundwatch.models.fund import AnnotatedFundDetail
from fundwatch.services.fund_list import PAGE_UNAVAILABLE, fund_list_service
from fundwatch.services.fund_profile import fund_profile_service
from fundwatch.services.gateway import gateway_client
from fundwatch.services.reconcile import reconcile_for_user
from fundwatch.services.user_funds import favorite_service, monitor_service

router = APIRouter(prefix="/api/funds", tags=["funds"])

UNAVAILABLE_MESSAGE = "Fund data is temporarily unavailable, please retry"


def _terms(values: list[str] | None, default: list[str]) -> list[str]:
    """None means "use the default"; an explicit empty value disables the filter."""
    if values is None:
        return list(default)
    return [value for value in values if value]


@router.get("", response_model=FundPageResponse)
async def list_funds(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    allow: list[str] | None = Query(None),
    deny: list[str] | None = Query(None),
    version: str | None = None,
    user_id: str | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    fund_page = await fund_list_service.list_funds(
        page,
        limit,
        allow_list=_terms(allow, DEFAULT_ALLOW_LIST),
        deny_list=_terms(deny, DEFAULT_DENY_LIST),
        version=version,
    )
    records = await reconcile_for_user(db, fund_page.data, user_id)
    return FundPageResponse(
        data=records,
        total=fund_page.total,
        page=fund_page.page,
        limit=fund_page.limit,
        status=fund_page.status,
        version=fund_page.version,
        message=UNAVAILABLE_MESSAGE if fund_page.status == PAGE_UNAVAILABLE else None,
    )


@router.get("/search", response_model=list[FundSearchResult])
async def search_funds(q: str = ""):
    """Search the fund directory by code prefix or name. Up to 20 matches."""
    entries = await fund_list_service.search(q)
    return [
        FundSearchResult(fund_code=e.code, fund_name=e.name, fund_type=e.type)
        for e in entries
    ]


@router.get("/{fund_code}", response_model=AnnotatedFundDetail)
async def get_fund_detail(
    fund_code: str,
    user_id: str | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    detail = await gateway_client.get_fund_detail(fund_code)
    if detail is None:
        raise HTTPException(status_code=404, detail="Fund not found")

    is_favorite = is_monitoring = False
    if user_id:
        is_favorite = await favorite_service.exists(db, user_id, fund_code)
        is_monitoring = await monitor_service.exists(db, user_id, fund_code)
    return AnnotatedFundDetail(
        **detail.model_dump(), is_favorite=is_favorite, is_monitoring=is_monitoring
    )


# akshare calls block, so these run in FastAPI's threadpool
@router.get("/{fund_code}/holdings", response_model=list[HoldingResponse])
def get_fund_holdings(fund_code: str):
    return fund_profile_service.get_top_holdings(fund_code)


@router.get("/{fund_code}/performance")
def get_fund_performance(fund_code: str):
    performance = fund_profile_service.get_performance(fund_code)
    if not performance:
        raise HTTPException(status_code=503, detail="NAV history unavailable")
    return {"fundCode": fund_code, "performance": performance}
