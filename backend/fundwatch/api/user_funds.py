"""Favorite and monitor list routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fundwatch.api.deps import require_user_id
from fundwatch.api.schemas import FundCodeRequest, LinkedFundResponse, LinkResponse
from fundwatch.models.database import get_db
from fundwatch.services.fund_list import fund_list_service
from fundwatch.services.user_funds import (
    LinkStatus,
    UserFundLinkService,
    favorite_service,
    monitor_service,
    rule_service,
)
from fundwatch.tasks.scheduler import unschedule_rule

router = APIRouter(prefix="/api/funds", tags=["user-funds"])

MESSAGES = {
    ("favorite", LinkStatus.CREATED): "Added to favorites",
    ("favorite", LinkStatus.ALREADY_EXISTS): "Fund is already in your favorites",
    ("monitor", LinkStatus.CREATED): "Monitoring started",
    ("monitor", LinkStatus.ALREADY_EXISTS): "Fund is already being monitored",
}


async def _add_link(
    kind: str, service: UserFundLinkService, db: AsyncSession, user_id: str, fund_code: str
) -> LinkResponse:
    # Skip the existence check when the directory itself is unavailable
    snapshot = await fund_list_service.get_directory()
    if snapshot is not None and fund_code not in snapshot.by_code:
        raise HTTPException(status_code=404, detail=f"Fund {fund_code} not found")

    status = await service.add(db, user_id, fund_code)
    return LinkResponse(status=status.value, fund_code=fund_code, message=MESSAGES[(kind, status)])


async def _list_links(
    service: UserFundLinkService, db: AsyncSession, user_id: str
) -> list[LinkedFundResponse]:
    links = await service.list_links(db, user_id)
    records = await fund_list_service.records_for_codes([link.fund_code for link in links])
    return [
        LinkedFundResponse(fund_code=link.fund_code, created_at=link.created_at, fund=record)
        for link, record in zip(links, records)
    ]


@router.post("/favorite", response_model=LinkResponse)
async def add_favorite(
    req: FundCodeRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await _add_link("favorite", favorite_service, db, user_id, req.fund_code)


@router.delete("/favorite/{fund_code}", response_model=LinkResponse)
async def remove_favorite(
    fund_code: str,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    await favorite_service.remove(db, user_id, fund_code)
    return LinkResponse(status="removed", fund_code=fund_code, message="Removed from favorites")


@router.get("/favorite/list", response_model=list[LinkedFundResponse])
async def list_favorites(
    user_id: str = Depends(require_user_id), db: AsyncSession = Depends(get_db)
):
    return await _list_links(favorite_service, db, user_id)


@router.post("/monitor", response_model=LinkResponse)
async def add_monitor(
    req: FundCodeRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await _add_link("monitor", monitor_service, db, user_id, req.fund_code)


@router.delete("/monitor/{fund_code}", response_model=LinkResponse)
async def remove_monitor(
    fund_code: str,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    await monitor_service.remove(db, user_id, fund_code)
    # A rule only makes sense for a monitored fund
    rule = await rule_service.get_rule_for_fund(db, user_id, fund_code)
    if rule is not None:
        await rule_service.delete_rule(db, user_id, rule.id)
        unschedule_rule(rule.id)
    return LinkResponse(status="removed", fund_code=fund_code, message="Monitoring stopped")


@router.get("/monitor/list", response_model=list[LinkedFundResponse])
async def list_monitors(
    user_id: str = Depends(require_user_id), db: AsyncSession = Depends(get_db)
):
    return await _list_links(monitor_service, db, user_id)
