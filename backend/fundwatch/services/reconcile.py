"""Annotate fund records with the requesting user's favorite / monitor state."""

from typing import Iterable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from fundwatch.models.fund import AnnotatedFundRecord, FundRecord
from fundwatch.services.user_funds import favorite_service, monitor_service


def reconcile(
    records: Sequence[FundRecord],
    favorite_codes: Iterable[str],
    monitor_codes: Iterable[str],
) -> list[AnnotatedFundRecord]:
    favorites = set(favorite_codes)
    monitors = set(monitor_codes)
    return [
        AnnotatedFundRecord(
            **record.model_dump(),
            is_favorite=record.code in favorites,
            is_monitoring=record.code in monitors,
        )
        for record in records
    ]


async def reconcile_for_user(
    session: AsyncSession, records: Sequence[FundRecord], user_id: str | None
) -> list[AnnotatedFundRecord]:
    """Anonymous callers get every flag set to False."""
    if not user_id:
        return reconcile(records, (), ())
    favorites = await favorite_service.codes(session, user_id)
    monitors = await monitor_service.codes(session, user_id)
    return reconcile(records, favorites, monitors)
