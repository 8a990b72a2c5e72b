"""Favorite / monitor links and monitor rules stored per user."""

import logging
from dataclasses import asdict, dataclass
from enum import Enum

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fundwatch.models.user_fund import FavoriteFund, MonitorFund, MonitorRule

logger = logging.getLogger(__name__)


class LinkStatus(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


class UserFundLinkService:
    """add/remove/list/exists for one link table (favorites or monitors).

    Uniqueness of (user_id, fund_code) is enforced by the table's unique
    constraint; a violation on insert is reported as ALREADY_EXISTS.
    """

    def __init__(self, model: type[FavoriteFund] | type[MonitorFund]):
        self._model = model

    async def exists(self, session: AsyncSession, user_id: str, fund_code: str) -> bool:
        result = await session.execute(
            select(self._model.id).where(
                self._model.user_id == user_id,
                self._model.fund_code == fund_code,
            )
        )
        return result.first() is not None

    async def add(self, session: AsyncSession, user_id: str, fund_code: str) -> LinkStatus:
        session.add(self._model(user_id=user_id, fund_code=fund_code))
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            return LinkStatus.ALREADY_EXISTS
        logger.info(f"{self._model.__tablename__}: user {user_id} added {fund_code}")
        return LinkStatus.CREATED

    async def remove(self, session: AsyncSession, user_id: str, fund_code: str) -> None:
        await session.execute(
            delete(self._model).where(
                self._model.user_id == user_id,
                self._model.fund_code == fund_code,
            )
        )
        await session.commit()

    async def list_links(self, session: AsyncSession, user_id: str) -> list:
        result = await session.execute(
            select(self._model)
            .where(self._model.user_id == user_id)
            .order_by(self._model.created_at, self._model.id)
        )
        return list(result.scalars().all())

    async def codes(self, session: AsyncSession, user_id: str) -> set[str]:
        result = await session.execute(
            select(self._model.fund_code).where(self._model.user_id == user_id)
        )
        return set(result.scalars().all())


@dataclass
class RuleThresholds:
    rule_name: str | None = None
    rise_threshold: float | None = None
    net_worth_threshold: float | None = None
    push_time: str | None = None
    webhook_url: str | None = None


class RuleService:
    """Manages per-fund alert rules."""

    async def get_rule(
        self, session: AsyncSession, user_id: str, rule_id: int
    ) -> MonitorRule | None:
        result = await session.execute(
            select(MonitorRule).where(
                MonitorRule.id == rule_id, MonitorRule.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def get_rule_by_id(self, session: AsyncSession, rule_id: int) -> MonitorRule | None:
        return await session.get(MonitorRule, rule_id)

    async def get_rule_for_fund(
        self, session: AsyncSession, user_id: str, fund_code: str
    ) -> MonitorRule | None:
        result = await session.execute(
            select(MonitorRule).where(
                MonitorRule.user_id == user_id, MonitorRule.fund_code == fund_code
            )
        )
        return result.scalar_one_or_none()

    async def list_rules(self, session: AsyncSession, user_id: str) -> list[MonitorRule]:
        result = await session.execute(
            select(MonitorRule).where(MonitorRule.user_id == user_id).order_by(MonitorRule.id)
        )
        return list(result.scalars().all())

    async def list_scheduled_rules(self, session: AsyncSession) -> list[MonitorRule]:
        result = await session.execute(
            select(MonitorRule).where(MonitorRule.push_time.is_not(None))
        )
        return list(result.scalars().all())

    async def save_rule(
        self,
        session: AsyncSession,
        user_id: str,
        fund_code: str,
        thresholds: RuleThresholds,
        rule_id: int | None = None,
    ) -> MonitorRule | None:
        """Update the rule `rule_id`, or insert one for (user, fund).

        Returns None when `rule_id` does not name a rule of this user and fund.
        Without an id, a second save for the same fund updates the existing
        row instead of creating a duplicate.
        """
        values = asdict(thresholds)

        if rule_id is not None:
            rule = await self.get_rule(session, user_id, rule_id)
            if rule is None or rule.fund_code != fund_code:
                return None
            for key, value in values.items():
                setattr(rule, key, value)
            await session.commit()
            await session.refresh(rule)
            return rule

        rule = MonitorRule(user_id=user_id, fund_code=fund_code, **values)
        session.add(rule)
        try:
            await session.commit()
            await session.refresh(rule)
            return rule
        except IntegrityError:
            await session.rollback()

        rule = await self.get_rule_for_fund(session, user_id, fund_code)
        if rule is None:
            return None
        for key, value in values.items():
            setattr(rule, key, value)
        await session.commit()
        await session.refresh(rule)
        return rule

    async def delete_rule(self, session: AsyncSession, user_id: str, rule_id: int) -> bool:
        result = await session.execute(
            delete(MonitorRule).where(
                MonitorRule.id == rule_id, MonitorRule.user_id == user_id
            )
        )
        await session.commit()
        return result.rowcount > 0


favorite_service = UserFundLinkService(FavoriteFund)
monitor_service = UserFundLinkService(MonitorFund)
rule_service = RuleService()
