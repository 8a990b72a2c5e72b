"""Threshold evaluation for monitor rules and the DingTalk status report.

A report is pushed whether or not a threshold fires; the message body says
which thresholds were crossed, or that none were.

    net_worth_triggered = net_worth_threshold is set and net_worth >= threshold
    rise_triggered      = rise_threshold is set and |actual_day_growth| >= threshold
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from fundwatch.config import DEFAULT_WEBHOOK_URL
from fundwatch.errors import RuleEvaluationError, UpstreamUnavailable
from fundwatch.models.fund import FundRecord
from fundwatch.models.user_fund import MonitorRule
from fundwatch.services.gateway import GatewayClient, gateway_client
from fundwatch.services.user_funds import RuleService, rule_service

logger = logging.getLogger(__name__)

NOT_SET = "未设置"


class Thresholds(Protocol):
    rise_threshold: float | None
    net_worth_threshold: float | None


@dataclass(frozen=True)
class AlertEvaluation:
    fund_code: str
    net_worth_triggered: bool
    rise_triggered: bool
    title: str
    message: str

    @property
    def triggered(self) -> bool:
        return self.net_worth_triggered or self.rise_triggered


def _number(value: float) -> str:
    """Shortest form that round-trips: 2.0 -> "2", -3.456789 -> "-3.456789"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _marker(threshold: float | None, triggered: bool) -> str:
    if threshold is None:
        return ""
    return " ✅ 已触发" if triggered else " ⏸ 未触发"


def render_message(
    snapshot: FundRecord,
    rule: Thresholds,
    net_worth_triggered: bool,
    rise_triggered: bool,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now()
    rise = rule.rise_threshold
    net_worth = rule.net_worth_threshold

    lines = [
        "## 基金监控报告",
        "",
        f"**基金:** {snapshot.name} ({snapshot.code})",
        f"**单位净值:** {snapshot.net_worth:.4f} ({snapshot.net_worth_date or '-'})",
        f"**日涨跌幅:** {_number(snapshot.actual_day_growth)}%",
        f"**估算净值:** {snapshot.expect_worth:.4f} ({snapshot.expect_worth_date or '-'})",
        f"**涨跌幅提醒阈值:** "
        f"{NOT_SET if rise is None else _number(rise) + '%'}{_marker(rise, rise_triggered)}",
        f"**净值提醒阈值:** "
        f"{NOT_SET if net_worth is None else f'{net_worth:.4f}'}"
        f"{_marker(net_worth, net_worth_triggered)}",
    ]
    if net_worth_triggered or rise_triggered:
        lines.append("**结论:** 已触发提醒阈值，请关注。")
    else:
        lines.append("**结论:** 未触发任何提醒阈值 (not triggered)。")
    lines.append(f"**推送时间:** {now.strftime('%Y-%m-%d %H:%M')}")
    return "\n".join(lines) + "\n"


def evaluate(
    snapshot: FundRecord, rule: Thresholds, now: datetime | None = None
) -> AlertEvaluation:
    net_worth_triggered = (
        rule.net_worth_threshold is not None
        and snapshot.net_worth >= rule.net_worth_threshold
    )
    rise_triggered = (
        rule.rise_threshold is not None
        and abs(snapshot.actual_day_growth) >= rule.rise_threshold
    )
    now = now or datetime.now()
    return AlertEvaluation(
        fund_code=snapshot.code,
        net_worth_triggered=net_worth_triggered,
        rise_triggered=rise_triggered,
        title=f"基金监控提醒 {snapshot.short_name or snapshot.code} ({now.strftime('%Y-%m-%d')})",
        message=render_message(snapshot, rule, net_worth_triggered, rise_triggered, now),
    )


class AlertService:
    """Fetches a live snapshot, evaluates a rule against it and pushes the report."""

    def __init__(self, gateway: GatewayClient, rules: RuleService):
        self._gateway = gateway
        self._rules = rules

    async def notify_rule(self, rule: MonitorRule) -> AlertEvaluation:
        try:
            snapshot = await self._gateway.get_fund_detail(rule.fund_code)
        except UpstreamUnavailable as e:
            raise RuleEvaluationError(f"Live data for fund {rule.fund_code} is unavailable: {e}") from e
        if snapshot is None:
            raise RuleEvaluationError(f"Live data for fund {rule.fund_code} is unavailable")

        evaluation = evaluate(snapshot, rule)
        await self._gateway.push_markdown(
            evaluation.title,
            evaluation.message,
            rule.webhook_url or DEFAULT_WEBHOOK_URL,
        )
        logger.info(
            f"Rule {rule.id} for {rule.fund_code} evaluated, triggered={evaluation.triggered}"
        )
        return evaluation

    async def evaluate_and_notify(
        self,
        session: AsyncSession,
        user_id: str,
        rule_id: int,
        fund_code: str | None = None,
    ) -> AlertEvaluation | None:
        """Returns None when the user has no such rule (for this fund, if one is given)."""
        rule = await self._rules.get_rule(session, user_id, rule_id)
        if rule is None or (fund_code is not None and rule.fund_code != fund_code):
            return None
        return await self.notify_rule(rule)


# Global instance
alert_service = AlertService(gateway_client, rule_service)
