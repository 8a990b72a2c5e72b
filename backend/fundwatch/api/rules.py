"""Monitor rule routes: save, read, delete and push-now."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fundwatch.api.deps import require_user_id
from fundwatch.api.schemas import NotifyResponse, RuleRequest, RuleResponse, RuleSaveResponse
from fundwatch.errors import NotificationError, RuleEvaluationError
from fundwatch.models.database import get_db
from fundwatch.services.alert import AlertEvaluation, alert_service
from fundwatch.services.user_funds import RuleThresholds, monitor_service, rule_service
from fundwatch.tasks.scheduler import schedule_rule, unschedule_rule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rules", tags=["rules"])


def _notify_response(rule_id: int, evaluation: AlertEvaluation) -> NotifyResponse:
    return NotifyResponse(
        rule_id=rule_id,
        fund_code=evaluation.fund_code,
        triggered=evaluation.triggered,
        net_worth_triggered=evaluation.net_worth_triggered,
        rise_triggered=evaluation.rise_triggered,
        message=evaluation.message,
    )


@router.get("", response_model=list[RuleResponse])
async def get_rules(
    fund_code: str | None = Query(None, alias="fundCode"),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All of the user's rules, or the rule for one fund (404 if it has none)."""
    if fund_code is None:
        return await rule_service.list_rules(db, user_id)
    rule = await rule_service.get_rule_for_fund(db, user_id, fund_code)
    if rule is None:
        raise HTTPException(status_code=404, detail="Monitor rule not found")
    return [rule]


@router.put("", response_model=RuleSaveResponse)
async def save_rule(
    req: RuleRequest,
    notify: bool = False,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    if not await monitor_service.exists(db, user_id, req.fund_code):
        raise HTTPException(status_code=400, detail="Fund is not in your monitor list")

    thresholds = RuleThresholds(
        rule_name=req.rule_name,
        rise_threshold=req.rise_threshold,
        net_worth_threshold=req.net_worth_threshold,
        push_time=req.push_time,
        webhook_url=req.webhook_url,
    )
    rule = await rule_service.save_rule(db, user_id, req.fund_code, thresholds, req.rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="Monitor rule not found")
    schedule_rule(rule)

    response = RuleSaveResponse(rule=RuleResponse.model_validate(rule))
    if notify:
        try:
            evaluation = await alert_service.notify_rule(rule)
            response.notification = _notify_response(rule.id, evaluation)
        except (RuleEvaluationError, NotificationError) as e:
            logger.error(f"Rule {rule.id} saved but notification failed: {e}")
            response.notification_error = "Rule saved, but the notification could not be sent"
    return response


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: int,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    if not await rule_service.delete_rule(db, user_id, rule_id):
        raise HTTPException(status_code=404, detail="Monitor rule not found")
    unschedule_rule(rule_id)
    return {"status": "ok"}


@router.post("/{rule_id}/notify", response_model=NotifyResponse)
async def notify_rule(
    rule_id: int,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Evaluate the rule against live data and push the report now."""
    evaluation = await alert_service.evaluate_and_notify(db, user_id, rule_id)
    if evaluation is None:
        raise HTTPException(status_code=404, detail="Monitor rule not found")
    return _notify_response(rule_id, evaluation)
