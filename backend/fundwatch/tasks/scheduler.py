"""Daily push jobs for monitor rules that have a push time."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from fundwatch.config import SCHEDULER_TIMEZONE
from fundwatch.errors import FundWatchError
from fundwatch.models.database import async_session_factory
from fundwatch.models.user_fund import MonitorRule
from fundwatch.services.alert import alert_service
from fundwatch.services.user_funds import rule_service

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE)


def parse_push_time(push_time: str) -> tuple[int, int]:
    """'HH:MM' or 'HH:MM:SS' -> (hour, minute); seconds are ignored."""
    parts = push_time.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid push time: {push_time!r}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ValueError(f"Invalid push time: {push_time!r}") from e
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid push time: {push_time!r}")
    return hour, minute


def to_cron(push_time: str) -> CronTrigger:
    hour, minute = parse_push_time(push_time)
    return CronTrigger(hour=hour, minute=minute, timezone=SCHEDULER_TIMEZONE)


def job_id(rule_id: int) -> str:
    return f"rule:{rule_id}"


async def push_rule_report(rule_id: int):
    """Evaluate one rule and push its report. Failures are logged, not raised."""
    try:
        async with async_session_factory() as session:
            rule = await rule_service.get_rule_by_id(session, rule_id)
            if rule is None:
                logger.warning(f"Rule {rule_id} no longer exists, removing its job")
                unschedule_rule(rule_id)
                return
            await alert_service.notify_rule(rule)
    except FundWatchError as e:
        logger.error(f"Scheduled push for rule {rule_id} failed: {e}")
    except Exception as e:
        logger.exception(f"Unexpected error in scheduled push for rule {rule_id}: {e}")


def schedule_rule(rule: MonitorRule) -> None:
    """Register (or replace) the daily job for a rule; rules without push_time get none."""
    if not rule.push_time:
        unschedule_rule(rule.id)
        return
    scheduler.add_job(
        push_rule_report,
        trigger=to_cron(rule.push_time),
        args=[rule.id],
        id=job_id(rule.id),
        replace_existing=True,
    )
    logger.info(f"Scheduled rule {rule.id} ({rule.fund_code}) daily at {rule.push_time}")


def unschedule_rule(rule_id: int) -> None:
    if scheduler.get_job(job_id(rule_id)) is not None:
        scheduler.remove_job(job_id(rule_id))
        logger.info(f"Unscheduled rule {rule_id}")


async def load_rule_jobs() -> int:
    async with async_session_factory() as session:
        rules = await rule_service.list_scheduled_rules(session)
    count = 0
    for rule in rules:
        try:
            schedule_rule(rule)
            count += 1
        except ValueError as e:
            logger.warning(f"Skipping rule {rule.id}: {e}")
    return count


async def start_scheduler():
    """Load rule jobs and start the background scheduler."""
    count = await load_rule_jobs()
    scheduler.start()
    logger.info(f"Scheduler started with {count} rule jobs")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
