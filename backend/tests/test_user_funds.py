"""Tests for favorite/monitor links and monitor rule persistence."""

import pytest
from sqlalchemy import func, select

from fundwatch.models.user_fund import FavoriteFund, MonitorRule
from fundwatch.services.user_funds import (
    LinkStatus,
    RuleThresholds,
    favorite_service,
    monitor_service,
    rule_service,
)


async def _count(session, model, **filters):
    stmt = select(func.count()).select_from(model).filter_by(**filters)
    return (await session.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_add_favorite(db_session):
    status = await favorite_service.add(db_session, "u1", "000001")
    assert status == LinkStatus.CREATED
    assert await favorite_service.exists(db_session, "u1", "000001")
    assert not await favorite_service.exists(db_session, "u2", "000001")


@pytest.mark.asyncio
async def test_duplicate_add_keeps_single_row(db_session):
    first = await favorite_service.add(db_session, "u1", "000001")
    second = await favorite_service.add(db_session, "u1", "000001")

    assert first == LinkStatus.CREATED
    assert second == LinkStatus.ALREADY_EXISTS
    assert await _count(db_session, FavoriteFund, user_id="u1", fund_code="000001") == 1


@pytest.mark.asyncio
async def test_session_usable_after_duplicate(db_session):
    await monitor_service.add(db_session, "u1", "000001")
    await monitor_service.add(db_session, "u1", "000001")
    assert await monitor_service.add(db_session, "u1", "000002") == LinkStatus.CREATED
    assert await monitor_service.codes(db_session, "u1") == {"000001", "000002"}


@pytest.mark.asyncio
async def test_favorites_and_monitors_are_independent(db_session):
    await favorite_service.add(db_session, "u1", "000001")
    assert await monitor_service.codes(db_session, "u1") == set()
    assert await monitor_service.add(db_session, "u1", "000001") == LinkStatus.CREATED


@pytest.mark.asyncio
async def test_remove_is_idempotent(db_session):
    await favorite_service.add(db_session, "u1", "000001")
    await favorite_service.remove(db_session, "u1", "000001")
    await favorite_service.remove(db_session, "u1", "000001")
    assert not await favorite_service.exists(db_session, "u1", "000001")


@pytest.mark.asyncio
async def test_remove_only_touches_own_rows(db_session):
    await favorite_service.add(db_session, "u1", "000001")
    await favorite_service.add(db_session, "u2", "000001")
    await favorite_service.remove(db_session, "u1", "000001")
    assert await favorite_service.codes(db_session, "u2") == {"000001"}


@pytest.mark.asyncio
async def test_list_links_in_insertion_order(db_session):
    for code in ("000003", "000001", "000002"):
        await favorite_service.add(db_session, "u1", code)
    links = await favorite_service.list_links(db_session, "u1")
    assert [link.fund_code for link in links] == ["000003", "000001", "000002"]
    assert await favorite_service.list_links(db_session, "nobody") == []


@pytest.mark.asyncio
async def test_save_rule_creates_then_updates_by_id(db_session):
    rule = await rule_service.save_rule(
        db_session, "u1", "000001", RuleThresholds(rule_name="r", rise_threshold=2.0)
    )
    assert rule.id is not None
    assert rule.rise_threshold == 2.0
    assert rule.net_worth_threshold is None

    updated = await rule_service.save_rule(
        db_session,
        "u1",
        "000001",
        RuleThresholds(net_worth_threshold=1.5, push_time="14:30"),
        rule_id=rule.id,
    )
    assert updated.id == rule.id
    assert updated.net_worth_threshold == 1.5
    assert updated.rise_threshold is None
    assert updated.push_time == "14:30"


@pytest.mark.asyncio
async def test_save_rule_without_id_upserts(db_session):
    first = await rule_service.save_rule(
        db_session, "u1", "000001", RuleThresholds(rise_threshold=1.0)
    )
    second = await rule_service.save_rule(
        db_session, "u1", "000001", RuleThresholds(rise_threshold=3.0)
    )
    assert second.id == first.id
    assert second.rise_threshold == 3.0
    assert await _count(db_session, MonitorRule, user_id="u1") == 1


@pytest.mark.asyncio
async def test_save_rule_with_foreign_id_is_rejected(db_session):
    rule = await rule_service.save_rule(db_session, "u1", "000001", RuleThresholds())
    assert await rule_service.save_rule(
        db_session, "u2", "000001", RuleThresholds(), rule_id=rule.id
    ) is None
    assert await rule_service.save_rule(
        db_session, "u1", "000002", RuleThresholds(), rule_id=rule.id
    ) is None


@pytest.mark.asyncio
async def test_get_and_delete_rule(db_session):
    rule = await rule_service.save_rule(db_session, "u1", "000001", RuleThresholds())
    assert (await rule_service.get_rule_for_fund(db_session, "u1", "000001")).id == rule.id
    assert await rule_service.get_rule(db_session, "u2", rule.id) is None

    assert not await rule_service.delete_rule(db_session, "u2", rule.id)
    assert await rule_service.delete_rule(db_session, "u1", rule.id)
    assert await rule_service.get_rule(db_session, "u1", rule.id) is None


@pytest.mark.asyncio
async def test_list_scheduled_rules(db_session):
    await rule_service.save_rule(db_session, "u1", "000001", RuleThresholds(push_time="09:30"))
    await rule_service.save_rule(db_session, "u1", "000002", RuleThresholds())
    scheduled = await rule_service.list_scheduled_rules(db_session)
    assert [r.fund_code for r in scheduled] == ["000001"]
