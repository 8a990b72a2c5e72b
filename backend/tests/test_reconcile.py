"""Tests for annotating fund records with per-user flags."""

import pytest

from fundwatch.models.fund import FundRecord
from fundwatch.services.reconcile import reconcile, reconcile_for_user
from fundwatch.services.user_funds import favorite_service, monitor_service


def _records(*codes):
    return [FundRecord(id=code, code=code, name=f"基金{code}", net_worth=1.0) for code in codes]


def test_flags_follow_code_sets():
    records = _records("000001", "000002", "000003")
    result = reconcile(records, favorite_codes={"000002", "000005"}, monitor_codes={"000003"})

    assert [r.is_favorite for r in result] == [False, True, False]
    assert [r.is_monitoring for r in result] == [False, False, True]


def test_record_fields_are_preserved_in_order():
    records = _records("000003", "000001")
    result = reconcile(records, (), ())
    assert [r.code for r in result] == ["000003", "000001"]
    assert result[0].name == "基金000003"
    assert result[0].net_worth == 1.0


def test_empty_input():
    assert reconcile([], {"000001"}, {"000001"}) == []


@pytest.mark.asyncio
async def test_anonymous_user_gets_no_flags(db_session):
    await favorite_service.add(db_session, "u1", "000001")
    result = await reconcile_for_user(db_session, _records("000001"), None)
    assert not result[0].is_favorite
    assert not result[0].is_monitoring


@pytest.mark.asyncio
async def test_reconcile_for_user_reads_both_lists(db_session):
    await favorite_service.add(db_session, "u1", "000001")
    await monitor_service.add(db_session, "u1", "000002")
    await favorite_service.add(db_session, "u2", "000002")

    result = await reconcile_for_user(db_session, _records("000001", "000002"), "u1")

    assert [(r.is_favorite, r.is_monitoring) for r in result] == [(True, False), (False, True)]


def test_serializes_with_camel_case_keys():
    result = reconcile(_records("000001"), {"000001"}, ())
    dumped = result[0].model_dump(by_alias=True)
    assert dumped["isFavorite"] is True
    assert dumped["isMonitoring"] is False
    assert "netWorth" in dumped
