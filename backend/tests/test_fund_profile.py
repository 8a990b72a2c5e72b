"""Tests for akshare-backed holdings and performance."""

from unittest.mock import patch

import pandas as pd
import pytest

from fundwatch.services.cache import TTLCache
from fundwatch.services.fund_profile import FundProfileService


@pytest.fixture
def profile_service():
    return FundProfileService(TTLCache(default_ttl=3600))


def _holdings_df(quarters):
    rows = []
    for quarter, count in quarters:
        for i in range(count):
            rows.append(
                {
                    "股票代码": f"{600000 + i}",
                    "股票名称": f"股票{i}",
                    "占净值比例": 9.5 - i * 0.5,
                    "季度": quarter,
                }
            )
    return pd.DataFrame(rows)


def _nav_df(start, periods, step=0.001):
    dates = pd.date_range(start, periods=periods, freq="D")
    return pd.DataFrame(
        {
            "净值日期": dates.strftime("%Y-%m-%d"),
            "单位净值": [1.0 + i * step for i in range(periods)],
        }
    )


class TestTopHoldings:
    def test_latest_quarter_top_ten(self, profile_service):
        df = _holdings_df([("2025年1季度股票投资明细", 10), ("2025年2季度股票投资明细", 12)])
        with patch("fundwatch.services.fund_profile.ak.fund_portfolio_hold_em", return_value=df):
            holdings = profile_service.get_top_holdings("000001", "2025")

        assert len(holdings) == 10
        assert holdings[0] == {"stock_code": "600000", "stock_name": "股票0", "holding_ratio": 0.095}

    def test_falls_back_to_previous_year(self, profile_service):
        calls = []

        def fake(symbol, date):
            calls.append(date)
            return pd.DataFrame() if date == "2026" else _holdings_df([("2025年4季度股票投资明细", 3)])

        with patch("fundwatch.services.fund_profile.ak.fund_portfolio_hold_em", side_effect=fake):
            holdings = profile_service.get_top_holdings("000001", "2026")

        assert calls == ["2026", "2025"]
        assert len(holdings) == 3

    def test_errors_give_empty_list(self, profile_service):
        with patch(
            "fundwatch.services.fund_profile.ak.fund_portfolio_hold_em",
            side_effect=RuntimeError("network"),
        ):
            assert profile_service.get_top_holdings("000001", "2025") == []


class TestPerformance:
    def test_periods_and_since_establishment(self, profile_service):
        df = _nav_df("2024-01-01", 500)
        with patch("fundwatch.services.fund_profile.ak.fund_open_fund_info_em", return_value=df):
            perf = profile_service.get_performance("000001")

        latest = 1.0 + 499 * 0.001
        week_ago = 1.0 + 492 * 0.001
        assert perf["1w"] == pytest.approx((latest / week_ago - 1) * 100, abs=1e-3)
        assert perf["sinceEstablishment"] == pytest.approx(49.9, abs=1e-3)
        assert perf["1y"] is not None

    def test_short_history_leaves_long_periods_empty(self, profile_service):
        df = _nav_df("2025-01-01", 20)
        with patch("fundwatch.services.fund_profile.ak.fund_open_fund_info_em", return_value=df):
            perf = profile_service.get_performance("000001")
        assert perf["1w"] is not None
        assert perf["3m"] is None
        assert perf["1y"] is None

    def test_history_is_cached(self, profile_service):
        df = _nav_df("2025-01-01", 30)
        with patch(
            "fundwatch.services.fund_profile.ak.fund_open_fund_info_em", return_value=df
        ) as mock_fetch:
            profile_service.get_performance("000001")
            profile_service.get_performance("000001")
        assert mock_fetch.call_count == 1

    def test_unavailable_history(self, profile_service):
        with patch(
            "fundwatch.services.fund_profile.ak.fund_open_fund_info_em",
            side_effect=RuntimeError("network"),
        ):
            assert profile_service.get_performance("000001") == {}
