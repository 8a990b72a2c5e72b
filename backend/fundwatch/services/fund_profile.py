"""Fund profile data from akshare: top stock holdings and period performance."""

import logging
from datetime import datetime
from typing import Any

import akshare as ak
import pandas as pd

from fundwatch.config import NAV_HISTORY_CACHE_TTL
from fundwatch.services.cache import TTLCache

logger = logging.getLogger(__name__)

TOP_HOLDINGS = 10

PERFORMANCE_PERIODS = {
    "1w": pd.DateOffset(weeks=1),
    "1m": pd.DateOffset(months=1),
    "3m": pd.DateOffset(months=3),
    "6m": pd.DateOffset(months=6),
    "1y": pd.DateOffset(years=1),
}


class FundProfileService:
    """Reads holdings and NAV history through akshare (blocking calls)."""

    def __init__(self, cache: TTLCache):
        self._cache = cache

    def get_top_holdings(self, fund_code: str, year: str | None = None) -> list[dict[str, Any]]:
        """Top stock holdings from the latest quarterly report.

        Falls back to the previous year when the current one has no report yet.
        Returns [{stock_code, stock_name, holding_ratio}], ratio as a fraction.
        """
        year = year or str(datetime.now().year)
        holdings = self._fetch_holdings(fund_code, year)
        if not holdings:
            holdings = self._fetch_holdings(fund_code, str(int(year) - 1))
        return holdings[:TOP_HOLDINGS]

    def _fetch_holdings(self, fund_code: str, year: str) -> list[dict[str, Any]]:
        try:
            df = ak.fund_portfolio_hold_em(symbol=fund_code, date=year)
            if df.empty:
                return []
            # A year's table stacks every quarter, e.g. "2025年3季度股票投资明细"
            if "季度" in df.columns:
                df = df[df["季度"] == df["季度"].max()]
            return [
                {
                    "stock_code": str(row["股票代码"]),
                    "stock_name": str(row["股票名称"]),
                    "holding_ratio": float(row["占净值比例"]) / 100.0,
                }
                for _, row in df.iterrows()
            ]
        except Exception as e:
            logger.error(f"Failed to fetch holdings for {fund_code} ({year}): {e}")
            return []

    def get_nav_history(self, fund_code: str) -> pd.Series:
        """NAV series indexed by date, oldest first. Cached for an hour."""
        key = f"nav_history:{fund_code}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            df = ak.fund_open_fund_info_em(symbol=fund_code, indicator="单位净值走势")
        except Exception as e:
            logger.error(f"Failed to fetch NAV history for {fund_code}: {e}")
            return pd.Series(dtype=float)
        if df.empty:
            return pd.Series(dtype=float)

        series = pd.Series(
            df["单位净值"].astype(float).values,
            index=pd.to_datetime(df["净值日期"]),
        ).sort_index()
        self._cache.set(key, series)
        return series

    def get_performance(self, fund_code: str) -> dict[str, float | None]:
        """Percent growth over standard periods, None where history is too short."""
        series = self.get_nav_history(fund_code)
        if series.empty:
            return {}

        latest_date = series.index[-1]
        latest = series.iloc[-1]
        result: dict[str, float | None] = {}
        for period, offset in PERFORMANCE_PERIODS.items():
            past = series[series.index <= latest_date - offset]
            if past.empty or past.iloc[-1] == 0:
                result[period] = None
            else:
                result[period] = round(float(latest / past.iloc[-1] - 1) * 100, 4)

        first = series.iloc[0]
        result["sinceEstablishment"] = round(float(latest / first - 1) * 100, 4) if first else None
        return result


# Global instance
fund_profile_service = FundProfileService(TTLCache(default_ttl=NAV_HISTORY_CACHE_TTL))
