"""OAuth2 gateway client: bearer token, rich fund detail and DingTalk push."""

import logging
from typing import Any

import httpx

from fundwatch.config import (
    GATEWAY_BASE_URL,
    GATEWAY_CLIENT_ID,
    GATEWAY_CLIENT_SECRET,
    GATEWAY_SCOPE,
    HTTP_TIMEOUT,
    HTTP_VERIFY_SSL,
)
from fundwatch.errors import NotificationError, UpstreamUnavailable
from fundwatch.models.fund import FundDetail, shorten_name
from fundwatch.services.cache import TTLCache, token_cache
from fundwatch.services.fund_source import parse_decimal

logger = logging.getLogger(__name__)

TOKEN_CACHE_KEY = "gateway_access_token"


def _num(data: dict[str, Any], key: str) -> float:
    return parse_decimal(data.get(key)) or 0.0


def parse_fund_detail(fund_code: str, data: dict[str, Any]) -> FundDetail:
    """Map the gateway's fund detail payload onto FundDetail."""
    name = data.get("name") or f"基金{fund_code}"
    fund_type = data.get("type") or ""
    net_worth = parse_decimal(data.get("netWorth"))
    expect_worth = parse_decimal(data.get("expectWorth"))
    return FundDetail(
        id=fund_code,
        code=fund_code,
        name=name,
        short_name=shorten_name(name),
        type=fund_type,
        net_worth=net_worth or 0.0,
        expect_worth=expect_worth or 0.0,
        total_net_worth=_num(data, "totalWorth"),
        expect_growth=_num(data, "expectGrowth"),
        actual_day_growth=_num(data, "dayGrowth"),
        estimated_change=(expect_worth or 0.0) - (net_worth or 0.0),
        net_worth_date=data.get("netWorthDate") or "",
        expect_worth_date=data.get("expectWorthDate") or "",
        description=f"{name} - {fund_type}",
        data_incomplete=net_worth is None or data.get("dayGrowth") in (None, ""),
        weekly_growth=_num(data, "lastWeekGrowth"),
        monthly_growth=_num(data, "lastMonthGrowth"),
        three_months_growth=_num(data, "lastThreeMonthsGrowth"),
        six_months_growth=_num(data, "lastSixMonthsGrowth"),
        annual_growth=_num(data, "lastYearGrowth"),
        manager=data.get("manager") or "",
        fund_scale=str(data.get("fundScale") or ""),
        min_buy_amount=_num(data, "buyMin"),
        original_buy_rate=_num(data, "buySourceRate"),
        current_buy_rate=_num(data, "buyRate"),
        establish_date=data.get("establishDate") or "",
    )


class GatewayClient:
    """Talks to the open-api gateway with a cached client-credentials token."""

    def __init__(
        self,
        base_url: str = GATEWAY_BASE_URL,
        client_id: str = GATEWAY_CLIENT_ID,
        client_secret: str = GATEWAY_CLIENT_SECRET,
        scope: str = GATEWAY_SCOPE,
        cache: TTLCache = token_cache,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._cache = cache
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            verify=HTTP_VERIFY_SSL,
            transport=self._transport,
            headers={"accept": "application/json"},
        )

    async def get_access_token(self) -> str:
        """Return a bearer token, reusing the cached one for up to an hour."""
        cached = self._cache.get(TOKEN_CACHE_KEY)
        if cached is not None:
            return cached

        body = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": self._scope,
        }
        try:
            async with self._client() as client:
                resp = await client.post("/oauth2/token", json=body)
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(f"OAuth2 token request failed: {e}") from e

        token = (payload.get("data") or {}).get("access_token")
        if not token:
            raise UpstreamUnavailable("OAuth2 token response has no access_token")

        self._cache.set(TOKEN_CACHE_KEY, token)
        logger.info("Fetched and cached a new gateway access token")
        return token

    async def get_fund_detail(self, fund_code: str) -> FundDetail | None:
        """Return the gateway's detail view of a fund.

        None means the gateway answered but does not know the code; a network
        error, token failure or non-2xx status raises UpstreamUnavailable.
        """
        token = await self.get_access_token()
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"/fund/detail/v2/{fund_code}",
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch fund detail for {fund_code}: {e}")
            raise UpstreamUnavailable(f"Fund detail request for {fund_code} failed: {e}") from e

        if payload.get("code") != 0 or not payload.get("data"):
            logger.error(
                f"Fund detail for {fund_code} rejected by gateway: {payload.get('message')}"
            )
            return None
        return parse_fund_detail(fund_code, payload["data"])

    async def push_markdown(
        self, title: str, text: str, webhook_url: str | None = None
    ) -> dict[str, Any]:
        """Deliver a markdown message through the DingTalk endpoint."""
        try:
            token = await self.get_access_token()
            async with self._client() as client:
                resp = await client.post(
                    "/dingtalk/markdown",
                    json={"title": title, "text": text, "webhookUrl": webhook_url},
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
                result = resp.json()
        except (UpstreamUnavailable, httpx.HTTPError, ValueError) as e:
            raise NotificationError(f"DingTalk push failed: {e}") from e

        logger.info(f"Pushed DingTalk message: {title}")
        return result


# Global instance
gateway_client = GatewayClient()
