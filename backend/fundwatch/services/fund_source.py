"""Public fund data source: the fund code directory and per-fund NAV estimates.

Neither endpoint speaks JSON directly:

    directory:  var r = [["000001","HXCZHH","华夏成长混合","混合型-偏股","HUAXIACHENGZHANGHUNHE"], ...];
    nav:        jsonpgz({"fundcode":"000001","name":"...","jzrq":"2025-11-11",
                         "dwjz":"1.0470","gsz":"1.0449","gszzl":"-0.20",
                         "gztime":"2025-11-12 13:47"});

The parsers below cut the payload out of its wrapper and decode it. The
adapter degrades instead of raising: a broken directory becomes an empty
list and a broken NAV becomes ``None``, and callers decide what that means.
"""

import json
import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote

import httpx

from fundwatch.config import FUND_DIRECTORY_URL, FUND_NAV_URL, HTTP_TIMEOUT, HTTP_VERIFY_SSL
from fundwatch.errors import ParseError, UpstreamUnavailable

logger = logging.getLogger(__name__)

_DIRECTORY_RE = re.compile(r"var\s+r\s*=\s*(\[.*\])", re.DOTALL)
_NAV_RE = re.compile(r"jsonpgz\((\{.*\})\)", re.DOTALL)


@dataclass(frozen=True)
class DirectoryEntry:
    code: str
    short_name: str
    name: str
    type: str
    pinyin: str

    @property
    def description(self) -> str:
        return f"{self.name} - {self.type}"


@dataclass(frozen=True)
class NavSnapshot:
    """One fund's NAV estimate. Numeric fields are None when upstream omitted them."""

    fundcode: str
    name: str
    jzrq: str
    dwjz: float | None
    gsz: float | None
    gszzl: float | None
    gztime: str

    @property
    def estimated_change(self) -> float:
        return (self.gsz or 0.0) - (self.dwjz or 0.0)

    @property
    def complete(self) -> bool:
        return None not in (self.dwjz, self.gsz, self.gszzl)


def parse_decimal(value) -> float | None:
    """Parse an upstream numeric field; None when absent or malformed."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def decode_name(raw: str) -> str:
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def parse_directory(text: str) -> list[DirectoryEntry]:
    match = _DIRECTORY_RE.search(text)
    if match is None:
        raise ParseError("Fund directory payload has no 'var r = [...]' literal")
    try:
        rows = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ParseError(f"Fund directory literal is not valid JSON: {e}") from e

    entries = []
    for row in rows:
        if not isinstance(row, list) or len(row) < 4:
            continue
        padded = [str(item) for item in row] + [""] * (5 - len(row))
        entries.append(
            DirectoryEntry(
                code=padded[0],
                short_name=padded[1],
                name=padded[2],
                type=padded[3],
                pinyin=padded[4],
            )
        )
    return entries


def parse_nav(text: str) -> NavSnapshot:
    match = _NAV_RE.search(text)
    if match is None:
        raise ParseError("NAV payload has no jsonpgz({...}) wrapper")
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ParseError(f"NAV payload is not valid JSON: {e}") from e

    return NavSnapshot(
        fundcode=str(data.get("fundcode") or ""),
        name=decode_name(str(data.get("name") or "")),
        jzrq=str(data.get("jzrq") or ""),
        dwjz=parse_decimal(data.get("dwjz")),
        gsz=parse_decimal(data.get("gsz")),
        gszzl=parse_decimal(data.get("gszzl")),
        gztime=str(data.get("gztime") or ""),
    )


class FundSourceAdapter:
    """Fetches the fund directory and NAV estimates over HTTP."""

    def __init__(
        self,
        directory_url: str = FUND_DIRECTORY_URL,
        nav_url: str = FUND_NAV_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._directory_url = directory_url
        self._nav_url = nav_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _get_text(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, verify=HTTP_VERIFY_SSL, transport=self._transport
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.text
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"GET {url} failed: {e}") from e

    async def fetch_directory(self) -> list[DirectoryEntry]:
        """Return the full fund directory, or [] when it cannot be fetched or parsed.

        An empty result means "temporarily unavailable", never "no funds exist".
        """
        try:
            text = await self._get_text(self._directory_url)
            entries = parse_directory(text)
        except (UpstreamUnavailable, ParseError) as e:
            logger.error(f"Failed to fetch fund directory: {e}")
            return []
        logger.info(f"Fetched fund directory with {len(entries)} entries")
        return entries

    async def fetch_nav(self, fund_code: str) -> NavSnapshot | None:
        """Return the NAV estimate for one fund, or None on any failure."""
        try:
            text = await self._get_text(f"{self._nav_url}/{fund_code}.js")
            return parse_nav(text)
        except (UpstreamUnavailable, ParseError) as e:
            logger.error(f"Failed to fetch NAV for {fund_code}: {e}")
            return None


# Global instance
fund_source = FundSourceAdapter()
