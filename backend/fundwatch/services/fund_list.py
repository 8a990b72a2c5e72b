"""Fund list aggregation: filter the cached directory, paginate, enrich with NAV.

Algorithm for one page:
    1. directory  <- cache or upstream (24h TTL)
    2. drop entries whose "{name} - {type}" contains any deny term
    3. keep entries containing at least one allow term (if any are given)
    4. slice [(page - 1) * limit, page * limit)
    5. fetch NAV for every entry of the slice concurrently, wait for all
    6. attach total_count = len(filtered) to every record
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from fundwatch.errors import DirectoryVersionChanged
from fundwatch.models.fund import FundRecord, shorten_name
from fundwatch.services.cache import TTLCache, directory_cache
from fundwatch.services.fund_source import (
    DirectoryEntry,
    FundSourceAdapter,
    NavSnapshot,
    fund_source,
)

logger = logging.getLogger(__name__)

DIRECTORY_CACHE_KEY = "fund_directory"

PAGE_OK = "ok"
PAGE_UNAVAILABLE = "unavailable"


def directory_version(entries: Iterable[DirectoryEntry]) -> str:
    """Short digest of the directory's code sequence, stable across identical refreshes."""
    joined = "\n".join(entry.code for entry in entries)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class DirectorySnapshot:
    entries: tuple[DirectoryEntry, ...]
    version: str
    by_code: dict[str, DirectoryEntry] = field(compare=False, repr=False)

    @classmethod
    def build(cls, entries: Sequence[DirectoryEntry]) -> "DirectorySnapshot":
        return cls(
            entries=tuple(entries),
            version=directory_version(entries),
            by_code={entry.code: entry for entry in entries},
        )


@dataclass
class FundPage:
    data: list[FundRecord]
    total: int
    page: int
    limit: int
    status: str = PAGE_OK
    version: str | None = None


def filter_entries(
    entries: Iterable[DirectoryEntry],
    allow_list: Sequence[str] | None = None,
    deny_list: Sequence[str] | None = None,
) -> list[DirectoryEntry]:
    """Apply deny then allow substring filters; an entry matching both is dropped."""
    result = list(entries)
    if deny_list:
        result = [
            entry for entry in result
            if not any(term in entry.description for term in deny_list)
        ]
    if allow_list:
        result = [
            entry for entry in result
            if any(term in entry.description for term in allow_list)
        ]
    return result


def paginate(entries: Sequence, page: int, limit: int) -> list:
    """1-based offset pagination. page/limit are trusted; callers validate them."""
    start = (page - 1) * limit
    return list(entries[start:start + limit])


def build_record(
    code: str,
    name: str,
    fund_type: str,
    nav: NavSnapshot | None,
    total_count: int = 0,
) -> FundRecord:
    """Merge a directory row with its NAV estimate, zero-filling what is missing."""
    description = f"{name} - {fund_type}"
    if nav is None:
        return FundRecord(
            id=code,
            code=code,
            name=name,
            short_name=shorten_name(name),
            type=fund_type,
            total_count=total_count,
            description=description,
            data_incomplete=True,
        )

    net_worth = nav.dwjz or 0.0
    expect_worth = nav.gsz or 0.0
    return FundRecord(
        id=code,
        code=code,
        name=name,
        short_name=shorten_name(nav.name or name),
        type=fund_type,
        net_worth=net_worth,
        expect_worth=expect_worth,
        expect_growth=nav.gszzl or 0.0,
        estimated_change=expect_worth - net_worth,
        net_worth_date=nav.jzrq,
        expect_worth_date=nav.gztime,
        total_count=total_count,
        description=description,
        data_incomplete=not nav.complete,
    )


class FundListService:
    """Builds filtered, paginated, NAV-enriched fund pages."""

    def __init__(self, adapter: FundSourceAdapter, cache: TTLCache):
        self._adapter = adapter
        self._cache = cache

    async def get_directory(self) -> DirectorySnapshot | None:
        """Return the cached directory, refreshing it from upstream on a miss.

        None means upstream is down; an empty fetch is never cached.
        """
        snapshot = self._cache.get(DIRECTORY_CACHE_KEY)
        if snapshot is not None:
            return snapshot

        entries = await self._adapter.fetch_directory()
        if not entries:
            return None
        snapshot = DirectorySnapshot.build(entries)
        self._cache.set(DIRECTORY_CACHE_KEY, snapshot)
        logger.info(f"Cached fund directory version {snapshot.version}")
        return snapshot

    async def get_entry(self, fund_code: str) -> DirectoryEntry | None:
        snapshot = await self.get_directory()
        if snapshot is None:
            return None
        return snapshot.by_code.get(fund_code)

    async def list_funds(
        self,
        page: int,
        limit: int,
        allow_list: Sequence[str] | None = None,
        deny_list: Sequence[str] | None = None,
        version: str | None = None,
    ) -> FundPage:
        snapshot = await self.get_directory()
        if snapshot is None:
            logger.warning("Fund directory unavailable, serving an empty page")
            return FundPage(data=[], total=0, page=page, limit=limit, status=PAGE_UNAVAILABLE)

        if version is not None and version != snapshot.version:
            raise DirectoryVersionChanged(version, snapshot.version)

        filtered = filter_entries(snapshot.entries, allow_list, deny_list)
        paged = paginate(filtered, page, limit)
        navs = await asyncio.gather(*(self._adapter.fetch_nav(e.code) for e in paged))

        missing = [entry.code for entry, nav in zip(paged, navs) if nav is None]
        if missing:
            logger.warning(f"NAV missing for {len(missing)}/{len(paged)} funds: {missing}")

        total = len(filtered)
        records = [
            build_record(entry.code, entry.name, entry.type, nav, total)
            for entry, nav in zip(paged, navs)
        ]
        return FundPage(
            data=records,
            total=total,
            page=page,
            limit=limit,
            version=snapshot.version,
        )

    async def records_for_codes(self, fund_codes: Sequence[str]) -> list[FundRecord]:
        """Enrich an explicit list of codes, e.g. a user's favorites."""
        if not fund_codes:
            return []
        snapshot = await self.get_directory()
        navs = await asyncio.gather(*(self._adapter.fetch_nav(code) for code in fund_codes))

        records = []
        for code, nav in zip(fund_codes, navs):
            entry = snapshot.by_code.get(code) if snapshot else None
            if entry is not None:
                name, fund_type = entry.name, entry.type
            else:
                name, fund_type = (nav.name if nav else ""), ""
            records.append(build_record(code, name, fund_type, nav, len(fund_codes)))
        return records

    async def search(self, query: str, limit: int = 20) -> list[DirectoryEntry]:
        """Match by code prefix or case-insensitive name substring."""
        query = query.strip()
        if not query:
            return []
        snapshot = await self.get_directory()
        if snapshot is None:
            return []

        lowered = query.lower()
        matches = []
        for entry in snapshot.entries:
            if entry.code.startswith(query) or lowered in entry.name.lower():
                matches.append(entry)
                if len(matches) >= limit:
                    break
        return matches


# Global instance
fund_list_service = FundListService(fund_source, directory_cache)
