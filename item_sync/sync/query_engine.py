"""
Query engine — filtered, paginated reads over stored items.

Three query shapes:
  ``query_items()``          flat attribute filters (exact match, plus
                             ``min_level >= threshold``)
  ``query_by_stats()``       an item matches if ONE of its stats satisfies
                             every stat predicate at once
  ``query_by_profession()``  an item matches if ONE of its professions
                             satisfies every profession predicate at once

Item-level ``category`` / ``item_type`` filters are pushed down to the indexed
scan; embedded-list predicates are evaluated in Python over the scan result.
Pagination is applied last, as ``[offset, offset + limit)`` over the filtered
results in ``item_id`` order.

All queries are read-only and return an empty list when nothing matches.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Optional, TypeVar

from item_sync.db.repositories.item_repo import ItemRepository
from item_sync.models.item import Item, ItemProfession, ItemStat
from item_sync.models.query import ItemFilter, Page, ProfessionFilter, StatFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def paginate(results: Sequence[T], page: Page) -> list[T]:
    """Slice ``results`` to ``[page.offset, page.offset + page.limit)``."""
    return list(results[page.offset:page.offset + page.limit])


def stat_matches(stat: ItemStat, flt: StatFilter) -> bool:
    """Return ``True`` if a single stat satisfies every predicate in ``flt``."""
    if flt.stat_name is not None and stat.name != flt.stat_name:
        return False
    if flt.stat_type is not None and stat.type != flt.stat_type:
        return False
    if flt.min_value is not None and stat.value < flt.min_value:
        return False
    return True


def profession_matches(profession: ItemProfession, flt: ProfessionFilter) -> bool:
    """Return ``True`` if a single profession satisfies every predicate in ``flt``."""
    if flt.profession is not None and profession.name != flt.profession:
        return False
    if flt.max_level is not None and profession.level > flt.max_level:
        return False
    return True


class ItemQueryEngine:
    """Read-side entry point for item queries.

    Args:
        repo: Item repository bound to an open connection.
        max_limit: Upper bound applied to any requested page size.
    """

    def __init__(self, repo: ItemRepository, max_limit: Optional[int] = None) -> None:
        self.repo = repo
        self.max_limit = max_limit

    def query_items(
        self, flt: Optional[ItemFilter] = None, page: Optional[Page] = None
    ) -> list[Item]:
        """Items matching every supplied attribute filter; no filter → all items."""
        flt = flt or ItemFilter()
        page = self._clamp(page)
        results = self.repo.find(
            category=flt.category,
            item_type=flt.item_type,
            learnable=flt.learnable,
            min_level=flt.min_level,
            sub_category=flt.sub_category,
            sub_type=flt.sub_type,
            limit=page.limit,
            offset=page.offset,
        )
        logger.debug("query_items %s %s → %d", flt, page, len(results))
        return results

    def query_by_stats(
        self, flt: Optional[StatFilter] = None, page: Optional[Page] = None
    ) -> list[Item]:
        """Items with at least one stat satisfying all stat predicates.

        Items with no stats never match.
        """
        flt = flt or StatFilter()
        return self._query_embedded(
            flt.category,
            flt.item_type,
            lambda item: any(stat_matches(s, flt) for s in item.stats),
            page,
            label=f"query_by_stats {flt}",
        )

    def query_by_profession(
        self, flt: Optional[ProfessionFilter] = None, page: Optional[Page] = None
    ) -> list[Item]:
        """Items with at least one profession satisfying all profession predicates.

        Items with no professions never match.
        """
        flt = flt or ProfessionFilter()
        return self._query_embedded(
            flt.category,
            flt.item_type,
            lambda item: any(profession_matches(p, flt) for p in item.professions),
            page,
            label=f"query_by_profession {flt}",
        )

    def _query_embedded(
        self,
        category: Optional[str],
        item_type: Optional[str],
        predicate: Callable[[Item], bool],
        page: Optional[Page],
        label: str,
    ) -> list[Item]:
        page = self._clamp(page)
        candidates = self.repo.find(category=category, item_type=item_type)
        matched = [item for item in candidates if predicate(item)]
        results = paginate(matched, page)
        logger.debug("%s %s → %d of %d", label, page, len(results), len(matched))
        return results

    def _clamp(self, page: Optional[Page]) -> Page:
        page = page or Page()
        if self.max_limit is not None and page.limit > self.max_limit:
            return Page(offset=page.offset, limit=self.max_limit)
        return page
