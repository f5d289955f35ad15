"""
Pagination, search and sort helpers shared by the list endpoints
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
import re

from ..config import settings


@dataclass
class PageRequest:
    """Page/limit query parameters resolved to skip/limit"""
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    """One page of results with its navigation metadata"""
    items: List[Any]
    total: int
    page: int
    limit: int
    has_next_page: bool

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_next_page else None


def page_request(page: Optional[int], limit: Optional[int], default_limit: Optional[int] = None) -> PageRequest:
    """Resolve raw query parameters, falling back to defaults for missing or invalid values"""
    default_limit = default_limit or settings.DEFAULT_PAGE_SIZE
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return PageRequest(page=page, limit=min(limit, settings.MAX_PAGE_SIZE))


def build_page(items: List[Any], total: int, request: PageRequest) -> Page:
    """Wrap a result list, has_next_page is true while documents remain past this page"""
    return Page(
        items=items,
        total=total,
        page=request.page,
        limit=request.limit,
        has_next_page=total > request.skip + len(items),
    )


def search_filter(term: Optional[str], fields: Iterable[str]) -> Dict[str, Any]:
    """Case-insensitive substring match of term on any of the fields"""
    if not term:
        return {}
    pattern = re.escape(term)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def newest_first(sort: Optional[str]) -> bool:
    """'old_*' sort keys list oldest first, anything else newest first"""
    return not (sort or "").startswith("old_")
