"""
Search, filter and pagination helpers shared by the list endpoints
"""
import math
from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")

ALL = "all"

# Fields matched by the free-text search box on each screen
PROJECT_SEARCH_FIELDS = ("name", "id", "location")
SITE_SEARCH_FIELDS = ("name", "id", "address")
USER_SEARCH_FIELDS = ("name", "email", "id", "company")
INVENTORY_SEARCH_FIELDS = ("name", "id", "category", "specifications")


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int


def field_value(entity: Any, field: str) -> Any:
    if isinstance(entity, Mapping):
        return entity.get(field)
    return getattr(entity, field, None)


def _as_text(value: Any) -> str:
    return str(getattr(value, "value", value))


def is_all(value: Optional[str]) -> bool:
    return value is None or value == "" or value.lower() == ALL


def matches_term(entity: Any, term: Optional[str], fields: Sequence[str]) -> bool:
    """Case-insensitive substring match of term against any of the fields"""
    if not term:
        return True
    needle = term.lower()
    for field in fields:
        value = field_value(entity, field)
        if value is not None and needle in _as_text(value).lower():
            return True
    return False


def matches_filters(entity: Any, filters: Optional[Mapping[str, Optional[str]]]) -> bool:
    """Exact equality per field; "all" (any case) or empty skips the field"""
    for field, expected in (filters or {}).items():
        if is_all(expected):
            continue
        if _as_text(field_value(entity, field)) != expected:
            return False
    return True


def search(
    items: Iterable[T],
    term: Optional[str] = None,
    fields: Sequence[str] = (),
    filters: Optional[Mapping[str, Optional[str]]] = None,
) -> List[T]:
    return [
        item for item in items
        if matches_term(item, term, fields) and matches_filters(item, filters)
    ]


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size > 0 else 0


def clamp_page(page: int, pages: int) -> int:
    """Clamp a requested page into [1, pages] (page 1 when there are no pages)"""
    return max(1, min(page, max(pages, 1)))


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice one page out of items. Out-of-range pages come back empty."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    start = (page - 1) * page_size
    window = list(items[start:start + page_size]) if page >= 1 else []
    return Page(
        items=window,
        total=len(items),
        page=page,
        page_size=page_size,
        total_pages=total_pages(len(items), page_size),
    )
