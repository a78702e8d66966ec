"""
Paged list responses for the search/filter list endpoints
"""
from typing import Generic, List, Mapping, Optional, Sequence, TypeVar

from pydantic import BaseModel

from solar_backend.config import get_settings
from solar_backend.utils.listing import Page, clamp_page, paginate, search, total_pages

T = TypeVar("T")


class PageResponse(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int


def search_page(
    items: Sequence,
    term: Optional[str],
    fields: Sequence[str],
    filters: Optional[Mapping[str, Optional[str]]],
    page: int,
    page_size: Optional[int],
) -> Page:
    """Filter items, clamp the requested page into range and slice it"""
    settings = get_settings()
    size = min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    filtered = search(items, term, fields, filters)
    page = clamp_page(page, total_pages(len(filtered), size))
    return paginate(filtered, page, size)


def to_response(page: Page, schema) -> PageResponse:
    return PageResponse[schema](
        items=[schema.model_validate(item) for item in page.items],
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages,
    )
