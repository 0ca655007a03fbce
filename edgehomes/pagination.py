from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Union
from urllib.parse import urlencode

from .schemas import Pagination

ELLIPSIS = "..."

PageItem = Union[int, str]


def page_numbers(current_page: int, total_pages: int) -> List[PageItem]:
    """
    Page buttons to show, with "..." standing in for skipped ranges.

    >>> page_numbers(5, 10)
    [1, '...', 4, 5, 6, '...', 10]
    """
    if total_pages <= 7:
        return list(range(1, total_pages + 1))

    pages: List[PageItem] = [1]
    if current_page > 3:
        pages.append(ELLIPSIS)

    start = max(2, current_page - 1)
    end = min(total_pages - 1, current_page + 1)
    pages.extend(range(start, end + 1))

    if current_page < total_pages - 2:
        pages.append(ELLIPSIS)
    pages.append(total_pages)
    return pages


def page_url(path: str, query: Mapping[str, str], page: int) -> str:
    """Same URL with `page` swapped in; every other filter is kept."""
    params = {k: v for k, v in query.items() if k != "page" and v != ""}
    params["page"] = str(page)
    return f"{path}?{urlencode(params)}"


@dataclass
class PageLink:
    label: PageItem
    url: Optional[str] = None
    is_current: bool = False


@dataclass
class PaginationView:
    current_page: int
    total_pages: int
    links: List[PageLink] = field(default_factory=list)
    previous_url: Optional[str] = None
    next_url: Optional[str] = None

    @property
    def visible(self) -> bool:
        return self.total_pages > 1


def build_pagination_view(
        pagination: Optional[Pagination],
        path: str,
        query: Mapping[str, str],
) -> PaginationView:
    if pagination is None:
        return PaginationView(current_page=1, total_pages=1)

    current = pagination.page
    total = pagination.totalPages
    links = []
    for item in page_numbers(current, total):
        if item == ELLIPSIS:
            links.append(PageLink(label=item))
        else:
            links.append(PageLink(label=item, url=page_url(path, query, item), is_current=item == current))

    return PaginationView(
        current_page=current,
        total_pages=total,
        links=links,
        previous_url=page_url(path, query, current - 1) if pagination.hasPreviousPage else None,
        next_url=page_url(path, query, current + 1) if pagination.hasNextPage else None,
    )
