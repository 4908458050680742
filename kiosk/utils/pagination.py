"""Paging primitives and pagination HTTP headers.

`Pageable` carries the request's page/size/sort; `Page` is a slice of a
result set plus its total count. `generate_pagination_headers` renders
`X-Total-Count` and an RFC 5988 `Link` header for a page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class Pageable:
    page: int = 0
    size: int = 20
    sort: Tuple[Tuple[str, str], ...] = ()

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    content: List[T]
    number: int
    size: int
    total_elements: int = 0
    sort: Tuple[Tuple[str, str], ...] = field(default=())

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 1
        return int(math.ceil(self.total_elements / self.size))


def parse_sort(values: Sequence[str]) -> Tuple[Tuple[str, str], ...]:
    """Parse `property[,asc|desc]` sort parameters.

    Raises ValueError for an empty property or an unknown direction.
    """
    out = []
    for raw in values:
        parts = [p.strip() for p in raw.split(",")]
        prop = parts[0]
        if not prop:
            raise ValueError(f"invalid sort parameter: {raw!r}")
        direction = parts[1].lower() if len(parts) > 1 and parts[1] else "asc"
        if direction not in SORT_DIRECTIONS or len(parts) > 2:
            raise ValueError(f"invalid sort direction in {raw!r}")
        out.append((prop, direction))
    return tuple(out)


def _generate_uri(base_url: str, page: int, size: int) -> str:
    return f"{base_url}?page={page}&size={size}"


def generate_pagination_headers(page: Page, base_url: str) -> dict[str, str]:
    links = []
    if page.number + 1 < page.total_pages:
        links.append(f'<{_generate_uri(base_url, page.number + 1, page.size)}>; rel="next"')
    if page.number > 0:
        links.append(f'<{_generate_uri(base_url, page.number - 1, page.size)}>; rel="prev"')
    last_page = page.total_pages - 1 if page.total_pages > 0 else 0
    links.append(f'<{_generate_uri(base_url, last_page, page.size)}>; rel="last"')
    links.append(f'<{_generate_uri(base_url, 0, page.size)}>; rel="first"')
    return {
        "X-Total-Count": str(page.total_elements),
        "Link": ",".join(links),
    }
