"""
Normalise the list payloads returned by the backend.

Laravel answers collections in a few shapes depending on the endpoint:
API resources (``data`` + ``meta``), plain paginators (``data`` with the
counters at the top level) or a bare list when ``paginate=false``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


def items_from_payload(payload: Any) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get('data'), list):
        return payload['data']
    return []


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 10
    last_page: int = 1

    def __post_init__(self):
        self.last_page = max(1, self.last_page)

    @classmethod
    def empty(cls, page: int = 1, per_page: int = 10) -> 'Page':
        return cls(items=[], total=0, page=page, per_page=per_page, last_page=1)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.last_page

    @property
    def previous_page(self) -> int:
        return max(1, self.page - 1)

    @property
    def next_page(self) -> int:
        return min(self.last_page, self.page + 1)

    @property
    def page_range(self) -> range:
        return range(1, self.last_page + 1)


def _pages_for(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 1


def page_from_payload(payload: Any, page: int = 1, per_page: int = 10) -> Page:
    if isinstance(payload, list):
        return Page(items=payload, total=len(payload), page=page, per_page=per_page,
                    last_page=_pages_for(len(payload), per_page))
    if not isinstance(payload, dict) or not isinstance(payload.get('data'), list):
        return Page.empty(page, per_page)

    items = payload['data']
    meta = payload.get('meta') if isinstance(payload.get('meta'), dict) else payload
    total = _as_int(meta.get('total'), len(items))
    last_page = _as_int(meta.get('last_page'), _pages_for(total, per_page))
    current = _as_int(meta.get('current_page'), page)
    return Page(items=items, total=total, page=current, per_page=per_page, last_page=last_page)
