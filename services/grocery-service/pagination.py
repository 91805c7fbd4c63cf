"""Paging and sorting for list endpoints."""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from fastapi import Query as QueryParam
from sqlalchemy.orm import Query

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from exceptions import ValidationError
from schemas import PageResponse


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page window plus requested sort."""
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort_by: str = ""
    sort_dir: str = "desc"

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def descending(self) -> bool:
        return self.sort_dir.lower() == "desc"

    def order_by(self, sortable: Dict[str, Any], default: str) -> Any:
        """
        Resolve the sort field against a whitelist of columns.

        Raises:
            ValidationError: If sort_by names a column that is not sortable
        """
        key = self.sort_by or default
        column = sortable.get(key)
        if column is None:
            raise ValidationError(
                f"Cannot sort by '{key}'. Allowed: {', '.join(sorted(sortable))}"
            )
        return column.desc() if self.descending else column.asc()


def page_params(default_sort: str, default_dir: str = "desc") -> Callable[..., PageRequest]:
    """Build a FastAPI dependency reading page, size, sortBy and sortDir."""

    def dependency(
        page: int = QueryParam(0, ge=0),
        size: int = QueryParam(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
        sort_by: str = QueryParam(default_sort, alias="sortBy"),
        sort_dir: str = QueryParam(default_dir, alias="sortDir", pattern="^(?i:asc|desc)$"),
    ) -> PageRequest:
        return PageRequest(page=page, size=size, sort_by=sort_by, sort_dir=sort_dir)

    return dependency


def paginate(query: Query, request: PageRequest, transform: Callable[[List[Any]], List[Any]]) -> PageResponse:
    """
    Run one page of an already ordered query.

    Args:
        query: Ordered SQLAlchemy query
        request: Page window
        transform: Converts the page's rows into response items

    Returns:
        Page of transformed rows with totals
    """
    total = query.order_by(None).count()
    rows = query.offset(request.offset).limit(request.size).all()
    return PageResponse.build(transform(rows), request.page, request.size, total)


LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """LIKE pattern matching `term` anywhere, with its wildcards taken literally."""
    escaped = term.strip()
    for char in (LIKE_ESCAPE, "%", "_"):
        escaped = escaped.replace(char, LIKE_ESCAPE + char)
    return f"%{escaped}%"
