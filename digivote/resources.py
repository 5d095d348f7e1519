import logging
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional

from .api import Reply

logger = logging.getLogger(__name__)


class Page(NamedTuple):
    items: List[Dict[str, Any]]
    current_page: int = 1
    total_pages: int = 1
    total: int = 0
    has_next: bool = False
    has_prev: bool = False


def _to_int(value, default: int) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return default


class PaginatedResource:
    """Fetch/filter/page over one admin collection.

    ``fetch`` is an ``ApiClient`` method taking a params dict. ``filters``
    names the query parameters the screen exposes; ``fixed`` are always sent
    (for example ``archived=false``). Endpoints that do not paginate are
    returned as a single page.
    """

    def __init__(self, fetch: Callable[[Optional[Dict[str, Any]]], Reply], collection: str,
                 filters=(), fixed: Optional[Dict[str, Any]] = None, page_size: int = 10,
                 paginated: bool = True):
        self.fetch = fetch
        self.collection = collection
        self.filters = tuple(filters)
        self.fixed = dict(fixed or {})
        self.page_size = page_size
        self.paginated = paginated

    def params(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        params = dict(self.fixed)
        for name in self.filters:
            value = args.get(name)
            if isinstance(value, str):
                value = value.strip()
            if value:
                params[name] = value
        if self.paginated:
            params["page"] = _to_int(args.get("page"), 1)
            params["limit"] = self.page_size
        return params

    def load(self, args: Mapping[str, Any]) -> Page:
        reply = self.fetch(self.params(args))
        items = reply.data.get(self.collection) or []
        pagination = reply.data.get("pagination")
        if not pagination:
            return Page(items, 1, 1, len(items), False, False)
        total = next((v for k, v in pagination.items() if k.startswith("total") and k != "totalPages"),
                     len(items))
        return Page(
            items=items,
            current_page=int(pagination.get("currentPage") or 1),
            total_pages=int(pagination.get("totalPages") or 1),
            total=int(total or 0),
            has_next=bool(pagination.get("hasNext")),
            has_prev=bool(pagination.get("hasPrev")),
        )


def elections_resource(api, page_size: int = 10, archived: str = "false") -> PaginatedResource:
    return PaginatedResource(api.list_elections, "elections",
                             filters=("type", "status", "search", "sortBy", "sortOrder"),
                             fixed={"archived": archived}, page_size=page_size)


def history_resource(api, page_size: int = 10) -> PaginatedResource:
    return PaginatedResource(api.list_elections, "elections", filters=("search",),
                             fixed={"status": "completed", "sortBy": "resultDeclarationDate",
                                    "sortOrder": "desc"},
                             page_size=page_size)


def candidates_resource(api, page_size: int = 10) -> PaginatedResource:
    return PaginatedResource(api.list_candidates, "candidates", filters=("search", "status", "partyName"),
                             page_size=page_size)


def users_resource(api) -> PaginatedResource:
    return PaginatedResource(api.list_users, "users", filters=("q", "sort"), paginated=False)
