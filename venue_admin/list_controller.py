"""
Generic state machine behind every admin list screen.

One ListController is created per open list (a Discord view), parametrized
by a ResourceSpec and the ResourceService that talks to its endpoints.
"""

import asyncio
import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from venue_admin.database import Database
from venue_admin.models import (
    ActionRequest,
    ApiResponse,
    ErrorKind,
    ListQuery,
    ListResult,
    Record,
)
from venue_admin.resources import ResourceSpec, validate_action
from venue_admin.services import ResourceService


class DegradedCache:
    """Last good page of a resource, served client-side when live fetches fail."""

    def __init__(self, resource_name: str, db: Optional[Database] = None):
        self.resource_name = resource_name
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)
        self._items: Optional[List[Record]] = None

    def update(self, items: List[Record]) -> None:
        self._items = list(items)
        if self.db is None:
            return
        try:
            self.db.save_cached_items(self.resource_name, self._items)
        except Exception as e:
            self.logger.error(
                f"Failed to persist degraded cache for '{self.resource_name}': {e}"
            )

    def items(self) -> Optional[List[Record]]:
        if self._items is None and self.db is not None:
            try:
                self._items = self.db.load_cached_items(self.resource_name)
            except Exception as e:
                self.logger.error(
                    f"Failed to load degraded cache for '{self.resource_name}': {e}"
                )
        return self._items

    def has_items(self) -> bool:
        return self.items() is not None


@dataclass
class ListState:
    query: ListQuery = field(default_factory=ListQuery)
    items: List[Record] = field(default_factory=list)
    total_count: int = 0
    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    degraded: bool = False

    @property
    def total_pages(self) -> int:
        if self.total_count <= 0:
            return 1
        return max(1, math.ceil(self.total_count / self.query.page_size))


class ListController:
    """
    Owns the query and the items shown for one resource list.

    Fetches run the blocking service call in a worker thread. Every fetch
    takes a sequence number and only the latest one may update state, so a
    slow page-2 answer can never overwrite a newer search result. After
    close() nothing updates state any more.
    """

    def __init__(
        self,
        spec: ResourceSpec,
        service: ResourceService,
        page_size: int = 10,
        debounce_seconds: float = 0.3,
        cache: Optional[DegradedCache] = None,
        pending_only: bool = False,
        on_change: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.spec = spec
        self.service = service
        self.debounce_seconds = debounce_seconds
        self.cache = cache
        self.pending_only = pending_only
        self.on_change = on_change
        self.state = ListState(query=ListQuery(page_size=max(1, page_size)))
        self.logger = logging.getLogger(f"{self.__class__.__name__}.{spec.name}")

        self._seq = 0
        self._search_task: Optional[asyncio.Task] = None
        self._search_pending = False
        self._closed = False

    @property
    def query(self) -> ListQuery:
        return self.state.query

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def visible_items(self) -> List[Record]:
        """Items to render; narrowed locally while a debounced search is pending."""
        if self._search_pending and self.state.query.search:
            return self.spec.filter_items(self.state.items, self.state.query.search)
        return self.state.items

    # --- query changes ---

    def set_search(self, term: str) -> None:
        """Must be called from the event loop; schedules the debounced fetch."""
        if self._closed:
            return
        self.state.query.search = (term or "").strip()
        self.state.query.page = 1
        self._cancel_search()
        self._search_pending = True
        self._search_task = asyncio.get_running_loop().create_task(
            self._debounced_fetch()
        )

    async def _debounced_fetch(self) -> None:
        try:
            await asyncio.sleep(self.debounce_seconds)
        except asyncio.CancelledError:
            return
        self._search_task = None
        await self.fetch()
        if self.on_change is not None and not self._closed:
            await self.on_change()

    async def wait_for_search(self) -> None:
        """Wait for a scheduled search fetch, if any, to finish."""
        task = self._search_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _cancel_search(self) -> None:
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = None

    async def set_filter(self, key: str, value: Any) -> ApiResponse:
        if value is None or value == "":
            self.state.query.filters.pop(key, None)
        else:
            self.state.query.filters[key] = value
        self.state.query.page = 1
        return await self.fetch()

    async def clear_filters(self) -> ApiResponse:
        self.state.query.filters.clear()
        self.state.query.page = 1
        return await self.fetch()

    async def set_page(self, page: int) -> bool:
        """Out-of-range pages are rejected without a request."""
        if page < 1 or page > self.state.total_pages:
            self.logger.debug(
                f"Ignoring page {page}; valid range is 1..{self.state.total_pages}"
            )
            return False
        self.state.query.page = page
        await self.fetch()
        return True

    # --- fetching ---

    async def fetch(self) -> ApiResponse:
        if self._closed:
            return ApiResponse.fail("List view was closed", ErrorKind.VALIDATION)

        # a direct fetch supersedes any pending debounced one
        self._cancel_search()
        self._seq += 1
        seq = self._seq
        query = copy.deepcopy(self.state.query)
        self.state.loading = True

        response = await asyncio.to_thread(
            self.service.list, query, self.pending_only
        )

        if self._closed or seq != self._seq:
            self.logger.debug(f"Discarding stale response for request #{seq}")
            return response

        self.state.loading = False
        self._search_pending = False
        if response.success:
            self._apply_result(response.data)
        else:
            self._apply_failure(response)
        return response

    def _apply_result(self, result: ListResult) -> None:
        self.state.items = list(result.items)
        self.state.total_count = result.total_count
        self.state.error = None
        self.state.error_kind = None
        self.state.degraded = False
        if self.cache is not None:
            self.cache.update(self.state.items)

    def _apply_failure(self, response: ApiResponse) -> None:
        self.state.error = response.error
        self.state.error_kind = response.error_kind
        cached = self.cache.items() if self.cache is not None else None
        if cached is None:
            self.state.items = []
            self.state.total_count = 0
            self.state.degraded = False
            return

        self.logger.warning(
            f"Serving cached {self.spec.name} after failed fetch: {response.error}"
        )
        matching = self.spec.filter_items(cached, self.state.query.search)
        size = self.state.query.page_size
        self.state.total_count = len(matching)
        if self.state.query.page > self.state.total_pages:
            self.state.query.page = 1
        start = (self.state.query.page - 1) * size
        self.state.items = matching[start : start + size]
        self.state.degraded = True

    # --- mutations ---

    async def mutate(self, request: ActionRequest) -> ApiResponse:
        """
        Send one action. On failure the items are left untouched. On success
        the item is patched in place, unless it was removed or the active
        filter would now exclude it, in which case the list is re-fetched.
        """
        problem = validate_action(request)
        if problem:
            return ApiResponse.fail(problem, ErrorKind.VALIDATION)

        response = await asyncio.to_thread(self.service.perform, request)
        if not response.success or self._closed:
            return response

        action = self.spec.action(request.action_type)
        if action is None or action.removes or action.patch is None:
            await self.fetch()
        elif self._excluded_by_filter(action.patch):
            await self.fetch()
        else:
            self._patch_item(request.entity_id, action.patch, response.data)
        return response

    def _excluded_by_filter(self, patch: Record) -> bool:
        status_field = self.spec.status_field
        for key, value in patch.items():
            if self.pending_only and key == status_field:
                return True
            for filter_key in (key, "status" if key == status_field else None):
                if filter_key is None or filter_key not in self.state.query.filters:
                    continue
                if str(self.state.query.filters[filter_key]).lower() != str(value).lower():
                    return True
        return False

    def _patch_item(self, entity_id: Any, patch: Record, payload: Any) -> None:
        returned = payload.get("data") if isinstance(payload, dict) else None
        updated = []
        for item in self.state.items:
            if str(item.get("id")) == str(entity_id):
                item = {**item, **patch}
                if isinstance(returned, dict) and str(returned.get("id")) == str(entity_id):
                    item.update(returned)
            updated.append(item)
        self.state.items = updated

    def close(self) -> None:
        """Stop all further state updates (the view went away)."""
        self._closed = True
        self._cancel_search()
        self._search_pending = False
