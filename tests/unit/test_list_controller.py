import asyncio
import copy
import time

import pytest

from venue_admin.list_controller import DegradedCache, ListController
from venue_admin.models import ActionRequest, ActionType, ApiResponse, ErrorKind, ListResult
from venue_admin.resources import BANNERS, USERS


def _banners(count, status="pending", start=1):
    return [
        {"id": i, "title": f"Banner {i}", "approval_status": status}
        for i in range(start, start + count)
    ]


def _page(items, total=None):
    return ApiResponse.ok(data=ListResult(items=items, total_count=len(items) if total is None else total))


class _StubService:
    """Answers list() through `respond(query)` and records every call."""

    def __init__(self, respond=None, action_response=None):
        self.respond = respond or (lambda query: _page([]))
        self.action_response = action_response or ApiResponse.ok(message="Done")
        self.list_calls = []
        self.perform_calls = []

    def list(self, query, pending_only=False):
        self.list_calls.append((copy.deepcopy(query), pending_only))
        return self.respond(query)

    def perform(self, request):
        self.perform_calls.append(request)
        return self.action_response


@pytest.mark.unit
def test_rapid_typing_results_in_one_search_call() -> None:
    service = _StubService(lambda q: _page(_banners(2)))
    controller = ListController(BANNERS, service, debounce_seconds=0.05)

    async def run():
        controller.set_search("ab")
        controller.set_search("abc")
        await controller.wait_for_search()

    asyncio.run(run())

    assert len(service.list_calls) == 1
    assert service.list_calls[0][0].search == "abc"
    assert service.list_calls[0][0].page == 1


@pytest.mark.unit
def test_pending_search_narrows_current_items_locally() -> None:
    service = _StubService(lambda q: _page(_banners(3)))
    controller = ListController(BANNERS, service, debounce_seconds=0.05)

    async def run():
        await controller.fetch()
        controller.set_search("banner 2")
        narrowed = [item["id"] for item in controller.visible_items]
        await controller.wait_for_search()
        return narrowed

    narrowed = asyncio.run(run())

    assert narrowed == [2]
    assert len(controller.visible_items) == 3


@pytest.mark.unit
def test_search_and_filter_reset_to_first_page() -> None:
    service = _StubService(lambda q: _page(_banners(10), total=25))
    controller = ListController(BANNERS, service, debounce_seconds=0.01)

    async def run():
        await controller.fetch()
        await controller.set_page(3)
        controller.set_search("summer")
        await controller.wait_for_search()
        search_page = controller.query.page
        await controller.set_page(2)
        await controller.set_filter("status", "approved")
        return search_page

    search_page = asyncio.run(run())

    assert search_page == 1
    assert controller.query.page == 1
    assert service.list_calls[-1][0].filters == {"status": "approved"}


@pytest.mark.unit
def test_filter_with_empty_value_is_removed() -> None:
    service = _StubService()
    controller = ListController(BANNERS, service)

    async def run():
        await controller.set_filter("status", "pending")
        await controller.set_filter("status", "")

    asyncio.run(run())

    assert controller.query.filters == {}


@pytest.mark.unit
def test_items_are_replaced_not_appended() -> None:
    pages = {1: _page(_banners(10), total=25), 2: _page(_banners(10, start=11), total=25)}
    service = _StubService(lambda q: pages[q.page])
    controller = ListController(BANNERS, service)

    async def run():
        await controller.fetch()
        await controller.set_page(2)

    asyncio.run(run())

    assert [item["id"] for item in controller.state.items] == list(range(11, 21))


@pytest.mark.unit
def test_out_of_range_page_makes_no_request() -> None:
    service = _StubService(lambda q: _page(_banners(10), total=25))
    controller = ListController(BANNERS, service)

    async def run():
        await controller.fetch()
        beyond = await controller.set_page(4)
        below = await controller.set_page(0)
        last = await controller.set_page(3)
        return beyond, below, last

    beyond, below, last = asyncio.run(run())

    assert controller.state.total_pages == 3
    assert (beyond, below, last) == (False, False, True)
    assert [call[0].page for call in service.list_calls] == [1, 3]


@pytest.mark.unit
def test_failure_falls_back_to_cached_items() -> None:
    cache = DegradedCache("users")
    cache.update([{"id": i, "full_name": f"User {i}", "email": f"u{i}@example.com"} for i in range(50)])
    service = _StubService(lambda q: ApiResponse.fail("Network error occurred", ErrorKind.NETWORK))
    controller = ListController(USERS, service, cache=cache)

    asyncio.run(controller.fetch())

    assert controller.state.degraded is True
    assert controller.state.error_kind == ErrorKind.NETWORK
    assert controller.state.total_count == 50
    assert [item["id"] for item in controller.state.items] == list(range(10))


@pytest.mark.unit
def test_cached_fallback_honours_the_search_term() -> None:
    cache = DegradedCache("users")
    cache.update([{"id": i, "full_name": f"User {i}", "email": f"u{i}@example.com"} for i in range(50)])
    service = _StubService(lambda q: ApiResponse.fail("HTTP error! status: 500", ErrorKind.API))
    controller = ListController(USERS, service, cache=cache)
    controller.query.search = "user 4"

    asyncio.run(controller.fetch())

    # "User 4" and "User 40".."User 49"
    assert controller.state.total_count == 11
    assert controller.state.total_pages == 2
    assert len(controller.state.items) == 10


@pytest.mark.unit
def test_failure_without_cache_shows_empty_list_with_error() -> None:
    service = _StubService(lambda q: ApiResponse.fail("Network error occurred", ErrorKind.NETWORK))
    controller = ListController(BANNERS, service)

    asyncio.run(controller.fetch())

    assert controller.state.items == []
    assert controller.state.degraded is False
    assert controller.state.error == "Network error occurred"


@pytest.mark.unit
def test_successful_fetch_refreshes_the_cache(db) -> None:
    cache = DegradedCache("users", db)
    users = [{"id": 1, "full_name": "Ada"}]
    controller = ListController(USERS, _StubService(lambda q: _page(users)), cache=cache)

    asyncio.run(controller.fetch())

    assert DegradedCache("users", db).items() == users


@pytest.mark.unit
def test_stale_response_never_overwrites_newer_one() -> None:
    def respond(query):
        if query.page == 1:
            time.sleep(0.2)
            return _page(_banners(1, start=100), total=30)
        return _page(_banners(1, start=200), total=30)

    service = _StubService(respond)
    controller = ListController(BANNERS, service)
    controller.state.total_count = 30

    async def run():
        slow = asyncio.get_running_loop().create_task(controller.fetch())
        await asyncio.sleep(0.05)
        await controller.set_page(2)
        await slow

    asyncio.run(run())

    assert [item["id"] for item in controller.state.items] == [200]
    assert controller.query.page == 2


@pytest.mark.unit
def test_closed_controller_ignores_late_responses() -> None:
    def respond(query):
        time.sleep(0.1)
        return _page(_banners(3))

    controller = ListController(BANNERS, _StubService(respond))

    async def run():
        pending = asyncio.get_running_loop().create_task(controller.fetch())
        await asyncio.sleep(0.02)
        controller.close()
        await pending
        return await controller.fetch()

    response = asyncio.run(run())

    assert controller.state.items == []
    assert response.success is False


@pytest.mark.unit
def test_approve_in_pending_only_view_refetches() -> None:
    service = _StubService(lambda q: _page(_banners(3)))
    controller = ListController(BANNERS, service, pending_only=True)

    async def run():
        await controller.fetch()
        return await controller.mutate(ActionRequest(2, ActionType.APPROVE))

    response = asyncio.run(run())

    assert response.success is True
    assert len(service.list_calls) == 2
    assert all(pending for _, pending in service.list_calls)


@pytest.mark.unit
def test_approve_in_unfiltered_view_patches_item() -> None:
    service = _StubService(
        lambda q: _page(_banners(3)),
        action_response=ApiResponse.ok(
            data={"data": {"id": 2, "approved_at": "2024-06-05T10:00:00Z"}},
            message="Banner approved",
        ),
    )
    controller = ListController(BANNERS, service)

    async def run():
        await controller.fetch()
        return await controller.mutate(ActionRequest(2, ActionType.APPROVE))

    asyncio.run(run())

    assert len(service.list_calls) == 1
    patched = controller.state.items[1]
    assert patched["approval_status"] == "approved"
    assert patched["approved_at"] == "2024-06-05T10:00:00Z"
    assert controller.state.items[0]["approval_status"] == "pending"


@pytest.mark.unit
def test_conflicting_status_filter_refetches() -> None:
    service = _StubService(lambda q: _page(_banners(3)))
    controller = ListController(BANNERS, service)

    async def run():
        await controller.set_filter("status", "pending")
        await controller.mutate(ActionRequest(1, ActionType.REJECT, reason="Blurry"))

    asyncio.run(run())

    assert len(service.list_calls) == 2


@pytest.mark.unit
def test_empty_reason_is_rejected_before_the_service() -> None:
    service = _StubService(lambda q: _page(_banners(3)))
    controller = ListController(BANNERS, service)

    response = asyncio.run(controller.mutate(ActionRequest(1, ActionType.REJECT, reason="  ")))

    assert response.error_kind == ErrorKind.VALIDATION
    assert service.perform_calls == []


@pytest.mark.unit
def test_failed_action_leaves_items_untouched() -> None:
    service = _StubService(
        lambda q: _page(_banners(3)),
        action_response=ApiResponse.fail("Banner already approved"),
    )
    controller = ListController(BANNERS, service)

    async def run():
        await controller.fetch()
        before = copy.deepcopy(controller.state.items)
        response = await controller.mutate(ActionRequest(1, ActionType.APPROVE))
        return before, response

    before, response = asyncio.run(run())

    assert response.error == "Banner already approved"
    assert controller.state.items == before
    assert len(service.list_calls) == 1


@pytest.mark.unit
def test_delete_always_refetches() -> None:
    service = _StubService(lambda q: _page([{"id": 1, "full_name": "Ada"}]))
    controller = ListController(USERS, service)

    async def run():
        await controller.fetch()
        await controller.mutate(ActionRequest(1, ActionType.DELETE))

    asyncio.run(run())

    assert len(service.list_calls) == 2


@pytest.mark.unit
def test_zero_page_size_still_pages() -> None:
    service = _StubService(lambda q: _page(_banners(3), total=3))
    controller = ListController(BANNERS, service, page_size=0)

    asyncio.run(controller.fetch())

    assert controller.state.query.page_size == 1
    assert controller.state.total_pages == 3
    assert service.list_calls[0][0].page_size == 1
