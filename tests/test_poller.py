"""Tests for the refresh lifecycle and published state."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from prpulse.config import Config, PollerConfig
from prpulse.errors import ConfigurationError
from prpulse.models import CIStatus, PermissionStatus, PRFilter
from prpulse.poller import NO_TOKEN_MESSAGE, PullRequestPoller
from prpulse.queries import REVIEW_REQUESTED_SEARCH
from prpulse.services.mock_data import MOCK_VIEWER_LOGIN
from prpulse.services.token_store import MemoryTokenStore
from tests.factories import pr_node, rollup_commit, search_response


def respond_with(body=None, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


def respond_with_searches(involved, review_requested):
    def handler(request: httpx.Request) -> httpx.Response:
        query = json.loads(request.content)["query"]
        return httpx.Response(200, json=review_requested if REVIEW_REQUESTED_SEARCH in query else involved)

    return httpx.MockTransport(handler)


class GatedTransport(httpx.AsyncBaseTransport):
    """Holds requests until released while ``hold`` is set."""

    def __init__(self, held_body, free_body, free_status=200):
        self.held_body = held_body
        self.free_body = free_body
        self.free_status = free_status
        self.hold = True
        self.blocked = 0
        self.gate = asyncio.Event()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.hold:
            self.blocked += 1
            await self.gate.wait()
            return httpx.Response(200, json=self.held_body)
        return httpx.Response(self.free_status, json=self.free_body)


class TestFetch:
    """Test single fetch cycles."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = Config()
        self.store = MemoryTokenStore("ghp_test")

    @pytest.mark.asyncio
    async def test_missing_token_requests_credential(self):
        """Test that no request is made without a token."""
        poller = PullRequestPoller(self.config, MemoryTokenStore(), transport=respond_with(status_code=500))

        assert await poller.fetch() is False
        assert poller.error_message == NO_TOKEN_MESSAGE
        assert poller.needs_credential is True
        assert poller.pull_requests == ()
        assert poller.is_loading is False

    @pytest.mark.asyncio
    async def test_success_publishes_snapshot(self):
        """Test a successful fetch replaces the snapshot."""
        body = search_response(
            "alice",
            [pr_node(number=1, author="alice", commits=[rollup_commit("FAILURE")])],
        )
        poller = PullRequestPoller(
            self.config, self.store, transport=respond_with_searches(body, search_response("alice", []))
        )

        assert await poller.fetch() is True

        assert poller.viewer_login == "alice"
        assert [pr.number for pr in poller.pull_requests] == [1]
        assert poller.error_message is None
        assert poller.needs_credential is False
        assert poller.is_loading is False
        assert poller.last_updated is not None
        assert poller.attention_count == 1
        assert poller.count(PRFilter.MINE) == 1
        assert poller.overall_health is CIStatus.FAILURE
        assert poller.health_summary == "1 needs attention"

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self):
        """Test that a failed fetch leaves the last good data visible."""
        poller = PullRequestPoller(
            self.config, self.store, transport=respond_with(search_response("alice", [pr_node(number=1)]))
        )
        await poller.fetch()
        published_at = poller.last_updated

        poller._transport = respond_with(status_code=502)
        assert await poller.fetch() is False

        assert [pr.number for pr in poller.pull_requests] == [1]
        assert poller.last_updated == published_at
        assert "502" in poller.error_message
        assert poller.needs_credential is False

    @pytest.mark.asyncio
    async def test_failed_search_keeps_previous_snapshot(self):
        """Test that partial data without search results does not replace the snapshot."""
        poller = PullRequestPoller(
            self.config, self.store, transport=respond_with(search_response("alice", [pr_node(number=1)]))
        )
        await poller.fetch()
        published_at = poller.last_updated

        poller._transport = respond_with(
            {
                "data": {"viewer": {"login": "alice"}, "search": None},
                "errors": [{"message": "Something went wrong while executing your query"}],
            }
        )
        assert await poller.fetch() is False

        assert [pr.number for pr in poller.pull_requests] == [1]
        assert poller.last_updated == published_at
        assert poller.error_message == "Something went wrong while executing your query"
        assert poller.needs_credential is False

    @pytest.mark.asyncio
    async def test_rejected_token_requests_credential(self):
        """Test that a 401 flags the credential as needing replacement."""
        poller = PullRequestPoller(self.config, self.store, transport=respond_with(status_code=401))

        assert await poller.fetch() is False
        assert poller.error_message == "Invalid or expired token"
        assert poller.needs_credential is True

    @pytest.mark.asyncio
    async def test_next_success_clears_error(self):
        """Test that the error is cleared once a fetch succeeds."""
        poller = PullRequestPoller(self.config, self.store, transport=respond_with(status_code=401))
        await poller.fetch()

        poller._transport = respond_with(search_response("alice", []))
        assert await poller.fetch() is True
        assert poller.error_message is None
        assert poller.needs_credential is False

    @pytest.mark.asyncio
    async def test_mock_mode_needs_no_token(self):
        """Test that sample data is served without a token."""
        config = Config(poller=PollerConfig(use_mock_data=True))
        poller = PullRequestPoller(config, MemoryTokenStore())

        assert await poller.fetch() is True

        assert poller.viewer_login == MOCK_VIEWER_LOGIN
        counts = poller.filter_counts()
        assert all(counts[pr_filter] > 0 for pr_filter in PRFilter)

    @pytest.mark.asyncio
    async def test_superseded_fetch_is_discarded(self):
        """Test that an older fetch finishing last cannot overwrite newer data."""
        transport = GatedTransport(
            held_body=search_response("alice", [pr_node(number=1)]),
            free_body=search_response("alice", [pr_node(number=2)]),
        )
        poller = PullRequestPoller(self.config, self.store, transport=transport)

        first = asyncio.create_task(poller.fetch())
        for _ in range(1000):
            if transport.blocked >= 2:
                break
            await asyncio.sleep(0)
        assert poller.is_loading is True

        transport.hold = False
        assert await poller.fetch() is True
        assert poller.is_loading is True

        transport.gate.set()
        assert await first is False

        assert [pr.number for pr in poller.pull_requests] == [2]
        assert poller.is_loading is False

    @pytest.mark.asyncio
    async def test_older_success_after_newer_failure_is_published(self):
        """Test that a failed newer fetch does not block an older successful one."""
        transport = GatedTransport(
            held_body=search_response("alice", [pr_node(number=1)]),
            free_body={"message": "unavailable"},
            free_status=503,
        )
        poller = PullRequestPoller(self.config, self.store, transport=transport)

        first = asyncio.create_task(poller.fetch())
        for _ in range(1000):
            if transport.blocked >= 2:
                break
            await asyncio.sleep(0)

        transport.hold = False
        assert await poller.fetch() is False
        assert "503" in poller.error_message

        transport.gate.set()
        assert await first is True

        assert [pr.number for pr in poller.pull_requests] == [1]
        assert poller.error_message is None


class TestLifecycle:
    """Test start/stop and the relative timestamp."""

    @pytest.mark.asyncio
    async def test_start_fetches_immediately_and_stop_cancels(self):
        """Test the polling task."""
        config = Config(poller=PollerConfig(use_mock_data=True, poll_interval=30))
        poller = PullRequestPoller(config, MemoryTokenStore())

        task = poller.start()
        assert poller.start() is task
        for _ in range(100):
            if poller.last_updated is not None:
                break
            await asyncio.sleep(0)

        assert poller.is_running
        assert poller.pull_requests

        await poller.stop()
        assert not poller.is_running
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        """Test that stop is a no-op when not running."""
        poller = PullRequestPoller(Config(), MemoryTokenStore())
        await poller.stop()
        assert not poller.is_running

    def test_last_updated_label(self):
        """Test relative age formatting."""
        poller = PullRequestPoller(Config(), MemoryTokenStore())
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert poller.last_updated_label(now) == ""

        poller.last_updated = now - timedelta(seconds=20)
        assert poller.last_updated_label(now) == "just now"

        poller.last_updated = now - timedelta(minutes=5)
        assert poller.last_updated_label(now) == "5m ago"

        poller.last_updated = now - timedelta(hours=3, minutes=10)
        assert poller.last_updated_label(now) == "3h ago"


class TestValidateToken:
    """Test token validation through the poller."""

    @pytest.mark.asyncio
    async def test_without_token(self):
        """Test that validation needs a token."""
        poller = PullRequestPoller(Config(), MemoryTokenStore())

        with pytest.raises(ConfigurationError):
            await poller.validate_token()

    @pytest.mark.asyncio
    async def test_stores_permissions(self):
        """Test that the last validation result is kept."""
        body = {"data": {"viewer": {"login": "alice", "pullRequests": {"nodes": []}}}}
        poller = PullRequestPoller(Config(), MemoryTokenStore("ghp_test"), transport=respond_with(body))

        state = await poller.validate_token()

        assert poller.permissions is state
        assert state.viewer == "alice"
        assert all(check.status is PermissionStatus.GRANTED for check in state.checks)

    @pytest.mark.asyncio
    async def test_explicit_token_overrides_store(self):
        """Test validating a candidate token before storing it."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(401)

        poller = PullRequestPoller(Config(), MemoryTokenStore(), transport=httpx.MockTransport(handler))

        state = await poller.validate_token("ghp_candidate")

        assert not state.is_valid
        assert set(seen) == {"Bearer ghp_candidate"}
