"""Tests for GitBranchService."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from gitscribe.config import CacheConfig
from gitscribe.events import GitEvent, InMemoryEventBus
from gitscribe.services.branch import BranchKey, BranchScope, GitBranchService

NO_DEBOUNCE = CacheConfig(debounce_seconds=0)

REMOTE_LISTING = """\
origin/main|||a1b2c3d|2023-11-14 22:13:20 +0000
origin/feature/login|||0f0f0f0|2023-11-15 10:00:00 +0000
"""

REF_LISTING = """\
refs/heads/main|origin/main|[ahead 2, behind 1]|a1b2c3d|2023-11-14|Alice|Fix parser
refs/heads/scratch|||1234567|2023-11-16|Bob|WIP
refs/remotes/origin/main|||a1b2c3d|2023-11-14|Alice|Fix parser
refs/tags/v1.0|||a1b2c3d|2023-11-14|Alice|Fix parser
"""


@pytest.fixture
def calls() -> list[BranchKey]:
    return []


@pytest.fixture
def service(
    fixture_text: Callable[[str], str],
    calls: list[BranchKey],
    event_bus: InMemoryEventBus,
) -> GitBranchService:
    listings = {
        BranchScope.LOCAL: fixture_text("branches.txt"),
        BranchScope.REMOTE: REMOTE_LISTING,
        BranchScope.ALL: REF_LISTING,
    }

    def fetch(key: BranchKey) -> str:
        calls.append(key)
        return listings[key.scope]

    return GitBranchService(
        fetch, current_branch="main", event_bus=event_bus, config=NO_DEBOUNCE
    )


class TestBranchListings:
    """Tests for the scoped listings."""

    @pytest.mark.asyncio
    async def test_local_branches(self, service: GitBranchService) -> None:
        branches = await service.get_local_branches()

        assert [b.name for b in branches] == ["main", "feature/login", "scratch"]
        assert [b.is_current for b in branches] == [True, False, False]

    @pytest.mark.asyncio
    async def test_remote_listing_is_marked_remote(self, service: GitBranchService) -> None:
        branches = await service.get_remote_branches()

        assert [b.name for b in branches] == ["origin/main", "origin/feature/login"]
        assert all(b.is_remote and not b.is_current for b in branches)

    @pytest.mark.asyncio
    async def test_ref_listing_is_detected(self, service: GitBranchService) -> None:
        branches = await service.get_all_branches()

        assert [b.name for b in branches] == ["main", "scratch", "origin/main", "v1.0"]
        remote = await service.get_branch("origin/main")
        tag = await service.get_branch("v1.0")
        assert remote is not None and remote.is_remote
        assert tag is not None and tag.is_tag
        assert await service.get_branch("nope") is None

    @pytest.mark.asyncio
    async def test_current_branch(self, service: GitBranchService) -> None:
        current = await service.get_current_branch()

        assert current is not None
        assert current.name == "main"
        assert (current.ahead, current.behind) == (2, 1)

    @pytest.mark.asyncio
    async def test_listing_is_cached(
        self, service: GitBranchService, calls: list[BranchKey]
    ) -> None:
        await service.get_local_branches()
        await service.get_current_branch()
        await service.get_diverged_branches()

        assert calls == [BranchKey(BranchScope.LOCAL)]


class TestBranchViews:
    @pytest.mark.asyncio
    async def test_diverged_ignores_gone_upstream(self, service: GitBranchService) -> None:
        diverged = await service.get_diverged_branches()

        assert [b.name for b in diverged] == ["main"]

    @pytest.mark.asyncio
    async def test_grouped_branches(self, service: GitBranchService) -> None:
        groups = await service.get_grouped_branches()

        assert groups.current is not None and groups.current.name == "main"
        assert [b.name for b in groups.local] == ["feature/login", "scratch"]
        assert len(groups.remote) == 2
        assert [b.name for b in groups.with_tracking] == ["main"]
        assert [b.name for b in groups.without_tracking] == ["feature/login", "scratch"]
        assert [b.name for b in groups.diverged] == ["main"]
        assert groups.to_dict()["current"]["name"] == "main"

    @pytest.mark.asyncio
    async def test_no_fetcher_result_is_empty(self) -> None:
        service = GitBranchService(lambda key: None, config=NO_DEBOUNCE)

        assert await service.get_local_branches() == []
        assert await service.get_current_branch() is None


class TestBranchEvents:
    @pytest.mark.asyncio
    async def test_switch_updates_current_branch(
        self, service: GitBranchService, event_bus: InMemoryEventBus
    ) -> None:
        await service.get_local_branches()

        event_bus.publish(GitEvent.BRANCH_SWITCHED.value, {"branch": "scratch"})
        current = await service.get_current_branch()

        assert service.current_branch == "scratch"
        assert current is not None and current.name == "scratch"

    @pytest.mark.asyncio
    async def test_switch_without_name_keeps_current(
        self, service: GitBranchService, event_bus: InMemoryEventBus
    ) -> None:
        await service.get_local_branches()

        event_bus.publish(GitEvent.BRANCH_SWITCHED.value, None)

        assert service.current_branch == "main"
        assert service.cache_stats().total_entries == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event",
        [
            GitEvent.BRANCH_CREATED,
            GitEvent.PUSH_COMPLETED,
            GitEvent.PULL_COMPLETED,
            GitEvent.FETCH_COMPLETED,
            GitEvent.COMMIT_CREATED,
        ],
    )
    async def test_flush_events(
        self, service: GitBranchService, event_bus: InMemoryEventBus, event: GitEvent
    ) -> None:
        await service.get_local_branches()

        event_bus.publish(event.value, {})

        assert not service.is_cached(BranchKey())

    @pytest.mark.asyncio
    async def test_staging_does_not_touch_branches(
        self, service: GitBranchService, event_bus: InMemoryEventBus
    ) -> None:
        await service.get_local_branches()

        event_bus.publish(GitEvent.FILES_STAGED.value, {"paths": ["main"]})

        assert service.is_cached(BranchKey())

    @pytest.mark.asyncio
    async def test_refresh_refetches_local(
        self, service: GitBranchService, calls: list[BranchKey]
    ) -> None:
        await service.get_all_branches()

        branches = await service.refresh()

        assert len(branches) == 3
        assert not service.is_cached(BranchKey(BranchScope.ALL))
        assert calls == [BranchKey(BranchScope.ALL), BranchKey(BranchScope.LOCAL)]


def test_branch_key_str() -> None:
    assert str(BranchKey(BranchScope.REMOTE)) == "remote"
