import pytest
from unittest.mock import AsyncMock
from fakes import FakeCluster
from novaapi.reconcile.finalizers import FinalizerCoordinator, retry_on_conflict
from novaapi.utils.errors import OwnershipConflictError


@pytest.fixture
def cluster():
    cluster = FakeCluster()
    cluster.catalog = {"finalizers": ["nova-api", "nova-api-cell1"], "endpoints": {}}
    cluster.stateful_sets["nova-api"] = object()
    return cluster


class TestRetryOnConflict:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        operation = AsyncMock(side_effect=[OwnershipConflictError("race"), "done"])
        assert await retry_on_conflict(operation, 3) == "done"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up(self):
        operation = AsyncMock(side_effect=OwnershipConflictError("race"))
        with pytest.raises(OwnershipConflictError):
            await retry_on_conflict(operation, 3)
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        operation = AsyncMock(side_effect=RuntimeError("down"))
        with pytest.raises(RuntimeError):
            await retry_on_conflict(operation, 3)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_at_least_one_attempt(self):
        operation = AsyncMock(return_value="done")
        assert await retry_on_conflict(operation, 0) == "done"


class TestFinalizerCoordinator:
    @pytest.mark.asyncio
    async def test_releases_token_then_children(self, cluster, settings):
        coordinator = FinalizerCoordinator(cluster, cluster, settings)

        result = await coordinator.finalize("nova-api", "nova-api")

        assert result.done
        assert cluster.catalog["finalizers"] == ["nova-api-cell1"]
        assert cluster.deleted_owners == ["nova-api"]
        assert cluster.stateful_sets == {}

    @pytest.mark.asyncio
    async def test_missing_catalog_entry(self, settings):
        cluster = FakeCluster()
        coordinator = FinalizerCoordinator(cluster, cluster, settings)

        result = await coordinator.finalize("nova-api", "nova-api")

        assert result.done
        assert cluster.deleted_owners == ["nova-api"]

    @pytest.mark.asyncio
    async def test_conflict_retried(self, cluster, settings):
        cluster.catalog_conflicts = settings.conflict_retry_attempts - 1
        coordinator = FinalizerCoordinator(cluster, cluster, settings)

        result = await coordinator.finalize("nova-api", "nova-api")

        assert result.done
        assert cluster.catalog["finalizers"] == ["nova-api-cell1"]

    @pytest.mark.asyncio
    async def test_conflicts_exhausted(self, cluster, settings):
        cluster.catalog_conflicts = settings.conflict_retry_attempts
        coordinator = FinalizerCoordinator(cluster, cluster, settings)

        result = await coordinator.finalize("nova-api", "nova-api")

        assert not result.done
        assert result.conflict
        assert "nova-api" in cluster.catalog["finalizers"]
        assert cluster.deleted_owners == []

    @pytest.mark.asyncio
    async def test_children_kept_when_release_fails(self, cluster, settings):
        cluster.remove_owner_token = AsyncMock(side_effect=RuntimeError("down"))
        coordinator = FinalizerCoordinator(cluster, cluster, settings)

        result = await coordinator.finalize("nova-api", "nova-api")

        assert not result.done
        assert not result.conflict
        assert result.error == "down"
        assert cluster.deleted_owners == []

    @pytest.mark.asyncio
    async def test_child_deletion_failure(self, cluster, settings):
        cluster.delete_children = AsyncMock(side_effect=RuntimeError("forbidden"))
        coordinator = FinalizerCoordinator(cluster, cluster, settings)

        result = await coordinator.finalize("nova-api", "nova-api")

        assert not result.done
        assert cluster.catalog["finalizers"] == ["nova-api-cell1"]
