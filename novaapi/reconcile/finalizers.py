import logging
from typing import Awaitable, Callable, NamedTuple, Optional
from novaapi.reconcile.interfaces import EndpointCatalogClient, WorkloadClient
from novaapi.types.settings import Settings
from novaapi.utils.errors import OwnershipConflictError

log = logging.getLogger(__name__)


async def retry_on_conflict(
    operation: Callable[[], Awaitable], attempts: int, logger=None
):
    """Run a compare-and-update operation, retrying at once when it loses a race."""
    logger = logger or log
    attempts = max(attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except OwnershipConflictError as ex:
            if attempt == attempts:
                raise
            logger.info(f"Conflict on attempt {attempt}/{attempts}, retrying: {ex}")


class FinalizeResult(NamedTuple):
    done: bool
    error: Optional[str] = None
    conflict: bool = False


class FinalizerCoordinator:
    """Tears down a NovaAPI in dependency order.

    The owner token is removed from the shared endpoint catalog entry before
    any owned child is deleted. Deletion is reported done only when both
    steps succeeded.
    """

    def __init__(
        self,
        catalog: EndpointCatalogClient,
        workloads: WorkloadClient,
        settings: Settings,
        logger=None,
    ):
        self.catalog = catalog
        self.workloads = workloads
        self.settings = settings
        self.logger = logger or log

    async def finalize(self, owner_token: str, owner_name: str) -> FinalizeResult:
        try:
            await retry_on_conflict(
                lambda: self.catalog.remove_owner_token(owner_token),
                self.settings.conflict_retry_attempts,
                self.logger,
            )
        except OwnershipConflictError as ex:
            self.logger.warning(f"Could not release endpoint catalog entry: {ex}")
            return FinalizeResult(False, str(ex), conflict=True)
        except Exception as ex:
            self.logger.exception("Failed to release endpoint catalog entry.")
            return FinalizeResult(False, str(ex))

        try:
            await self.workloads.delete_children(owner_name)
        except Exception as ex:
            self.logger.exception("Failed to delete owned resources.")
            return FinalizeResult(False, str(ex))

        self.logger.info(f"Released {owner_name}, deletion may proceed.")
        return FinalizeResult(True)
