"""
Removes stored articles that no upstream source reports any more.
"""
from typing import Iterable, Protocol

import structlog

from article_sync.models.domain import ReconcileResult

logger = structlog.get_logger()


class IdentityStore(Protocol):
    async def select_all_identities(self) -> set[str]:
        ...

    async def delete_by_identities(self, batch: Iterable[str]) -> int:
        ...


class Reconciler:
    """
    Deletes stored identities absent from the current run, in bounded batches.

    Batches run one after another. A failed batch is recorded and the
    remaining batches still run.
    """

    def __init__(self, store: IdentityStore, batch_size: int = 50):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.batch_size = batch_size

    async def reconcile(self, current_identities: Iterable[str]) -> ReconcileResult:
        current = set(current_identities)
        result = ReconcileResult()

        try:
            stored = await self.store.select_all_identities()
        except Exception as e:
            logger.error("Failed to list stored articles", error=str(e))
            result.errors.append(f"Failed to list stored articles: {e}")
            return result

        stale = sorted(stored - current)
        if not stale:
            logger.info("No stale articles to remove", stored=len(stored))
            return result

        logger.info("Removing stale articles", count=len(stale))

        for start in range(0, len(stale), self.batch_size):
            batch = stale[start:start + self.batch_size]
            try:
                result.removed += await self.store.delete_by_identities(batch)
            except Exception as e:
                logger.error(
                    "Failed to delete article batch",
                    batch_start=start,
                    batch_size=len(batch),
                    error=str(e),
                )
                result.errors.append(f"Batch starting at {start}: {e}")

        logger.info("Cleanup finished", removed=result.removed, errors=len(result.errors))
        return result
