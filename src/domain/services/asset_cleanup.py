"""Deferred removal of superseded image assets."""

import asyncio
from collections import deque
from dataclasses import dataclass
from uuid import UUID

import structlog

from domain.entities.asset import AssetReference, ImageKind
from domain.repositories.asset_store import IAssetStore

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class CleanupOutcome:
    """Result of one best-effort asset deletion."""

    reference: AssetReference
    owner_id: UUID
    kind: ImageKind
    succeeded: bool
    error: str | None = None


class AssetCleanupQueue:
    """
    Runs deletes of superseded assets as background tasks.

    A failed or timed-out delete is logged and recorded as an outcome; it never
    propagates to the request that scheduled it. The orphaned object stays in
    the bucket.
    """

    def __init__(
        self,
        asset_store: IAssetStore,
        timeout_seconds: float = 20.0,
        history_size: int = 100,
    ) -> None:
        self._asset_store = asset_store
        self._timeout_seconds = timeout_seconds
        self._pending: set[asyncio.Task[CleanupOutcome]] = set()
        self._history: deque[CleanupOutcome] = deque(maxlen=history_size)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def recent_outcomes(self) -> list[CleanupOutcome]:
        """Most recent outcomes, oldest first."""
        return list(self._history)

    def schedule(
        self,
        reference: AssetReference,
        *,
        owner_id: UUID,
        kind: ImageKind,
    ) -> asyncio.Task[CleanupOutcome]:
        """Start deleting ``reference`` without waiting for the result."""
        task = asyncio.create_task(
            self._run(reference, owner_id, kind),
            name=f"asset-cleanup:{reference.path}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug("asset_cleanup_scheduled", path=reference.path, kind=kind.value)
        return task

    async def drain(self) -> list[CleanupOutcome]:
        """Wait for every pending cleanup and return their outcomes."""
        if not self._pending:
            return []
        results = await asyncio.gather(*list(self._pending))
        return list(results)

    async def _run(
        self, reference: AssetReference, owner_id: UUID, kind: ImageKind
    ) -> CleanupOutcome:
        error: str | None = None
        succeeded = False
        try:
            async with asyncio.timeout(self._timeout_seconds):
                succeeded = await self._asset_store.delete(reference)
            if not succeeded:
                error = "store rejected delete"
        except TimeoutError:
            error = "timed out"
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or type(exc).__name__

        outcome = CleanupOutcome(
            reference=reference,
            owner_id=owner_id,
            kind=kind,
            succeeded=succeeded,
            error=error,
        )
        self._history.append(outcome)

        if succeeded:
            logger.info(
                "asset_cleanup_completed",
                path=reference.path,
                owner_id=str(owner_id),
                kind=kind.value,
            )
        else:
            logger.warning(
                "asset_cleanup_failed",
                path=reference.path,
                owner_id=str(owner_id),
                kind=kind.value,
                error=error,
            )
        return outcome
