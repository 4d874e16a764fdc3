"""Debounced, deduplicated church rating recalculation.

Each church moves through Idle -> Pending -> Executing -> Idle. The first
request for an idle church starts a single debounce timer; further requests
while it is pending are no-ops, so a burst of rating writes costs one
recalculation. A request that lands while a pass is already executing is
remembered and produces exactly one follow-up pass, because the running pass
may have read the ratings before the new write.

Failures of the background pass are logged and swallowed: the business
operation that asked for the refresh has already succeeded.
"""

import asyncio
import threading
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from .aggregator import ChurchRatingAggregator
from .config import RatingEngineConfig, default_config
from .models import (
    BatchRecalculationError,
    BatchRecalculationResult,
    RecalculationPriority,
    RecalculationRequest,
    RecalculationState,
)
from .storage import RatingStore

logger = structlog.get_logger()


@dataclass
class _ChurchSlot:
    state: RecalculationState
    request: RecalculationRequest
    task: asyncio.Task | None = None
    follow_up: RecalculationRequest | None = None


class RecalculationScheduler:
    """Owns the per-church debounce state. Construct one per process and inject it."""

    def __init__(
        self,
        aggregator: ChurchRatingAggregator,
        store: RatingStore,
        config: RatingEngineConfig | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._store = store
        self._config = config or default_config
        self._slots: dict[int, _ChurchSlot] = {}
        self._lock = threading.Lock()

    @property
    def debounce_seconds(self) -> float:
        return self._config.scheduler.debounce_seconds

    def request_recalculation(
        self, church_id: int, context: RecalculationRequest | None = None
    ) -> bool:
        """Ask for the church summary to be refreshed after the debounce window.

        Returns immediately. True when a new pass was scheduled, False when
        the request was folded into one that is already outstanding.
        Must be called from within a running event loop.
        """
        request = context or RecalculationRequest(church_id=church_id)
        if request.church_id != church_id:
            request = request.model_copy(update={"church_id": church_id})

        logger.info(
            "rating_recalculation_requested",
            church_id=church_id,
            operation=request.operation.value,
            reason=request.reason,
            actor_id=request.actor_id,
        )

        with self._lock:
            slot = self._slots.get(church_id)
            if slot is not None:
                if slot.state is RecalculationState.EXECUTING and slot.follow_up is None:
                    slot.follow_up = request
                logger.debug(
                    "rating_recalculation_already_pending",
                    church_id=church_id,
                    state=slot.state.value,
                )
                return False
            self._slots[church_id] = self._schedule(request)
        return True

    def is_pending(self, church_id: int) -> bool:
        with self._lock:
            return church_id in self._slots

    def state_of(self, church_id: int) -> RecalculationState:
        with self._lock:
            slot = self._slots.get(church_id)
            return slot.state if slot else RecalculationState.IDLE

    def pending_count(self) -> int:
        with self._lock:
            return len(self._slots)

    def cancel_all(self) -> int:
        """Emergency stop: drop every pending timer. Executing passes still finish."""
        with self._lock:
            pending = [
                (church_id, slot)
                for church_id, slot in self._slots.items()
                if slot.state is RecalculationState.PENDING
            ]
            for church_id, slot in pending:
                if slot.task is not None:
                    slot.task.cancel()
                del self._slots[church_id]
            for slot in self._slots.values():
                slot.follow_up = None

        logger.warning("pending_rating_recalculations_cleared", count=len(pending))
        return len(pending)

    async def aclose(self) -> None:
        """Cancel pending timers and wait for executing passes to finish."""
        self.cancel_all()
        with self._lock:
            running = [slot.task for slot in self._slots.values() if slot.task is not None]
        if running:
            await asyncio.gather(*running, return_exceptions=True)

    async def batch_recalculate(
        self,
        church_ids: Iterable[int],
        actor_id: str | None = None,
        priority: RecalculationPriority | str = RecalculationPriority.NORMAL,
    ) -> BatchRecalculationResult:
        """Recalculate many churches in small, paced groups.

        Group size and the pause between groups depend on priority so that
        bulk work does not saturate the database. One church failing does not
        stop the batch.
        """
        priority = RecalculationPriority(priority)
        profile = self._config.scheduler.batch_profiles[priority.value]
        ids = list(dict.fromkeys(church_ids))
        result = BatchRecalculationResult()

        logger.info(
            "batch_rating_recalculation_started",
            church_count=len(ids),
            priority=priority.value,
            actor_id=actor_id,
        )

        for start in range(0, len(ids), profile.group_size):
            group = ids[start : start + profile.group_size]
            outcomes = await asyncio.gather(
                *(self._recalculate_for_batch(church_id, actor_id) for church_id in group),
                return_exceptions=True,
            )
            for church_id, outcome in zip(group, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    result.failed += 1
                    result.errors.append(
                        BatchRecalculationError(church_id=church_id, error=str(outcome))
                    )
                else:
                    result.succeeded += 1

            if start + profile.group_size < len(ids):
                await asyncio.sleep(profile.delay_seconds)

        logger.info(
            "batch_rating_recalculation_completed",
            church_count=len(ids),
            succeeded=result.succeeded,
            failed=result.failed,
            actor_id=actor_id,
        )
        return result

    # --- internals ---

    def _schedule(self, request: RecalculationRequest) -> _ChurchSlot:
        slot = _ChurchSlot(state=RecalculationState.PENDING, request=request)
        slot.task = asyncio.get_running_loop().create_task(
            self._run_after_debounce(request.church_id, slot),
            name=f"rating-recalculation-{request.church_id}",
        )
        return slot

    async def _run_after_debounce(self, church_id: int, slot: _ChurchSlot) -> None:
        await asyncio.sleep(self.debounce_seconds)

        with self._lock:
            if self._slots.get(church_id) is not slot:
                return
            slot.state = RecalculationState.EXECUTING
            request = slot.request

        try:
            await self._execute(request)
        finally:
            with self._lock:
                if self._slots.get(church_id) is slot:
                    if slot.follow_up is not None:
                        self._slots[church_id] = self._schedule(slot.follow_up)
                    else:
                        del self._slots[church_id]

    async def _execute(self, request: RecalculationRequest) -> None:
        logger.info(
            "automatic_rating_recalculation_started",
            church_id=request.church_id,
            trigger=request.reason,
        )
        try:
            await self._aggregator.recalculate(request.church_id)
        except Exception:
            logger.exception(
                "automatic_rating_recalculation_failed",
                church_id=request.church_id,
                operation=request.operation.value,
                visit_id=request.visit_id,
                trigger=request.reason,
            )
            return

        if request.actor_id:
            await self._log_activity(
                request.church_id,
                request.actor_id,
                "Rating automatically recalculated",
                (
                    "Church rating was automatically updated after "
                    f"{request.operation.value} operation on {request.reason}"
                ),
            )

        logger.info(
            "automatic_rating_recalculation_completed",
            church_id=request.church_id,
            trigger=request.reason,
        )

    async def _recalculate_for_batch(self, church_id: int, actor_id: str | None) -> None:
        await self._aggregator.recalculate(church_id)
        if actor_id:
            await self._log_activity(
                church_id,
                actor_id,
                "Rating recalculated",
                "Church rating was recalculated as part of a batch recalculation",
            )

    async def _log_activity(
        self, church_id: int, actor_id: str, title: str, description: str
    ) -> None:
        try:
            await self._store.append_audit_entry(church_id, actor_id, title, description)
        except Exception:
            # Activity log is informational only
            logger.warning(
                "recalculation_activity_log_failed",
                church_id=church_id,
                actor_id=actor_id,
                exc_info=True,
            )
