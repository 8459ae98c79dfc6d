"""Sync engine: polling, reconciliation and optimistic decisions.

Polling treats the backend list as authoritative for the pending set: an
action that disappears from the list was resolved elsewhere and leaves
pending without entering local history.

Decisions are a two-phase protocol:

1. claim the in-flight slot and archive the action locally (optimistic),
2. POST to the action's own endpoint,
3. keep the decision on 2xx, otherwise restore the original record.

Every path that archives reaches exactly one of commit or restore before
control returns to the caller.
"""

import asyncio
import logging

from pydantic import BaseModel

from approval_gateway.exceptions import (
    ActionExpiredError,
    ActionNotFoundError,
    AlreadyDecidingError,
    ApprovalGatewayError,
)
from approval_gateway.manager.device_identity import DeviceIdentityProvider
from approval_gateway.manager.expiry import Clock, is_expired, now_ms
from approval_gateway.manager.repository import ApprovalRepository
from approval_gateway.models.action import ApprovalStatus
from approval_gateway.models.validation import ValidationIssue
from approval_gateway.services.backend import ApprovalsBackend
from approval_gateway.validator import validate_backend_list

logger = logging.getLogger(__name__)


class PollResult(BaseModel):
    """Outcome of one poll of the pending list."""

    success: bool
    generation: int
    applied: bool = False
    stale: bool = False
    pending_count: int = 0
    error: str | None = None
    validation_error: ValidationIssue | None = None


class DecisionResult(BaseModel):
    """A decision the backend accepted."""

    action_id: str
    outcome: ApprovalStatus
    message: str | None = None


class SyncEngine:
    """Keeps the repository in step with the backend and executes decisions."""

    def __init__(
        self,
        repository: ApprovalRepository,
        backend: ApprovalsBackend,
        identity: DeviceIdentityProvider,
        poll_interval: float = 30.0,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the engine.

        Args:
            repository: The single owner of action state
            backend: Backend REST client
            identity: Supplies the device token for every request
            poll_interval: Seconds between background polls
            clock: Epoch-millisecond clock (injectable for tests)
        """
        self._repository = repository
        self._backend = backend
        self._identity = identity
        self._poll_interval = poll_interval
        self._clock = clock

        self._generation = 0
        self._poll_task: asyncio.Task | None = None
        self._resync_tasks: set[asyncio.Task] = set()
        self._last_poll: PollResult | None = None

    @property
    def repository(self) -> ApprovalRepository:
        return self._repository

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def last_poll(self) -> PollResult | None:
        """Result of the most recently completed poll."""
        return self._last_poll

    # -- Polling -------------------------------------------------------------

    async def poll(self) -> PollResult:
        """Fetch, validate and apply the authoritative pending list.

        A failure of any kind leaves the pending set untouched. A result that
        completes after a newer poll has already been applied is discarded.
        """
        self._generation += 1
        generation = self._generation

        try:
            token = await self._identity.get_or_create_token()
            raw = await self._backend.fetch_pending(token)
        except ApprovalGatewayError as e:
            logger.warning(f"Poll {generation} failed: {e}")
            return self._record(PollResult(success=False, generation=generation, error=str(e)))

        batch = validate_backend_list(
            raw, backend_url=self._backend.base_url, now_ms=self._clock()
        )
        if not batch.success:
            logger.error(f"Poll {generation} rejected invalid list: {batch.error.describe()}")
            return self._record(
                PollResult(
                    success=False,
                    generation=generation,
                    error=f"Invalid response: {batch.error.describe()}",
                    validation_error=batch.error,
                )
            )

        applied = await self._repository.replace_pending(batch.actions, generation=generation)
        if not applied:
            logger.debug(f"Poll {generation} superseded by a newer result")
        return self._record(
            PollResult(
                success=True,
                generation=generation,
                applied=applied,
                stale=not applied,
                pending_count=len(self._repository.pending),
            )
        )

    def _record(self, result: PollResult) -> PollResult:
        if self._last_poll is None or result.generation >= self._last_poll.generation:
            self._last_poll = result
        return result

    async def refresh(self) -> PollResult:
        """Manual refresh; same as a scheduled poll."""
        return await self.poll()

    async def start(self) -> None:
        """Start polling on the configured interval.

        The first background poll runs one interval after start; callers that
        need data immediately call ``poll()`` first.
        """
        if self.running:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Sync engine started: polling every {self._poll_interval}s")

    async def stop(self) -> None:
        """Stop background polling and any pending resyncs."""
        tasks = list(self._resync_tasks)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._poll_task = None
        self._resync_tasks.clear()
        logger.info("Sync engine stopped")

    async def _poll_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._poll_interval)
                await self.poll()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Poll loop error: {e}")

    def _schedule_resync(self) -> None:
        task = asyncio.create_task(self.poll())
        self._resync_tasks.add(task)
        task.add_done_callback(self._resync_done)

    def _resync_done(self, task: asyncio.Task) -> None:
        self._resync_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Resync poll error: {error}")

    # -- Decisions -----------------------------------------------------------

    async def decide(self, action_id: str, outcome: ApprovalStatus) -> DecisionResult:
        """Approve or reject a pending action.

        Raises:
            AlreadyDecidingError: A decision for this id is in flight
            ActionNotFoundError: The id is not pending locally
            ActionExpiredError: The action's expiry has passed
            ApiError: The backend answered non-2xx (decision rolled back)
            NetworkError: Transport failure or timeout (decision rolled back)
        """
        if not outcome.is_final:
            raise ValueError(f"Not a decision outcome: {outcome}")

        if self._repository.is_deciding(action_id):
            raise AlreadyDecidingError(action_id)

        action = self._repository.get_pending(action_id)
        if action is None:
            raise ActionNotFoundError(action_id)
        if is_expired(action, self._clock()):
            raise ActionExpiredError(action_id, action.expiry)

        token = await self._identity.get_or_create_token()

        if not await self._repository.begin_decision(action_id):
            raise AlreadyDecidingError(action_id)
        try:
            original = await self._repository.archive(action_id, outcome, persist=False)
            if original is None:
                # Reconciled away while the token was loading
                raise ActionNotFoundError(action_id)

            # No await between the archive and this guard
            try:
                await self._repository.save_history()
                response = await self._backend.submit_decision(
                    original.endpoint_for(outcome), token, action_id
                )
            except BaseException as e:
                logger.warning(f"Decision {outcome.value} for {action_id} failed, rolling back: {e!r}")
                await self._repository.restore_pending(original)
                raise
        finally:
            await self._repository.finish_decision(action_id)

        logger.info(f"Action {action_id} {outcome.value}")
        self._schedule_resync()
        return DecisionResult(action_id=action_id, outcome=outcome, message=response.message)

    async def approve(self, action_id: str) -> DecisionResult:
        return await self.decide(action_id, ApprovalStatus.APPROVED)

    async def reject(self, action_id: str) -> DecisionResult:
        return await self.decide(action_id, ApprovalStatus.REJECTED)
