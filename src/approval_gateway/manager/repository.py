"""Approval repository - the single owner of pending and decided actions.

Every mutation runs inside one ``asyncio.Lock`` and replaces the stored
tuples wholesale, so readers always get immutable point-in-time snapshots.
No lock is held across storage I/O: history is persisted after the
mutation, with a version counter so an older snapshot never overwrites a
newer one.

Membership invariant: an id is in at most one of pending / history.
"""

import asyncio
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from approval_gateway.models.action import ApprovalAction, ApprovalStatus
from approval_gateway.services.storage import KeyValueStore
from approval_gateway.validator import validate_action

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_KEY = "approvals-storage"


@dataclass(frozen=True)
class RepositorySnapshot:
    """Pending and history captured at the same instant."""

    pending: tuple[ApprovalAction, ...]
    history: tuple[ApprovalAction, ...]


class ApprovalRepository:
    """In-memory store of pending actions and decided history.

    Only history is persisted; the pending set is rebuilt each session from
    polls and notifications.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        history_key: str = DEFAULT_HISTORY_KEY,
    ) -> None:
        """Initialize the repository.

        Args:
            store: Where history is persisted (None keeps it in memory only)
            history_key: Storage key for the history document
        """
        self._pending: tuple[ApprovalAction, ...] = ()
        self._history: tuple[ApprovalAction, ...] = ()
        self._deciding: frozenset[str] = frozenset()
        self._pending_generation = 0
        self._lock = asyncio.Lock()

        self._store = store
        self._history_key = history_key
        self._history_version = 0
        self._persisted_version = 0
        self._persist_lock = asyncio.Lock()

    # -- Snapshots -----------------------------------------------------------

    @property
    def pending(self) -> tuple[ApprovalAction, ...]:
        """Pending actions, in display order."""
        return self._pending

    @property
    def history(self) -> tuple[ApprovalAction, ...]:
        """Decided actions, newest decision first."""
        return self._history

    def snapshot(self) -> RepositorySnapshot:
        return RepositorySnapshot(pending=self._pending, history=self._history)

    def get_pending(self, action_id: str) -> ApprovalAction | None:
        return next((a for a in self._pending if a.id == action_id), None)

    def get_history(self, action_id: str) -> ApprovalAction | None:
        return next((a for a in self._history if a.id == action_id), None)

    def get_action(self, action_id: str) -> ApprovalAction | None:
        """Find an action in pending or history (detail views show both)."""
        return self.get_pending(action_id) or self.get_history(action_id)

    def is_deciding(self, action_id: str) -> bool:
        return action_id in self._deciding

    def _history_ids(self) -> set[str]:
        return {a.id for a in self._history}

    # -- Pending set ---------------------------------------------------------

    async def replace_pending(
        self,
        actions: Iterable[ApprovalAction],
        generation: int | None = None,
    ) -> bool:
        """Replace the pending set with a freshly validated list.

        Actions already decided locally are skipped so a late poll cannot
        resurrect them. An action that was already pending keeps its original
        ``created_at``. Duplicate ids collapse to the last occurrence.

        Args:
            actions: Validated pending actions
            generation: Poll generation; stale generations are dropped

        Returns:
            False if the list was dropped as stale, True otherwise
        """
        async with self._lock:
            if generation is not None:
                if generation <= self._pending_generation:
                    logger.debug(
                        f"Dropping stale pending list (generation {generation}, "
                        f"applied {self._pending_generation})"
                    )
                    return False
                self._pending_generation = generation

            decided = self._history_ids()
            existing = {a.id: a for a in self._pending}
            merged: dict[str, ApprovalAction] = {}

            for action in actions:
                if action.status is not ApprovalStatus.PENDING:
                    logger.warning(f"Ignoring non-pending action {action.id} in pending list")
                    continue
                if action.id in decided:
                    continue
                previous = existing.get(action.id)
                if previous is not None and previous.created_at != action.created_at:
                    action = action.model_copy(update={"created_at": previous.created_at})
                merged[action.id] = action

            removed = existing.keys() - merged.keys()
            self._pending = tuple(merged.values())

        if removed:
            logger.info(f"Reconciled away {len(removed)} pending action(s): {sorted(removed)}")
        return True

    async def insert_or_replace_pending(self, action: ApprovalAction) -> bool:
        """Upsert one pending action at the front of the list.

        Returns:
            False (and changes nothing) if the action was already decided
        """
        if action.status is not ApprovalStatus.PENDING:
            logger.warning(f"Refusing to insert non-pending action {action.id}")
            return False

        async with self._lock:
            if action.id in self._history_ids():
                logger.info(f"Ignoring replay of already decided action {action.id}")
                return False
            self._pending = (action,) + tuple(
                a for a in self._pending if a.id != action.id
            )
        return True

    # -- Decisions -----------------------------------------------------------

    async def begin_decision(self, action_id: str) -> bool:
        """Claim the in-flight slot for ``action_id``.

        Returns:
            False if a decision for this id is already in flight
        """
        async with self._lock:
            if action_id in self._deciding:
                return False
            self._deciding = self._deciding | {action_id}
            return True

    async def finish_decision(self, action_id: str) -> None:
        """Release the in-flight slot for ``action_id``."""
        async with self._lock:
            self._deciding = self._deciding - {action_id}

    async def archive(
        self,
        action_id: str,
        outcome: ApprovalStatus,
        persist: bool = True,
    ) -> ApprovalAction | None:
        """Move a pending action to history with status ``outcome``.

        Args:
            action_id: Pending action to move
            outcome: Final status to record
            persist: Save history before returning. With False the caller
                must call ``save_history()`` itself.

        Returns:
            The pre-decision record, or None if ``action_id`` was not pending
        """
        if not outcome.is_final:
            raise ValueError(f"Not a decision outcome: {outcome}")

        async with self._lock:
            original = self.get_pending(action_id)
            if original is None:
                return None
            decided = original.model_copy(update={"status": outcome})
            self._pending = tuple(a for a in self._pending if a.id != action_id)
            self._history = (decided,) + self._history
            self._history_version += 1

        if persist:
            await self._persist_history()
        return original

    async def decide(self, action_id: str, outcome: ApprovalStatus) -> bool:
        """Move a pending action to history. False means no-op."""
        return await self.archive(action_id, outcome) is not None

    async def restore_pending(self, original: ApprovalAction) -> bool:
        """Undo an optimistic decision.

        Removes the decided copy from history (if still there) and puts the
        pre-decision record back at the front of pending.
        """
        async with self._lock:
            history = list(self._history)
            index = next(
                (i for i, a in enumerate(history) if a.id == original.id), None
            )
            if index is not None:
                del history[index]
                self._history = tuple(history)
                self._history_version += 1
            self._pending = (original,) + tuple(
                a for a in self._pending if a.id != original.id
            )

        if index is not None:
            await self._persist_history()
        logger.info(f"Restored action {original.id} to pending")
        return True

    # -- History -------------------------------------------------------------

    async def clear_history(self) -> None:
        """Drop every decided action. Irreversible."""
        async with self._lock:
            self._history = ()
            self._history_version += 1
        await self._persist_history()
        logger.info("History cleared")

    async def save_history(self) -> None:
        """Persist the current history if it changed since the last save."""
        await self._persist_history()

    async def load(self) -> int:
        """Restore persisted history.

        Records that fail validation, are not decided, or collide with an id
        already known are dropped.

        Returns:
            Number of records restored
        """
        if self._store is None:
            return 0

        raw = await self._store.get_item(self._history_key)
        if raw is None:
            return 0

        try:
            document = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable history under {self._history_key}")
            return 0

        stored = document.get("history", []) if isinstance(document, dict) else []
        restored: list[ApprovalAction] = []
        for index, entry in enumerate(stored if isinstance(stored, list) else []):
            result = validate_action(entry)
            if not result.success:
                logger.warning(f"Dropping history record {index}: {result.error.describe()}")
                continue
            if not result.action.status.is_final:
                logger.warning(f"Dropping undecided history record {result.action.id}")
                continue
            restored.append(result.action)

        async with self._lock:
            known = self._history_ids() | {a.id for a in self._pending}
            added: list[ApprovalAction] = []
            for action in restored:
                if action.id not in known:
                    added.append(action)
                    known.add(action.id)
            self._history = self._history + tuple(added)

        logger.info(f"Loaded {len(added)} history record(s)")
        return len(added)

    async def _persist_history(self) -> None:
        if self._store is None:
            return

        version = self._history_version
        snapshot = self._history

        async with self._persist_lock:
            if version <= self._persisted_version:
                return
            document = json.dumps({"history": [a.to_storage() for a in snapshot]})
            write = asyncio.ensure_future(self._store.set_item(self._history_key, document))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # The write must land before a later one can start
                await asyncio.wait([write])
                if not write.cancelled() and write.exception() is None:
                    self._persisted_version = version
                raise
            except Exception as e:
                logger.error(f"Failed to persist history: {e}")
                return
            self._persisted_version = version
