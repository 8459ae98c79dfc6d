"""Approval gateway lifecycle management.

Wires storage, device identity, the repository, the sync engine and the
notification decoder together, and runs the start-up sequence the client
needs: restore history, obtain a token, register, poll.
"""

import logging
from typing import Any

from approval_gateway.config import Settings
from approval_gateway.manager.device_identity import DeviceIdentityProvider
from approval_gateway.manager.expiry import Clock, now_ms
from approval_gateway.manager.notification_decoder import DecodeResult, NotificationDecoder
from approval_gateway.manager.repository import ApprovalRepository
from approval_gateway.manager.sync_engine import DecisionResult, PollResult, SyncEngine
from approval_gateway.models.action import ApprovalAction, DeviceIdentity
from approval_gateway.services.backend import ApprovalsBackend
from approval_gateway.services.storage import FileStore, KeyValueStore

logger = logging.getLogger(__name__)


class ApprovalGateway:
    """The approval gateway service.

    Manages:
    - Device token and registration
    - Persisted history
    - Background polling of pending actions
    - Approve / reject decisions
    - Push payload intake
    """

    def __init__(
        self,
        settings: Settings,
        backend: ApprovalsBackend | None = None,
        store: KeyValueStore | None = None,
        secure_store: KeyValueStore | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the gateway.

        Args:
            settings: Gateway configuration
            backend: Backend client (built from settings if omitted)
            store: Store for persisted history (file store under state_dir)
            secure_store: Store for the device token (file store under state_dir)
            clock: Epoch-millisecond clock
        """
        self._settings = settings
        self._backend = backend or ApprovalsBackend(
            settings.api_base,
            timeout=settings.request_timeout,
            registration_timeout=settings.registration_timeout,
        )
        state_dir = settings.state_dir.expanduser()
        self._store = store or FileStore(state_dir)
        self._secure_store = secure_store or FileStore(state_dir / "secure", file_mode=0o600)

        self._identity = DeviceIdentityProvider(
            self._secure_store, self._backend, token_key=settings.device_token_key
        )
        self._repository = ApprovalRepository(self._store, history_key=settings.history_key)
        self._engine = SyncEngine(
            self._repository,
            self._backend,
            self._identity,
            poll_interval=settings.poll_interval,
            clock=clock,
        )
        self._decoder = NotificationDecoder(self._repository, clock=clock)

    @property
    def repository(self) -> ApprovalRepository:
        return self._repository

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    @property
    def identity(self) -> DeviceIdentityProvider:
        return self._identity

    @property
    def device(self) -> DeviceIdentity | None:
        return self._identity.identity

    @property
    def pending(self) -> tuple[ApprovalAction, ...]:
        return self._repository.pending

    @property
    def history(self) -> tuple[ApprovalAction, ...]:
        return self._repository.history

    async def start(self) -> PollResult:
        """Restore state, register the device and begin polling.

        Registration failure is not fatal; polling works without it.

        Returns:
            The result of the initial poll
        """
        await self._repository.load()

        token = await self._identity.get_or_create_token()
        if not await self._identity.register(token):
            logger.warning("Continuing without device registration (no push delivery)")

        result = await self._engine.poll()
        await self._engine.start()
        logger.info(f"Approval gateway started against {self._settings.api_base}")
        return result

    async def stop(self) -> None:
        await self._engine.stop()
        logger.info("Approval gateway stopped")

    async def refresh(self) -> PollResult:
        return await self._engine.refresh()

    async def approve(self, action_id: str) -> DecisionResult:
        return await self._engine.approve(action_id)

    async def reject(self, action_id: str) -> DecisionResult:
        return await self._engine.reject(action_id)

    async def handle_notification(self, payload: Any) -> DecodeResult:
        return await self._decoder.decode(payload)

    async def clear_history(self) -> None:
        await self._repository.clear_history()

    async def re_register(self) -> bool:
        return await self._identity.re_register()
