"""Device identity: a stable client token and its backend registration."""

import asyncio
import logging
from uuid import uuid4

from approval_gateway.exceptions import ApprovalGatewayError
from approval_gateway.models.action import DeviceIdentity
from approval_gateway.services.backend import ApprovalsBackend, mask_token
from approval_gateway.services.storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_KEY = "openclaw_device_token"


class DeviceIdentityProvider:
    """Produces, persists and registers the device token.

    The token is generated once and reused for as long as secure storage
    keeps it. Registration is best effort: an unregistered device still
    polls, it just receives no pushes.
    """

    def __init__(
        self,
        secure_store: KeyValueStore,
        backend: ApprovalsBackend,
        token_key: str = DEFAULT_TOKEN_KEY,
    ) -> None:
        self._store = secure_store
        self._backend = backend
        self._token_key = token_key
        self._token: str | None = None
        self._token_task: asyncio.Task[str] | None = None
        self._registered = False

    @property
    def token(self) -> str | None:
        """The token if it has been loaded, else None."""
        return self._token

    @property
    def registered(self) -> bool:
        return self._registered

    @property
    def identity(self) -> DeviceIdentity | None:
        if self._token is None:
            return None
        return DeviceIdentity(token=self._token, registered=self._registered)

    async def get_or_create_token(self) -> str:
        """Return the persisted token, generating and storing one if absent.

        Concurrent first callers share a single load, so at most one token
        is ever generated per empty store.
        """
        if self._token is not None:
            return self._token

        if self._token_task is None:
            self._token_task = asyncio.ensure_future(self._load_or_generate())
        try:
            token = await asyncio.shield(self._token_task)
        except BaseException:
            if self._token_task.done():
                self._token_task = None
            raise
        self._token = token
        return token

    async def _load_or_generate(self) -> str:
        token = await self._store.get_item(self._token_key)
        if token:
            logger.info(f"Retrieved existing device token {mask_token(token)}")
            return token

        token = str(uuid4())
        await self._store.set_item(self._token_key, token)
        logger.info(f"Generated new device token {mask_token(token)}")
        return token

    async def register(
        self,
        token: str | None = None,
        push_token: str | None = None,
    ) -> bool:
        """Register the device with the backend.

        Args:
            token: Token to register (defaults to this device's token)
            push_token: Optional push-delivery token to associate

        Returns:
            True if the backend acknowledged the registration
        """
        token = token or await self.get_or_create_token()
        try:
            response = await self._backend.register_device(token, push_token=push_token)
        except ApprovalGatewayError as e:
            logger.warning(f"Device registration failed: {e}")
            self._registered = False
            return False
        except Exception as e:
            logger.error(f"Device registration error: {e}")
            self._registered = False
            return False

        if response is not None and response.message:
            logger.info(f"Registration response: {response.message}")
        logger.info(f"Device {mask_token(token)} registered")
        self._registered = True
        return True

    async def re_register(self) -> bool:
        """Register again with the existing token (recovery after desync)."""
        return await self.register(await self.get_or_create_token())
