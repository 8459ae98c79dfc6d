"""Headless entry point: run the gateway and log the pending set."""

import asyncio
import logging

from approval_gateway import __version__
from approval_gateway.config import get_settings
from approval_gateway.gateway import ApprovalGateway
from approval_gateway.manager.expiry import countdown, now_ms

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def log_pending(gateway: ApprovalGateway) -> None:
    """Log one line per pending action with its countdown."""
    now = now_ms()
    for action in gateway.pending:
        remaining = countdown(action, now)
        state = "expired" if remaining.expired else remaining.label
        logger.info(
            f"[{action.id}] {action.action_kind.value} {action.amount} {action.coin} ({state})"
        )


async def run() -> None:
    """Run until cancelled, reporting the pending set after every poll interval."""
    settings = get_settings()
    gateway = ApprovalGateway(settings)

    logger.info(f"Approval gateway {__version__} starting")
    await gateway.start()
    try:
        while True:
            log_pending(gateway)
            await asyncio.sleep(settings.poll_interval)
    finally:
        await gateway.stop()


def main() -> None:
    configure_logging(get_settings().log_level)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
