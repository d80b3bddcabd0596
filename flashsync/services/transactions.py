"""
Optimistic local-first edits.

    apply_local() -> attempt_remote() -> confirmed | rollback_local()

The local change is visible immediately. A remote answer of ``False`` (row
missing or not owned) or a refused request means the store of record rejected
the change, and the local change is reverted. A remote that cannot be reached,
or no signed-in user, leaves the change in place unconfirmed until the next
pull replaces the cache.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from flashsync.remote.base import Owner, RemoteStoreError, RemoteUnavailableError

logger = logging.getLogger(__name__)


class TransactionOutcome(str, Enum):
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
    UNCONFIRMED = "unconfirmed"


class OptimisticTransaction:
    def __init__(
        self,
        name: str,
        apply_local: Callable[[], object],
        attempt_remote: Callable[[Owner], Awaitable[bool | None]],
        rollback_local: Callable[[], object],
    ) -> None:
        self.name = name
        self._apply_local = apply_local
        self._attempt_remote = attempt_remote
        self._rollback_local = rollback_local

    async def run(self, owner: Owner | None) -> TransactionOutcome:
        self._apply_local()

        if owner is None:
            logger.info("%s applied locally only (not signed in)", self.name)
            return TransactionOutcome.UNCONFIRMED

        try:
            accepted = await self._attempt_remote(owner)
        except RemoteUnavailableError as e:
            logger.warning("%s not confirmed by remote (%s)", self.name, e)
            return TransactionOutcome.UNCONFIRMED
        except RemoteStoreError as e:
            logger.warning("%s refused by remote (%s), rolling back", self.name, e)
            self._rollback_local()
            return TransactionOutcome.ROLLED_BACK

        # None means the remote call has no row to match (inserts).
        if accepted is False:
            logger.warning("%s rejected by remote, rolling back", self.name)
            self._rollback_local()
            return TransactionOutcome.ROLLED_BACK
        return TransactionOutcome.CONFIRMED
