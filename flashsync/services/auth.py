"""
In-process authentication session.

Tracks who is signed in and fans out lifecycle events. Credential checks live
with the identity provider; this object only learns the outcome.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SignedInCallback = Callable[[str], Awaitable[None]]
SignedOutCallback = Callable[[], Awaitable[None]]


class AuthSession:
    def __init__(self) -> None:
        self._user_id: str | None = None
        self._signed_in: list[SignedInCallback] = []
        self._signed_out: list[SignedOutCallback] = []

    def get_current_user_id(self) -> str | None:
        return self._user_id

    def on_signed_in(self, callback: SignedInCallback) -> None:
        self._signed_in.append(callback)

    def on_signed_out(self, callback: SignedOutCallback) -> None:
        self._signed_out.append(callback)

    async def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id is required")
        self._user_id = user_id
        logger.info("Signed in as %s", user_id)
        for callback in self._signed_in:
            await callback(user_id)

    async def sign_out(self) -> None:
        previous, self._user_id = self._user_id, None
        logger.info("Signed out %s", previous)
        for callback in self._signed_out:
            await callback()
