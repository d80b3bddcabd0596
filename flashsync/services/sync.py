"""
Cache <-> remote reconciliation.

  pull  remote -> cache   full refresh on sign-in; remote is authoritative
  push  cache  -> remote  flush of queued deltas on session end and sign-out

Both directions turn every failure into ``False``; nothing raised by the remote
reaches the practice flow. Pull and push of one engine never overlap.
"""
from __future__ import annotations

import asyncio
import logging
import traceback

from flashsync.db.cache import CacheStore
from flashsync.models.deck import Deck
from flashsync.models.flashcard import Flashcard
from flashsync.models.practice import SyncStatus
from flashsync.models.progress import PendingFlashcardUpdate, PendingUpdates, UserProgress
from flashsync.remote.base import Owner, RemoteStore, RemoteStoreError
from flashsync.services.auth import AuthSession
from flashsync.services.task_registry import start_task

logger = logging.getLogger(__name__)

DEFAULT_PULL_TIMEOUT = 10.0


class SyncEngine:
    def __init__(
        self,
        store: CacheStore,
        remote: RemoteStore,
        auth: AuthSession,
        pull_timeout: float = DEFAULT_PULL_TIMEOUT,
    ) -> None:
        self._store = store
        self._remote = remote
        self._auth = auth
        self._pull_timeout = pull_timeout
        self._lock = asyncio.Lock()

    def attach(self) -> None:
        """Pull on sign-in, wipe the cache on sign-out."""
        self._auth.on_signed_in(self._handle_signed_in)
        self._auth.on_signed_out(self._handle_signed_out)

    async def _handle_signed_in(self, user_id: str) -> None:
        await self.pull()

    async def _handle_signed_out(self) -> None:
        self.clear_cache_on_logout()

    def _owner(self) -> Owner | None:
        user_id = self._auth.get_current_user_id()
        return Owner(user_id) if user_id else None

    # --- Pull ---

    async def pull(self) -> bool:
        owner = self._owner()
        if owner is None:
            logger.info("Pull without a signed-in user, wiping cache")
            self._store.clear_all()
            return False

        async with self._lock:
            self._claim_cache(owner)
            try:
                decks, flashcards, progress, tags = await asyncio.wait_for(
                    asyncio.gather(
                        self._remote.fetch_decks(owner),
                        self._remote.fetch_flashcards(owner),
                        self._remote.fetch_progress(owner),
                        self._remote.fetch_tags(owner),
                    ),
                    timeout=self._pull_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Pull for %s timed out after %.1fs, keeping cache",
                    owner.user_id, self._pull_timeout,
                )
                return False
            except RemoteStoreError as e:
                logger.warning("Pull for %s failed (%s), keeping cache", owner.user_id, e)
                return False
            except Exception:
                logger.error("Pull for %s failed:\n%s", owner.user_id, traceback.format_exc())
                return False

            self._replace_cache(decks, flashcards, progress, tags)
            logger.info(
                "Pulled %d decks, %d cards for %s",
                len(decks), len(flashcards), owner.user_id,
            )
            return True

    def _claim_cache(self, owner: Owner) -> None:
        cached = self._store.get_owner()
        if cached is not None and cached != owner.user_id:
            logger.warning(
                "Cache holds data of %s, wiping it before pulling for %s",
                cached, owner.user_id,
            )
            self._store.clear_all()
        self._store.set_owner(owner.user_id)

    def _replace_cache(
        self,
        decks: list[Deck],
        flashcards: list[Flashcard],
        progress: UserProgress | None,
        tags: list[str],
    ) -> None:
        # Deltas not yet confirmed by the remote are laid back over the fresh
        # copy; the marker is stamped only after every collection is written.
        pending = self._store.get_pending_updates()
        by_id = {u.id: u for u in pending.flashcards}
        flashcards = [
            c.model_copy(update=by_id[c.id].scheduling_state().model_dump())
            if c.id in by_id else c
            for c in flashcards
        ]
        progress = progress or UserProgress()
        if pending.progress is not None:
            progress = progress.model_copy(update=pending.progress.model_dump())

        self._store.set_decks(decks)
        self._store.set_flashcards(flashcards)
        self._store.set_progress(progress)
        self._store.set_tags(tags)
        self._store.mark_synced()

    # --- Push ---

    async def push(self) -> bool:
        owner = self._owner()
        if owner is None:
            logger.info("Push without a signed-in user, keeping queue")
            return False

        async with self._lock:
            cached = self._store.get_owner()
            if cached is not None and cached != owner.user_id:
                logger.warning(
                    "Queued updates belong to %s, not pushing them as %s",
                    cached, owner.user_id,
                )
                return False

            pending = self._store.get_pending_updates()
            if not pending.flashcards and pending.progress is None:
                return True

            writes = [self._push_card(u, owner) for u in pending.flashcards]
            if pending.progress is not None:
                writes.append(self._remote.update_progress(pending.progress, owner))

            try:
                await asyncio.gather(*writes)
            except RemoteStoreError as e:
                logger.warning("Push for %s failed (%s), will retry", owner.user_id, e)
                return False
            except Exception:
                logger.error("Push for %s failed:\n%s", owner.user_id, traceback.format_exc())
                return False

            self._store.discard_pending(pending)
            logger.info(
                "Pushed %d card updates%s for %s",
                len(pending.flashcards),
                " and progress" if pending.progress else "",
                owner.user_id,
            )
            return True

    async def _push_card(self, update: PendingFlashcardUpdate, owner: Owner) -> None:
        matched = await self._remote.update_flashcard_fields(
            update.id, update.scheduling_state(), owner
        )
        if not matched:
            # Deleted remotely or not owned: nothing to retry.
            logger.warning("Remote rejected update for card %s, dropping it", update.id)

    def schedule_push(self) -> asyncio.Task[bool] | None:
        """Fire-and-forget push. Without a running loop the queue waits for the next trigger."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, push deferred")
            return None
        return start_task(f"push-{id(self)}", self.push())

    # --- Session lifecycle ---

    async def sign_in(self, user_id: str) -> None:
        """Sign in, ending any session of a different user first."""
        current = self._auth.get_current_user_id()
        if current is not None and current != user_id:
            logger.info("Switching user from %s to %s", current, user_id)
            await self.sign_out()
        await self._auth.sign_in(user_id)

    async def sign_out(self) -> bool:
        """Flush what we can, then end the auth session (which wipes the cache)."""
        pushed = await self.push()
        if not pushed and self._store.has_pending_updates():
            pending = self._store.get_pending_updates()
            logger.warning(
                "Signing out with %d unsynced card updates; they are discarded",
                len(pending.flashcards),
            )
        await self._auth.sign_out()
        return pushed

    def clear_cache_on_logout(self) -> None:
        self._store.clear_all()

    def status(self) -> SyncStatus:
        pending: PendingUpdates = self._store.get_pending_updates()
        last_sync = self._store.get_last_sync()
        return SyncStatus(
            user_id=self._auth.get_current_user_id(),
            ready=last_sync is not None,
            last_sync=last_sync.isoformat() if last_sync else None,
            pending_flashcards=len(pending.flashcards),
            pending_progress=pending.progress is not None,
        )
