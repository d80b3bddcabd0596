"""
Wiring of the core objects for one process.

The cache store is built here and handed to the practice controller and the
sync engine by reference; nothing else holds it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fastapi import Request

from flashsync.config import Settings
from flashsync.db import open_cache
from flashsync.db.cache import CacheStore
from flashsync.remote.base import Owner, RemoteStore
from flashsync.remote.http import HttpRemoteStore
from flashsync.remote.sqlite import SqliteRemoteStore
from flashsync.services.auth import AuthSession
from flashsync.services.practice import PracticeSession, SessionRegistry, start_session
from flashsync.services.sync import SyncEngine
from flashsync.services.task_registry import drain

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    store: CacheStore
    remote: RemoteStore
    auth: AuthSession
    sync: SyncEngine
    sessions: SessionRegistry = field(default_factory=SessionRegistry)

    @classmethod
    def assemble(
        cls,
        store: CacheStore,
        remote: RemoteStore,
        auth: AuthSession | None = None,
        pull_timeout: float = 10.0,
    ) -> Runtime:
        auth = auth or AuthSession()
        engine = SyncEngine(store, remote, auth, pull_timeout=pull_timeout)
        engine.attach()
        runtime = cls(store=store, remote=remote, auth=auth, sync=engine)

        async def _forget_sessions() -> None:
            runtime.sessions.clear()

        auth.on_signed_out(_forget_sessions)
        return runtime

    def owner(self) -> Owner | None:
        user_id = self.auth.get_current_user_id()
        return Owner(user_id) if user_id else None

    def start_practice(self, deck_id: str) -> PracticeSession | None:
        session = start_session(self.store, deck_id, on_complete=self.sync.schedule_push)
        if session is not None:
            self.sessions.add(session)
        return session

    async def close(self) -> None:
        await drain()
        await self.remote.close()
        self.store.close()


async def build_remote(cfg: Settings) -> RemoteStore:
    if cfg.remote_backend == "http":
        logger.info("Using REST store of record at %s", cfg.remote_url)
        return HttpRemoteStore(
            cfg.remote_url, cfg.remote_api_key, timeout=cfg.push_timeout_seconds
        )
    remote = SqliteRemoteStore(cfg.data_dir / cfg.remote_sqlite_filename)
    await remote.init()
    return remote


async def build_runtime(cfg: Settings) -> Runtime:
    store = open_cache(cfg.data_dir)
    remote = await build_remote(cfg)
    return Runtime.assemble(store, remote, pull_timeout=cfg.pull_timeout_seconds)


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime
