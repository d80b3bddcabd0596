"""
REST store of record over httpx.

Speaks the PostgREST dialect (``/rest/v1/<table>?column=eq.value``) used by
hosted Postgres backends. Single-row writes ask for ``return=representation``
so an empty body tells us the id/owner filter matched nothing.
"""
from __future__ import annotations

from typing import Any

import httpx

from flashsync.models.deck import Deck, normalize_tags
from flashsync.models.flashcard import Flashcard, SchedulingState
from flashsync.models.progress import PendingProgressUpdate, UserProgress
from flashsync.remote.base import (
    Owner,
    RemoteStore,
    RemoteStoreError,
    RemoteUnavailableError,
)


_RETURN_ROWS = {"Prefer": "return=representation"}
_UPSERT = {"Prefer": "resolution=merge-duplicates,return=minimal"}


def _eq(value: str) -> str:
    return f"eq.{value}"


class HttpRemoteStore(RemoteStore):
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        access_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"apikey": api_key, "Content-Type": "application/json"}
        if access_token or api_key:
            headers["Authorization"] = f"Bearer {access_token or api_key}"
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            res = await self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.TransportError as e:
            raise RemoteUnavailableError(f"{method} {table}: {e}") from e

        if res.status_code >= 500:
            raise RemoteUnavailableError(
                f"{method} {table}: HTTP {res.status_code}"
            )
        if res.status_code >= 400:
            raise RemoteStoreError(
                f"{method} {table}: HTTP {res.status_code} {res.text[:200]}"
            )
        if not res.content:
            return None
        return res.json()

    async def _matched(
        self, method: str, table: str, params: dict[str, str], json: Any = None
    ) -> bool:
        rows = await self._request(method, table, params, json, _RETURN_ROWS)
        return bool(rows)

    async def _owns_deck(self, deck_id: str, owner: Owner) -> bool:
        rows = await self._request(
            "GET", "decks", {"select": "id", "id": _eq(deck_id), **owner.params()}
        )
        return bool(rows)

    # --- Pull ---

    async def fetch_decks(self, owner: Owner) -> list[Deck]:
        deck_rows = await self._request(
            "GET", "decks",
            {"select": "*", "order": "created_at.desc", **owner.params()},
        )
        tag_rows = await self._request(
            "GET", "deck_tags", {"select": "deck_id,tag", **owner.params()}
        )
        tags_by_deck: dict[str, list[str]] = {}
        for row in tag_rows or []:
            tags_by_deck.setdefault(row["deck_id"], []).append(row["tag"])
        return [
            Deck(**{**row, "tags": normalize_tags(tags_by_deck.get(row["id"], []))})
            for row in deck_rows or []
        ]

    async def fetch_flashcards(self, owner: Owner) -> list[Flashcard]:
        rows = await self._request(
            "GET", "flashcards", {"select": "*", **owner.params()}
        )
        return [Flashcard(**row) for row in rows or []]

    async def fetch_progress(self, owner: Owner) -> UserProgress | None:
        rows = await self._request(
            "GET", "user_progress", {"select": "*", **owner.params()}
        )
        return UserProgress(**rows[0]) if rows else None

    async def fetch_tags(self, owner: Owner) -> list[str]:
        rows = await self._request(
            "GET", "profiles", {"select": "tags", **owner.params("id")}
        )
        if not rows:
            return []
        return normalize_tags(rows[0].get("tags") or [])

    # --- Push ---

    async def update_flashcard_fields(
        self, card_id: str, fields: SchedulingState, owner: Owner
    ) -> bool:
        return await self._matched(
            "PATCH", "flashcards",
            {"id": _eq(card_id), **owner.params()},
            fields.model_dump(mode="json"),
        )

    async def update_progress(
        self, snapshot: PendingProgressUpdate, owner: Owner
    ) -> None:
        await self._request(
            "POST", "user_progress",
            {"on_conflict": "user_id"},
            {"user_id": owner.user_id, **snapshot.model_dump(mode="json")},
            _UPSERT,
        )

    # --- Decks ---

    async def create_deck(self, deck: Deck, owner: Owner) -> None:
        body = deck.model_dump(mode="json", exclude={"tags"})
        await self._request("POST", "decks", json={**body, "user_id": owner.user_id})
        if deck.tags:
            await self._request(
                "POST", "deck_tags",
                json=[
                    {"deck_id": deck.id, "user_id": owner.user_id, "tag": t}
                    for t in deck.tags
                ],
            )

    async def update_deck(self, deck_id: str, name: str, owner: Owner) -> bool:
        return await self._matched(
            "PATCH", "decks", {"id": _eq(deck_id), **owner.params()}, {"name": name}
        )

    async def delete_deck(self, deck_id: str, owner: Owner) -> bool:
        return await self._matched(
            "DELETE", "decks", {"id": _eq(deck_id), **owner.params()}
        )

    async def set_deck_tags(
        self, deck_id: str, tags: list[str], owner: Owner
    ) -> bool:
        if not await self._owns_deck(deck_id, owner):
            return False
        await self._request(
            "DELETE", "deck_tags", {"deck_id": _eq(deck_id), **owner.params()}
        )
        if tags:
            await self._request(
                "POST", "deck_tags",
                json=[
                    {"deck_id": deck_id, "user_id": owner.user_id, "tag": t}
                    for t in tags
                ],
            )
        return True

    # --- Flashcards ---

    async def create_flashcards(
        self, deck_id: str, cards: list[Flashcard], owner: Owner
    ) -> bool:
        if not await self._owns_deck(deck_id, owner):
            return False
        await self._request(
            "POST", "flashcards",
            json=[
                {**c.model_dump(mode="json"), "user_id": owner.user_id}
                for c in cards
            ],
        )
        return True

    async def update_flashcard_content(
        self, card_id: str, front: str, back: str, owner: Owner
    ) -> bool:
        return await self._matched(
            "PATCH", "flashcards",
            {"id": _eq(card_id), **owner.params()},
            {"front": front, "back": back},
        )

    async def delete_flashcard(self, card_id: str, owner: Owner) -> bool:
        return await self._matched(
            "DELETE", "flashcards", {"id": _eq(card_id), **owner.params()}
        )

    # --- Tag registry (stored as an array on the profile row) ---

    async def _set_profile_tags(self, tags: list[str], owner: Owner) -> None:
        await self._request(
            "PATCH", "profiles", owner.params("id"), {"tags": normalize_tags(tags)}
        )

    async def add_tag(self, tag: str, owner: Owner) -> None:
        tags = await self.fetch_tags(owner)
        if tag not in tags:
            await self._set_profile_tags([*tags, tag], owner)

    async def remove_tag(self, tag: str, owner: Owner) -> None:
        tags = await self.fetch_tags(owner)
        await self._set_profile_tags([t for t in tags if t != tag], owner)
        await self._request(
            "DELETE", "deck_tags", {"tag": _eq(tag), **owner.params()}
        )
