"""
REST store of record, driven through httpx.MockTransport.

Run with:
    pytest tests/test_remote_http.py -v
"""

import json

import httpx
import pytest

from flashsync.models.flashcard import SchedulingState
from flashsync.models.progress import PendingProgressUpdate
from flashsync.remote.base import Owner, RemoteStoreError, RemoteUnavailableError
from flashsync.remote.http import HttpRemoteStore

ALICE = Owner("alice")

CARD_ROW = {
    "id": "c1",
    "user_id": "alice",
    "deck_id": "d1",
    "front": "hola",
    "back": "hello",
    "ease_factor": 2.5,
    "interval": 0,
    "repetitions": 0,
    "next_review_date": "2024-03-10T12:00:00",
    "created_at": "2024-03-10T12:00:00",
    "updated_at": "2024-03-10T12:00:00",
}


class Recorder:
    """Answers every request with the next queued response and keeps the request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _store(recorder: Recorder) -> HttpRemoteStore:
    return HttpRemoteStore(
        "https://db.example.test/",
        api_key="anon-key",
        transport=httpx.MockTransport(recorder),
    )


class TestRequests:
    async def test_fetch_filters_by_owner(self):
        rec = Recorder(httpx.Response(200, json=[CARD_ROW]))
        store = _store(rec)

        [card] = await store.fetch_flashcards(ALICE)

        req = rec.requests[0]
        assert req.url.path == "/rest/v1/flashcards"
        assert req.url.params["user_id"] == "eq.alice"
        assert req.headers["apikey"] == "anon-key"
        assert req.headers["authorization"] == "Bearer anon-key"
        assert card.front == "hola"
        assert card.next_review_date.tzinfo is not None
        await store.close()

    async def test_row_update_asks_for_representation(self, now):
        rec = Recorder(httpx.Response(200, json=[CARD_ROW]), httpx.Response(200, json=[]))
        store = _store(rec)
        fields = SchedulingState(ease_factor=2.6, interval=6, repetitions=2, next_review_date=now)

        assert await store.update_flashcard_fields("c1", fields, ALICE) is True
        assert await store.update_flashcard_fields("c9", fields, ALICE) is False

        req = rec.requests[0]
        assert req.method == "PATCH"
        assert req.headers["prefer"] == "return=representation"
        assert req.url.params["id"] == "eq.c1"
        assert req.url.params["user_id"] == "eq.alice"
        assert json.loads(req.content)["interval"] == 6

    async def test_progress_is_upserted(self, now):
        rec = Recorder(httpx.Response(201))
        store = _store(rec)
        snap = PendingProgressUpdate(total_cards_reviewed=2, current_streak=1, last_practice_date=now)

        await store.update_progress(snap, ALICE)

        req = rec.requests[0]
        assert req.method == "POST"
        assert req.url.params["on_conflict"] == "user_id"
        assert "merge-duplicates" in req.headers["prefer"]
        body = json.loads(req.content)
        assert body["user_id"] == "alice"
        assert body["total_cards_reviewed"] == 2

    async def test_tags_come_from_profile(self):
        rec = Recorder(httpx.Response(200, json=[{"tags": ["verbs", "b1", "verbs"]}]))
        store = _store(rec)

        assert await store.fetch_tags(ALICE) == ["b1", "verbs"]
        assert rec.requests[0].url.params["id"] == "eq.alice"

    async def test_decks_carry_their_tags(self):
        deck_row = {
            "id": "d1",
            "user_id": "alice",
            "name": "Spanish",
            "created_at": "2024-03-10T12:00:00Z",
            "updated_at": "2024-03-10T12:00:00Z",
        }
        rec = Recorder(
            httpx.Response(200, json=[deck_row]),
            httpx.Response(200, json=[{"deck_id": "d1", "tag": "lang"}]),
        )
        [deck] = await _store(rec).fetch_decks(ALICE)
        assert deck.tags == ["lang"]

    async def test_cards_not_created_in_foreign_deck(self, make_card):
        rec = Recorder(httpx.Response(200, json=[]))
        store = _store(rec)
        assert await store.create_flashcards("d1", [make_card("c1")], ALICE) is False
        assert len(rec.requests) == 1


class TestErrors:
    async def test_server_error_is_transient(self):
        store = _store(Recorder(httpx.Response(503)))
        with pytest.raises(RemoteUnavailableError):
            await store.fetch_decks(ALICE)

    async def test_network_error_is_transient(self):
        store = _store(Recorder(httpx.ConnectError("connection refused")))
        with pytest.raises(RemoteUnavailableError):
            await store.fetch_flashcards(ALICE)

    async def test_client_error_is_refusal(self):
        store = _store(Recorder(httpx.Response(409, json={"message": "duplicate key"})))
        with pytest.raises(RemoteStoreError) as exc:
            await store.update_deck("d1", "x", ALICE)
        assert not isinstance(exc.value, RemoteUnavailableError)
