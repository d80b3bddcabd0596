"""
Deck, card and tag editing.

Every write lands in the cache first and is confirmed against the store of
record in the same request; the response carries the transaction outcome.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from flashsync.models.deck import (
    Deck,
    DeckCreate,
    DeckTagsUpdate,
    DeckUpdate,
    DeckWithStats,
    TagCreate,
)
from flashsync.models.flashcard import (
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
)
from flashsync.runtime import Runtime, get_runtime
from flashsync.services import decks as deck_service
from flashsync.services import tags as tag_service
from flashsync.services.progress import decks_with_stats
from flashsync.services.transactions import TransactionOutcome

router = APIRouter()


class DeckResult(BaseModel):
    deck: Deck
    outcome: TransactionOutcome


class FlashcardResult(BaseModel):
    card: Flashcard
    outcome: TransactionOutcome


class FlashcardsResult(BaseModel):
    items: list[Flashcard]
    outcome: TransactionOutcome


class TagsResult(BaseModel):
    tags: list[str]
    outcome: TransactionOutcome


# --- Decks ---


@router.get("/", response_model=list[DeckWithStats])
async def list_decks(tag: str | None = None, rt: Runtime = Depends(get_runtime)):
    decks = decks_with_stats(rt.store)
    if tag:
        decks = [d for d in decks if tag in d.tags]
    return decks


@router.post("/", response_model=DeckResult, status_code=201)
async def create_deck(body: DeckCreate, rt: Runtime = Depends(get_runtime)):
    result = await deck_service.create_deck(rt.store, rt.remote, rt.owner(), body)
    return DeckResult(deck=result.value, outcome=result.outcome)


@router.get("/tags", response_model=list[str])
async def list_tags(rt: Runtime = Depends(get_runtime)):
    return rt.store.get_tags()


@router.post("/tags", response_model=TagsResult, status_code=201)
async def create_tag(body: TagCreate, rt: Runtime = Depends(get_runtime)):
    result = await tag_service.create_tag(rt.store, rt.remote, rt.owner(), body.name)
    return TagsResult(tags=result.value, outcome=result.outcome)


@router.delete("/tags/{name}", response_model=TagsResult)
async def delete_tag(name: str, rt: Runtime = Depends(get_runtime)):
    result = await tag_service.delete_tag(rt.store, rt.remote, rt.owner(), name)
    if result is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return TagsResult(tags=result.value, outcome=result.outcome)


@router.get("/{deck_id}", response_model=Deck)
async def get_deck(deck_id: str, rt: Runtime = Depends(get_runtime)):
    deck = rt.store.get_deck(deck_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


@router.patch("/{deck_id}", response_model=DeckResult)
async def rename_deck(
    deck_id: str, body: DeckUpdate, rt: Runtime = Depends(get_runtime)
):
    result = await deck_service.rename_deck(rt.store, rt.remote, rt.owner(), deck_id, body)
    if result is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return DeckResult(deck=result.value, outcome=result.outcome)


@router.delete("/{deck_id}", response_model=DeckResult)
async def delete_deck(deck_id: str, rt: Runtime = Depends(get_runtime)):
    result = await deck_service.delete_deck(rt.store, rt.remote, rt.owner(), deck_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return DeckResult(deck=result.value, outcome=result.outcome)


@router.put("/{deck_id}/tags", response_model=DeckResult)
async def set_deck_tags(
    deck_id: str, body: DeckTagsUpdate, rt: Runtime = Depends(get_runtime)
):
    result = await tag_service.set_deck_tags(
        rt.store, rt.remote, rt.owner(), deck_id, body.tags
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return DeckResult(deck=result.value, outcome=result.outcome)


@router.post("/{deck_id}/tags/{tag}/toggle", response_model=DeckResult)
async def toggle_deck_tag(deck_id: str, tag: str, rt: Runtime = Depends(get_runtime)):
    result = await tag_service.toggle_deck_tag(
        rt.store, rt.remote, rt.owner(), deck_id, tag
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return DeckResult(deck=result.value, outcome=result.outcome)


# --- Cards ---


@router.get("/{deck_id}/cards", response_model=FlashcardList)
async def list_cards(deck_id: str, rt: Runtime = Depends(get_runtime)):
    if rt.store.get_deck(deck_id) is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    items = rt.store.get_flashcards_for_deck(deck_id)
    return FlashcardList(items=items, total=len(items))


@router.post("/{deck_id}/cards", response_model=FlashcardsResult, status_code=201)
async def add_cards(
    deck_id: str, body: list[FlashcardCreate], rt: Runtime = Depends(get_runtime)
):
    result = await deck_service.add_flashcards(
        rt.store, rt.remote, rt.owner(), deck_id, body
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return FlashcardsResult(items=result.value, outcome=result.outcome)


@router.patch("/cards/{card_id}", response_model=FlashcardResult)
async def edit_card(
    card_id: str, body: FlashcardUpdate, rt: Runtime = Depends(get_runtime)
):
    result = await deck_service.edit_flashcard(
        rt.store, rt.remote, rt.owner(), card_id, body
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return FlashcardResult(card=result.value, outcome=result.outcome)


@router.delete("/cards/{card_id}", response_model=FlashcardResult)
async def remove_card(card_id: str, rt: Runtime = Depends(get_runtime)):
    result = await deck_service.remove_flashcard(rt.store, rt.remote, rt.owner(), card_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return FlashcardResult(card=result.value, outcome=result.outcome)
