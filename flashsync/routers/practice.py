"""
Practice sessions.

Endpoints:
  POST /practice/decks/{deck_id}          start a session over the deck's cards
  GET  /practice/decks/{deck_id}/due      cards currently due, oldest first
  GET  /practice/{session_id}             session state and current card
  POST /practice/{session_id}/answer      grade the current card

Answers only touch the local cache; the queued changes are pushed in the
background once the session completes.
"""
from fastapi import APIRouter, Depends, HTTPException

from flashsync.models.flashcard import AnswerRequest, FlashcardList
from flashsync.models.practice import PracticeSessionView
from flashsync.runtime import Runtime, get_runtime
from flashsync.services.practice import SessionStateError, get_cards_for_review

router = APIRouter()


@router.post("/decks/{deck_id}", response_model=PracticeSessionView, status_code=201)
async def start_practice(deck_id: str, rt: Runtime = Depends(get_runtime)):
    session = rt.start_practice(deck_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return session.view()


@router.get("/decks/{deck_id}/due", response_model=FlashcardList)
async def due_cards(deck_id: str, rt: Runtime = Depends(get_runtime)):
    if rt.store.get_deck(deck_id) is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    items = get_cards_for_review(rt.store, deck_id)
    return FlashcardList(items=items, total=len(items))


@router.get("/{session_id}", response_model=PracticeSessionView)
async def get_session(session_id: str, rt: Runtime = Depends(get_runtime)):
    session = rt.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.view()


@router.post("/{session_id}/answer", response_model=PracticeSessionView)
async def answer(
    session_id: str, body: AnswerRequest, rt: Runtime = Depends(get_runtime)
):
    session = rt.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    try:
        session.answer(body.difficulty)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return session.view()
