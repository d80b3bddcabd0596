from fastapi import APIRouter, Depends

from flashsync.models.deck import DeckProgress
from flashsync.models.progress import ProgressStats, UserProgress
from flashsync.runtime import Runtime, get_runtime
from flashsync.services.progress import deck_progress, progress_stats

router = APIRouter()


@router.get("/", response_model=UserProgress)
async def get_progress(rt: Runtime = Depends(get_runtime)):
    return rt.store.get_progress()


@router.get("/stats", response_model=ProgressStats)
async def get_stats(rt: Runtime = Depends(get_runtime)):
    """Streak, overall mastery and the weakest deck, all from the cache."""
    return progress_stats(rt.store)


@router.get("/decks", response_model=list[DeckProgress])
async def get_deck_progress(rt: Runtime = Depends(get_runtime)):
    return deck_progress(rt.store)
