from __future__ import annotations

from flashsync.db.cache import CacheStore
from flashsync.models.deck import Deck, normalize_tags
from flashsync.remote.base import Owner, RemoteStore
from flashsync.services.decks import EditResult
from flashsync.services.transactions import OptimisticTransaction, TransactionOutcome


async def create_tag(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    name: str,
) -> EditResult[list[str]]:
    """Register a tag. Already-registered tags are left alone."""
    if name in store.get_tags():
        return EditResult(store.get_tags(), TransactionOutcome.CONFIRMED)

    outcome = await OptimisticTransaction(
        f"create tag {name!r}",
        apply_local=lambda: store.add_tag(name),
        attempt_remote=lambda o: remote.add_tag(name, o),
        rollback_local=lambda: store.remove_tag(name),
    ).run(owner)
    return EditResult(store.get_tags(), outcome)


async def delete_tag(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    name: str,
) -> EditResult[list[str]] | None:
    """Unregister a tag and strip it from every deck."""
    if name not in store.get_tags():
        return None
    tags_before = store.get_tags()
    decks_before = store.get_decks()

    def _apply() -> None:
        store.remove_tag(name)
        store.set_decks(
            [d.model_copy(update={"tags": [t for t in d.tags if t != name]}) for d in decks_before]
        )

    def _restore() -> None:
        store.set_tags(tags_before)
        store.set_decks(decks_before)

    outcome = await OptimisticTransaction(
        f"delete tag {name!r}",
        apply_local=_apply,
        attempt_remote=lambda o: remote.remove_tag(name, o),
        rollback_local=_restore,
    ).run(owner)
    return EditResult(store.get_tags(), outcome)


async def set_deck_tags(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    deck_id: str,
    tags: list[str],
) -> EditResult[Deck] | None:
    deck = store.get_deck(deck_id)
    if deck is None:
        return None
    tags = normalize_tags(tags)
    previous = deck.tags

    outcome = await OptimisticTransaction(
        f"tag deck {deck_id}",
        apply_local=lambda: store.set_deck_tags(deck_id, tags),
        attempt_remote=lambda o: remote.set_deck_tags(deck_id, tags, o),
        rollback_local=lambda: store.set_deck_tags(deck_id, previous),
    ).run(owner)
    return EditResult(store.get_deck(deck_id) or deck, outcome)


async def toggle_deck_tag(
    store: CacheStore,
    remote: RemoteStore,
    owner: Owner | None,
    deck_id: str,
    tag: str,
) -> EditResult[Deck] | None:
    """Add ``tag`` to the deck, or remove it if the deck already carries it."""
    deck = store.get_deck(deck_id)
    if deck is None:
        return None
    if tag in deck.tags:
        tags = [t for t in deck.tags if t != tag]
    else:
        tags = [*deck.tags, tag]
    return await set_deck_tags(store, remote, owner, deck_id, tags)
