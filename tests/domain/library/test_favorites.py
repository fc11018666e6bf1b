"""Tests for the favorites index."""

import asyncio

import pytest
from conftest import make_track

from tune_locker.core.exceptions import PersistenceError
from tune_locker.core.preferences import FAVORITES_KEY, MemoryPreferenceStore
from tune_locker.domain.library.favorites import FavoritesIndex
from tune_locker.events import FAVORITE


def test_toggle_twice_persists_both_states_in_order(preference_store):
    favorites = FavoritesIndex(preference_store)

    async def scenario():
        # Both toggles issued back to back
        return await asyncio.gather(favorites.toggle("a"), favorites.toggle("a"))

    results = asyncio.run(scenario())

    assert results == [True, False]
    assert not favorites.is_favorite("a")
    assert preference_store.writes == [(FAVORITES_KEY, ["a"]), (FAVORITES_KEY, [])]


def test_toggle_emits_change(preference_store, notifier):
    events = []
    notifier.subscribe(events.append)
    favorites = FavoritesIndex(preference_store, notifier)

    asyncio.run(favorites.toggle("t1"))

    assert [(e.kind, e.track_id) for e in events] == [(FAVORITE, "t1")]


def test_load_restores_ids():
    store = MemoryPreferenceStore({FAVORITES_KEY: ["b", "a"]})
    favorites = FavoritesIndex(store)
    asyncio.run(favorites.load())

    assert favorites.ids() == ["b", "a"]
    assert favorites.is_favorite("a")
    assert not favorites.is_favorite("c")


def test_load_with_nothing_stored(preference_store):
    favorites = FavoritesIndex(preference_store)
    asyncio.run(favorites.load())
    assert favorites.ids() == []


def test_filter_tracks_keeps_library_order(preference_store):
    favorites = FavoritesIndex(preference_store)
    library = [make_track("a"), make_track("b"), make_track("c")]

    async def scenario():
        await favorites.toggle("c")
        await favorites.toggle("a")

    asyncio.run(scenario())

    assert [t.id for t in favorites.filter_tracks(library)] == ["a", "c"]


def test_failed_write_raises_and_keeps_flip():
    class BrokenStore(MemoryPreferenceStore):
        async def save(self, key, value):
            raise PersistenceError("read-only")

    favorites = FavoritesIndex(BrokenStore())
    with pytest.raises(PersistenceError):
        asyncio.run(favorites.toggle("a"))
    assert favorites.is_favorite("a")
