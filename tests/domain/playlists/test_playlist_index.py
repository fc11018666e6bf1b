"""Tests for playlist CRUD."""

import asyncio

import pytest

from tune_locker.core.exceptions import NotFoundError
from tune_locker.core.preferences import PLAYLISTS_KEY, MemoryPreferenceStore
from tune_locker.domain.playlists.crud import PlaylistIndex
from tune_locker.events import PLAYLISTS


def test_create_and_find(playlists, preference_store):
    playlist = asyncio.run(playlists.create("  Road Trip  "))

    assert playlist.name == "Road Trip"
    assert playlist.tracks == []
    assert playlists.get(playlist.id) is playlist
    key, document = preference_store.writes[-1]
    assert key == PLAYLISTS_KEY
    assert document[0]["name"] == "Road Trip"


def test_create_blank_name_rejected(playlists):
    with pytest.raises(ValueError):
        asyncio.run(playlists.create("   "))
    assert playlists.all() == []


def test_add_track_refuses_duplicates(playlists):
    async def scenario():
        playlist = await playlists.create("Mix")
        first = await playlists.add_track(playlist.id, "t1")
        again = await playlists.add_track(playlist.id, "t1")
        await playlists.add_track(playlist.id, "t2")
        return playlist, first, again

    playlist, first, again = asyncio.run(scenario())

    assert first is True
    assert again is False
    assert playlist.tracks == ["t1", "t2"]


def test_remove_track(playlists):
    async def scenario():
        playlist = await playlists.create("Mix")
        await playlists.add_track(playlist.id, "t1")
        removed = await playlists.remove_track(playlist.id, "t1")
        missing = await playlists.remove_track(playlist.id, "t1")
        return playlist, removed, missing

    playlist, removed, missing = asyncio.run(scenario())
    assert (removed, missing) == (True, False)
    assert playlist.tracks == []


def test_delete(playlists):
    async def scenario():
        keep = await playlists.create("Keep")
        drop = await playlists.create("Drop")
        await playlists.delete(drop.id)
        return keep

    keep = asyncio.run(scenario())
    assert [p.id for p in playlists.all()] == [keep.id]


def test_unknown_playlist_raises(playlists):
    with pytest.raises(NotFoundError):
        asyncio.run(playlists.add_track("missing", "t1"))
    with pytest.raises(NotFoundError):
        asyncio.run(playlists.delete("missing"))


def test_mutations_emit_changes(playlists, notifier):
    events = []
    notifier.subscribe(events.append)
    asyncio.run(playlists.create("Mix"))
    assert [e.kind for e in events] == [PLAYLISTS]


def test_load_skips_malformed_records():
    store = MemoryPreferenceStore(
        {
            PLAYLISTS_KEY: [
                {"id": "p1", "name": "Good", "tracks": ["a", "b"]},
                {"name": "No id"},
            ]
        }
    )
    index = PlaylistIndex(store)
    loaded = asyncio.run(index.load())

    assert [p.id for p in loaded] == ["p1"]
    assert index.get("p1").tracks == ["a", "b"]
