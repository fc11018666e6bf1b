"""Tests for AppContext wiring and cross-component operations."""

import asyncio
import random
from dataclasses import replace
from datetime import datetime

import pytest
from conftest import FakeAudioBackend, make_new_track, make_track

from tune_locker.context import AppContext
from tune_locker.core.config import Config, parse_config
from tune_locker.core.database import MemoryTrackStore, SqliteTrackStore
from tune_locker.core.exceptions import NotFoundError
from tune_locker.core.preferences import (
    FAVORITES_KEY,
    JsonPreferenceStore,
    MemoryPreferenceStore,
)


@pytest.fixture
def ctx():
    context = AppContext.in_memory(Config(), FakeAudioBackend(), rng=random.Random(0))
    asyncio.run(context.startup())
    return context


def add_tracks(context, *names):
    async def scenario():
        return [await context.repository.add(make_new_track(name)) for name in names]

    return asyncio.run(scenario())


def test_startup_with_empty_stores(ctx):
    assert len(ctx.repository) == 0
    assert ctx.library_tracks() == []
    assert ctx.recommendations() == []


def test_search_and_favorites_view(ctx):
    first, second = add_tracks(ctx, "Blue Moon", "Red Sun")

    assert [t.id for t in ctx.search("moon")] == [first]
    asyncio.run(ctx.toggle_favorite(second))
    assert [t.id for t in ctx.library_tracks(favorites_only=True)] == [second]
    assert len(ctx.library_tracks()) == 2


def test_toggle_favorite_unknown_track(ctx):
    with pytest.raises(NotFoundError):
        asyncio.run(ctx.toggle_favorite("missing"))
    assert ctx.favorites.ids() == []


def test_recent_plays_follow_history(ctx):
    a, b, c = add_tracks(ctx, "A", "B", "C")

    async def scenario():
        for track_id in (a, b, c):
            await ctx.session.load_track(track_id)

    asyncio.run(scenario())

    assert [t.id for t in ctx.recent_plays(2)] == [c, b]
    assert a not in [t.id for t in ctx.recommendations()]


def test_playlist_operations(ctx):
    a, b = add_tracks(ctx, "A", "B")

    async def scenario():
        playlist = await ctx.playlists.create("Mix")
        await ctx.add_to_playlist(playlist.id, b)
        await ctx.add_to_playlist(playlist.id, a)
        return playlist

    playlist = asyncio.run(scenario())
    assert [t.id for t in ctx.playlist_tracks(playlist.id)] == [b, a]

    with pytest.raises(NotFoundError):
        asyncio.run(ctx.add_to_playlist(playlist.id, "missing"))


def test_delete_selected_playlist_clears_context(ctx):
    (a,) = add_tracks(ctx, "A")

    async def scenario():
        playlist = await ctx.playlists.create("Mix")
        await ctx.add_to_playlist(playlist.id, a)
        ctx.session.select_playlist(playlist.id)
        await ctx.delete_playlist(playlist.id)

    asyncio.run(scenario())
    assert ctx.session.playlist_id is None


def test_create_uses_durable_stores_and_config(tmp_path, monkeypatch):
    monkeypatch.setenv("TUNE_LOCKER_DATA_DIR", str(tmp_path))
    config = parse_config({"player": {"volume": 0.2, "repeat_mode": "one"}})
    audio = FakeAudioBackend()

    context = AppContext.create(config, audio)
    asyncio.run(context.startup())
    (track_id,) = add_tracks(context, "Kept")
    asyncio.run(context.toggle_favorite(track_id))

    assert audio.volume == 0.2
    assert context.session.repeat_mode == "one"

    # A fresh context over the same directory sees the same library
    reopened = AppContext.create(config, FakeAudioBackend())
    asyncio.run(reopened.startup())
    assert reopened.repository.ids() == [track_id]
    assert reopened.favorites.ids() == [track_id]
    assert (tmp_path / "library.db").exists()
    assert asyncio.run(JsonPreferenceStore(tmp_path).load(FAVORITES_KEY)) == [track_id]
    assert asyncio.run(SqliteTrackStore(tmp_path / "library.db").get_all())[0].name == "Kept"


def test_startup_rebuilds_history_from_last_played():
    store = MemoryTrackStore()
    tracks = [make_track(f"r{i}", genre="rock", days=i) for i in range(4)]
    tracks += [make_track(f"j{i}", genre="jazz", days=10 + i) for i in range(4)]
    played = {"r0": 3, "r1": 1, "j0": 2}
    for track in tracks:
        if track.id in played:
            track = replace(
                track, play_count=1, last_played=datetime(2024, 2, played[track.id])
            )
        store._records[track.id] = track

    context = AppContext.create(
        Config(), FakeAudioBackend(), track_store=store, preference_store=MemoryPreferenceStore()
    )
    asyncio.run(context.startup())

    assert context.session.history.ids() == ["r0", "j0", "r1"]
    # Rock wins the genre count, so unplayed rock comes before padding
    assert [t.id for t in context.recommendations(limit=3)] == ["r2", "r3", "j1"]
