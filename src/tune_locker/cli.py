"""
Tune Locker CLI - Entry point

Library management commands run against the durable stores and exit. The
``play`` command starts an mpv backend and plays through the queue until
interrupted.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from tune_locker.context import AppContext
from tune_locker.core.config import Config, get_log_file_path, load_config
from tune_locker.core.exceptions import TuneLockerError
from tune_locker.core.output import setup_loguru
from tune_locker.domain.library.ingest import ingest_files
from tune_locker.domain.library.models import Track
from tune_locker.domain.playback.audio import AudioBackend
from tune_locker.domain.playback.mpv import MpvAudioBackend, check_mpv_available
from tune_locker.domain.playback.session import format_time
from tune_locker.events import TRACK_CHANGED, ChangeEvent

console = Console()


class SilentAudioBackend:
    """AudioBackend for commands that never play anything."""

    def set_listener(self, listener) -> None:
        pass

    def bind_source(self, payload: bytes, mime_type: str) -> None:
        pass

    async def play(self) -> None:
        pass

    def pause(self) -> None:
        pass

    def seek(self, seconds: float) -> None:
        pass

    def set_volume(self, volume: float) -> None:
        pass

    def release(self) -> None:
        pass

    @property
    def current_time(self) -> float:
        return 0.0

    @property
    def duration(self) -> Optional[float]:
        return None


def print_tracks(tracks: list[Track], ctx: AppContext, title: Optional[str] = None) -> None:
    if not tracks:
        console.print("No tracks found.", style="yellow")
        return

    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Artist")
    table.add_column("Album")
    table.add_column("Genre")
    table.add_column("Length", justify="right")
    table.add_column("Plays", justify="right")
    table.add_column("♥")
    for index, track in enumerate(tracks, start=1):
        table.add_row(
            str(index),
            track.id,
            track.name,
            track.artist,
            track.album,
            track.genre or "",
            format_time(track.duration_seconds),
            str(track.play_count),
            "♥" if ctx.favorites.is_favorite(track.id) else "",
        )
    console.print(table)


async def cmd_import(ctx: AppContext, args: argparse.Namespace) -> int:
    added, failures = await ingest_files(
        [Path(p) for p in args.files], ctx.repository, ctx.config.library.supported_formats
    )
    console.print(f"Imported {len(added)} track(s)", style="green")
    for error in failures:
        console.print(f"  ✗ {error}", style="red")
    return 0 if not failures else 1


async def cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    print_tracks(ctx.library_tracks(favorites_only=args.favorites), ctx, title="Library")
    return 0


async def cmd_search(ctx: AppContext, args: argparse.Namespace) -> int:
    print_tracks(ctx.search(" ".join(args.query)), ctx, title="Search results")
    return 0


async def cmd_recommend(ctx: AppContext, args: argparse.Namespace) -> int:
    print_tracks(ctx.recommendations(args.limit), ctx, title="Recommended")
    return 0


async def cmd_favorite(ctx: AppContext, args: argparse.Namespace) -> int:
    now_favorite = await ctx.toggle_favorite(args.track_id)
    console.print(f"{args.track_id}: {'favorited' if now_favorite else 'unfavorited'}")
    return 0


async def cmd_playlist(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.playlist_command == "create":
        playlist = await ctx.playlists.create(" ".join(args.name))
        console.print(f"Created playlist '{playlist.name}' ({playlist.id})", style="green")
    elif args.playlist_command == "add":
        changed = await ctx.add_to_playlist(args.playlist_id, args.track_id)
        console.print("Added" if changed else "Already in playlist")
    elif args.playlist_command == "remove":
        changed = await ctx.playlists.remove_track(args.playlist_id, args.track_id)
        console.print("Removed" if changed else "Not in playlist")
    elif args.playlist_command == "delete":
        await ctx.delete_playlist(args.playlist_id)
        console.print("Deleted")
    elif args.playlist_command == "show":
        playlist = ctx.playlists.get(args.playlist_id)
        print_tracks(ctx.playlist_tracks(playlist.id), ctx, title=playlist.name)
    else:
        playlists = ctx.playlists.all()
        if not playlists:
            console.print("No playlists yet.", style="yellow")
        for playlist in playlists:
            console.print(f"{playlist.id}  {playlist.name}  ({len(playlist.tracks)} tracks)")
    return 0


async def cmd_play(ctx: AppContext, args: argparse.Namespace, audio: MpvAudioBackend) -> int:
    def announce(event: ChangeEvent) -> None:
        if event.kind == TRACK_CHANGED and event.track_id:
            track = ctx.repository.find_by_id(event.track_id)
            if track:
                console.print(f"▶ {track.artist} - {track.name}", style="bold green")

    ctx.notifier.subscribe(announce)
    if args.shuffle:
        ctx.session.toggle_shuffle()
    if args.repeat:
        while ctx.session.repeat_mode != args.repeat:
            ctx.session.cycle_repeat_mode()
    if args.playlist:
        ctx.session.select_playlist(args.playlist)

    watcher = asyncio.create_task(audio.watch())
    try:
        await ctx.session.play_track(args.track_id)
        await watcher
    finally:
        watcher.cancel()
        ctx.session.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tune-locker",
        description="Tune Locker - personal media library and player",
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--verbose", action="store_true", help="Log to stderr as well")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import audio files")
    import_parser.add_argument("files", nargs="+", help="Audio files to import")

    list_parser = subparsers.add_parser("list", help="List the library")
    list_parser.add_argument("--favorites", action="store_true", help="Only favorites")

    search_parser = subparsers.add_parser("search", help="Search name, artist or album")
    search_parser.add_argument("query", nargs="*", help="Search text (empty lists all)")

    recommend_parser = subparsers.add_parser(
        "recommend",
        help="Recommend tracks (genre of recent plays, or newest when nothing was played)",
    )
    recommend_parser.add_argument("--limit", type=int, default=None)

    favorite_parser = subparsers.add_parser("favorite", help="Toggle a favorite")
    favorite_parser.add_argument("track_id")

    playlist_parser = subparsers.add_parser("playlist", help="Manage playlists")
    playlist_sub = playlist_parser.add_subparsers(dest="playlist_command")
    create_parser = playlist_sub.add_parser("create", help="Create a playlist")
    create_parser.add_argument("name", nargs="+")
    for name in ("add", "remove"):
        edit_parser = playlist_sub.add_parser(name, help=f"{name.capitalize()} a track")
        edit_parser.add_argument("playlist_id")
        edit_parser.add_argument("track_id")
    delete_parser = playlist_sub.add_parser("delete", help="Delete a playlist")
    delete_parser.add_argument("playlist_id")
    show_parser = playlist_sub.add_parser("show", help="Show a playlist's tracks")
    show_parser.add_argument("playlist_id")
    playlist_sub.add_parser("list", help="List playlists")

    play_parser = subparsers.add_parser("play", help="Play a track (Ctrl-C to stop)")
    play_parser.add_argument("track_id")
    play_parser.add_argument("--playlist", help="Play within this playlist")
    play_parser.add_argument("--shuffle", action="store_true")
    play_parser.add_argument("--repeat", choices=["off", "all", "one"])

    return parser


async def run(config: Config, args: argparse.Namespace) -> int:
    commands = {
        "import": cmd_import,
        "list": cmd_list,
        "search": cmd_search,
        "recommend": cmd_recommend,
        "favorite": cmd_favorite,
        "playlist": cmd_playlist,
    }

    if args.command == "play":
        if not check_mpv_available():
            console.print("mpv is required for playback but was not found.", style="red")
            return 1
        mpv = MpvAudioBackend(socket_path=config.player.mpv_socket_path)
        await asyncio.to_thread(mpv.start)
        try:
            ctx = AppContext.create(config, mpv)
            await ctx.startup()
            return await cmd_play(ctx, args, mpv)
        finally:
            await asyncio.to_thread(mpv.stop)

    audio: AudioBackend = SilentAudioBackend()
    ctx = AppContext.create(config, audio)
    await ctx.startup()
    return await commands[args.command](ctx, args)


def main() -> None:
    """Main entry point for the tune-locker command."""
    parser = build_parser()
    args = parser.parse_args()

    config = load_config(args.config)
    setup_loguru(
        get_log_file_path(config),
        level=config.logging.level,
        console_output=config.logging.console_output or args.verbose,
    )

    try:
        exit_code = asyncio.run(run(config, args))
    except KeyboardInterrupt:
        exit_code = 0
    except TuneLockerError as e:
        logger.error(str(e))
        console.print(f"Error: {e}", style="red")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
