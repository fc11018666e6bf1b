"""
MPV audio backend over JSON IPC.

Each bound payload is written to a temporary file which mpv loads paused.
Binding a new source or releasing deletes the previous file, so exactly one
source is live. Socket round-trips run on a single worker thread so the event
loop never waits on mpv. A watcher coroutine polls ``time-pos``, ``duration``
and ``eof-reached`` to report position, metadata and natural end.
"""

import asyncio
import json
import mimetypes
import os
import socket
import subprocess
import tempfile
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from tune_locker.core.exceptions import PlaybackError

from .audio import AudioListener

# Seconds between property polls in watch()
POLL_INTERVAL = 0.25


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def send_mpv_command(socket_path: Optional[str], command: dict[str, Any]) -> bool:
    """Send JSON IPC command to MPV. Returns True on an mpv "success" reply."""
    response = _request(socket_path, command)
    return response is not None and response.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV (None if unavailable)."""
    response = _request(socket_path, {"command": ["get_property", property_name]})
    if response and response.get("error") == "success":
        return response.get("data")
    return None


def _request(socket_path: Optional[str], command: dict[str, Any]) -> Optional[dict]:
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(2.0)
        sock.connect(socket_path)
        try:
            sock.sendall((json.dumps(command) + "\n").encode("utf-8"))
            raw = sock.recv(4096).decode("utf-8")
        finally:
            sock.close()
    except (socket.error, OSError) as e:
        logger.debug(f"MPV IPC request {command} failed: {e}")
        return None

    # mpv may interleave event lines with the reply; the reply carries "error"
    for line in raw.splitlines():
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in message:
            return message
    return None


class MpvAudioBackend:
    """AudioBackend driving an ``mpv --idle`` subprocess.

    All IPC round-trips and temp-file I/O run on one worker thread, in the
    order they were issued. The synchronous AudioBackend methods only queue
    work and return at once.
    """

    def __init__(self, socket_path: Optional[str] = None, start_timeout: float = 5.0) -> None:
        self.socket_path = socket_path or str(
            Path(tempfile.gettempdir()) / f"tune-locker-mpv-{os.getpid()}"
        )
        self.start_timeout = start_timeout
        self._process: Optional[subprocess.Popen] = None
        self._listener: Optional[AudioListener] = None
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mpv-ipc")
        self._source_path: Optional[str] = None
        self._duration: Optional[float] = None
        self._position = 0.0
        self._ended_reported = False
        self._volume = 0.7
        self._stopped = False

    def start(self) -> None:
        """Start MPV with JSON IPC. Blocks until the socket answers.

        Raises:
            PlaybackError: If mpv is missing or its socket never comes up
        """
        logger.info(f"Starting MPV player with socket: {self.socket_path}")
        if os.path.exists(self.socket_path):
            os.unlink(self.socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={round(self._volume * 100)}",
            "--keep-open=yes",
            "--load-scripts=no",
        ]
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise PlaybackError(f"Failed to start MPV: {e}") from e

        start_time = time.time()
        while not os.path.exists(self.socket_path):
            if time.time() - start_time > self.start_timeout:
                self.stop()
                raise PlaybackError(f"MPV socket creation timeout after {self.start_timeout}s")
            time.sleep(0.1)

        if not send_mpv_command(self.socket_path, {"command": ["get_property", "idle-active"]}):
            self.stop()
            raise PlaybackError("MPV socket connection test failed")
        logger.info("MPV started successfully")

    def stop(self) -> None:
        """Stop MPV process and cleanup. Blocks until queued IPC work is done."""
        if not self._stopped:
            self.release()
            self._worker.shutdown(wait=True)
            self._stopped = True
        if self._process:
            try:
                self._process.kill()
                self._process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"Error during MPV cleanup: {e}")
            self._process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass

    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def wait_idle(self) -> None:
        """Block until every queued IPC command has run."""
        self._worker.submit(lambda: None).result()

    def _submit(self, fn: Callable[..., Any], *args: Any) -> None:
        future = self._worker.submit(fn, *args)
        future.add_done_callback(_log_worker_failure)

    def _command(self, *command: Any) -> None:
        self._submit(send_mpv_command, self.socket_path, {"command": list(command)})

    # AudioBackend

    def set_listener(self, listener: Optional[AudioListener]) -> None:
        self._listener = listener

    def bind_source(self, payload: bytes, mime_type: str) -> None:
        """Queue a paused load of ``payload``.

        Raises:
            PlaybackError: If no temporary file can be created
        """
        self.release()

        suffix = mimetypes.guess_extension(mime_type) or ".audio"
        try:
            fd, path = tempfile.mkstemp(prefix="tune-locker-", suffix=suffix)
        except OSError as e:
            raise PlaybackError(f"Cannot create temporary source: {e}") from e
        self._source_path = path
        self._duration = None
        self._position = 0.0
        self._ended_reported = False
        self._submit(self._load_source, fd, path, payload)

    def _load_source(self, fd: int, path: str, payload: bytes) -> None:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        send_mpv_command(self.socket_path, {"command": ["set_property", "pause", True]})
        if not send_mpv_command(self.socket_path, {"command": ["loadfile", path, "replace"]}):
            logger.warning(f"MPV did not accept source {path}")

    async def play(self) -> None:
        if self._source_path is None:
            raise PlaybackError("No source bound")
        loop = asyncio.get_running_loop()
        ok = await loop.run_in_executor(
            self._worker,
            send_mpv_command,
            self.socket_path,
            {"command": ["set_property", "pause", False]},
        )
        if not ok:
            raise PlaybackError("MPV refused to start playback")

    def pause(self) -> None:
        self._command("set_property", "pause", True)

    def seek(self, seconds: float) -> None:
        self._position = seconds
        self._ended_reported = False
        self._command("seek", seconds, "absolute")

    def set_volume(self, volume: float) -> None:
        self._volume = volume
        self._command("set_property", "volume", round(volume * 100))

    def release(self) -> None:
        if self._source_path is None:
            return
        path, self._source_path = self._source_path, None
        self._submit(self._unload_source, path)

    def _unload_source(self, path: str) -> None:
        send_mpv_command(self.socket_path, {"command": ["stop"]})
        try:
            os.unlink(path)
        except OSError as e:
            logger.warning(f"Could not remove temporary source {path}: {e}")

    @property
    def current_time(self) -> float:
        """Last position reported by the watcher."""
        return self._position

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    async def watch(self, interval: float = POLL_INTERVAL) -> None:
        """Poll mpv and report metadata/end-of-track until cancelled."""
        while self.is_running():
            if self._source_path is not None:
                await self._poll_once()
            await asyncio.sleep(interval)
        logger.info("MPV exited, watcher stopping")

    async def _get_property(self, property_name: str) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._worker, get_mpv_property, self.socket_path, property_name
        )

    async def _poll_once(self) -> None:
        source = self._source_path

        position = await self._get_property("time-pos")
        if position is not None and source == self._source_path:
            self._position = float(position)

        if self._duration is None:
            duration = await self._get_property("duration")
            if duration and source == self._source_path:
                self._duration = float(duration)
                if self._listener:
                    self._listener.on_metadata_ready()

        if not self._ended_reported:
            eof = await self._get_property("eof-reached")
            if eof and source == self._source_path:
                self._ended_reported = True
                if self._listener:
                    self._listener.on_ended()


def _log_worker_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.opt(exception=error).error(f"MPV IPC work failed: {error}")
