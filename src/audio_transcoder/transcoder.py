"""
Transcoder module - Run a profile against an input and stream the result.

Backends:
- ProcessTranscoder: spawns the synthesized command and forwards its stdout
- CannedTranscoder: emits fixed bytes (for hosts that test without an encoder)

Every backend honors a CancelContext: once it is done, nothing more is
written to the sink and the call raises TranscodeCancelledError.
"""

import logging
import os
import queue
import signal
import subprocess
import threading
import time
from collections import deque
from typing import IO, Protocol

from .constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_POLL_INTERVAL,
    READER_JOIN_TIMEOUT,
    STDERR_TAIL_LINES,
    STDOUT_QUEUE_CHUNKS,
)
from .context import CancelContext
from .errors import (
    OutputWriteError,
    ProcessExitError,
    ProcessStartError,
    TranscodeCancelledError,
)
from .profile import Profile
from .synthesizer import Command, synthesize

logger = logging.getLogger(__name__)


class OutputSink(Protocol):
    """Anything that accepts transcoded bytes incrementally."""

    def write(self, data: bytes, /) -> object: ...


class Transcoder(Protocol):
    """Protocol for transcoding backends."""

    def transcode(
        self,
        ctx: CancelContext,
        profile: Profile,
        in_path: str | os.PathLike,
        out: OutputSink,
    ) -> None:
        """
        Transcode in_path with profile, streaming the result into out.

        Args:
            ctx: Cancellation context, polled for the whole call
            profile: Fully resolved profile (bitrate and seek already set)
            in_path: Readable input audio
            out: Byte sink receiving output as it is produced

        Raises:
            ProfileError: The profile cannot be turned into a command
            ProcessStartError: The program could not be launched
            ProcessExitError: The program failed or its output broke
            OutputWriteError: The sink rejected a write
            TranscodeCancelledError: ctx was cancelled or expired
        """
        ...


def _put(chunks: queue.Queue, item: bytes | Exception | None, stop: threading.Event) -> bool:
    """Put item on the bounded queue, giving up once stop is set."""
    while not stop.is_set():
        try:
            chunks.put(item, timeout=DEFAULT_POLL_INTERVAL)
            return True
        except queue.Full:
            continue
    return False


def _read_stdout(stream: IO[bytes], chunks: queue.Queue, chunk_size: int, stop: threading.Event) -> None:
    """
    Read stdout chunks into the queue; None marks the end of output.

    The queue is bounded, so while the sink lags this thread blocks, the pipe
    fills and the encoder itself stalls on write. The stream is closed here
    rather than by the caller, since closing a buffered reader blocks while
    another thread is reading from it.
    """
    try:
        try:
            while chunk := stream.read1(chunk_size):
                if not _put(chunks, chunk, stop):
                    return
        except (OSError, ValueError) as e:
            # Pipe broken or closed underneath us
            if not _put(chunks, e, stop):
                return
        _put(chunks, None, stop)
    finally:
        stream.close()


def _read_stderr(stream: IO[bytes], tail: deque) -> None:
    """Keep the last lines of stderr for error messages."""
    try:
        for line in stream:
            tail.append(line.decode(errors="replace").rstrip())
    except (OSError, ValueError) as e:
        logger.debug(f"Stderr reader stopped: {e}")
    finally:
        stream.close()


class ProcessTranscoder:
    """Transcoder that runs the synthesized command as a child process."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """
        Args:
            chunk_size: Maximum bytes read from stdout per write to the sink
            poll_interval: Seconds between cancellation checks while idle
        """
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval

    def transcode(
        self,
        ctx: CancelContext,
        profile: Profile,
        in_path: str | os.PathLike,
        out: OutputSink,
    ) -> None:
        command = synthesize(profile, in_path)
        ctx.raise_if_done()

        try:
            process = subprocess.Popen(
                command.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            raise ProcessStartError(command.program, str(e)) from e

        logger.debug(f"Started {command.program} (pid {process.pid})")

        chunks: queue.Queue[bytes | Exception | None] = queue.Queue(maxsize=STDOUT_QUEUE_CHUNKS)
        stop = threading.Event()
        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        readers = [
            threading.Thread(
                target=_read_stdout, args=(process.stdout, chunks, self.chunk_size, stop), daemon=True
            ),
            threading.Thread(target=_read_stderr, args=(process.stderr, stderr_tail), daemon=True),
        ]
        for reader in readers:
            reader.start()

        try:
            written = self._forward(ctx, command, chunks, stderr_tail, out)
            self._wait(ctx, process)
        except TranscodeCancelledError as e:
            logger.info(f"Transcode of {os.fspath(in_path)} {e.reason}, killing pid {process.pid}")
            _kill(process)
            raise
        except BaseException:
            _kill(process)
            raise
        finally:
            stop.set()
            _join(readers, process)

        if process.returncode != 0:
            stderr = "\n".join(stderr_tail)
            logger.warning(f"{command.program} exited with status {process.returncode}")
            raise ProcessExitError(command.program, process.returncode, stderr)

        logger.debug(f"Transcoded {os.fspath(in_path)}: {written} bytes")

    def _forward(
        self,
        ctx: CancelContext,
        command: Command,
        chunks: queue.Queue,
        stderr_tail: deque,
        out: OutputSink,
    ) -> int:
        """Copy stdout chunks into the sink until end of output."""
        written = 0
        while True:
            try:
                item = chunks.get(timeout=self.poll_interval)
            except queue.Empty:
                ctx.raise_if_done()
                continue

            if item is None:
                return written
            if isinstance(item, Exception):
                raise ProcessExitError(command.program, None, "\n".join(stderr_tail)) from item

            # Checked right before every write so nothing lands after cancellation
            ctx.raise_if_done()
            try:
                out.write(item)
            except (OSError, ValueError) as e:
                raise OutputWriteError(f"write output: {e}") from e
            written += len(item)

    def _wait(self, ctx: CancelContext, process: subprocess.Popen) -> None:
        """Wait for the process to exit, staying responsive to ctx."""
        while True:
            try:
                process.wait(timeout=self.poll_interval)
                return
            except subprocess.TimeoutExpired:
                ctx.raise_if_done()


def _kill(process: subprocess.Popen) -> None:
    """Forcibly stop the process (and its process group) and reap it."""
    try:
        if os.name == "posix":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except (ProcessLookupError, PermissionError):
        pass  # already gone
    process.wait()


def _join(readers: list[threading.Thread], process: subprocess.Popen) -> None:
    """Wait for the pipe readers; each closes its own pipe when it ends."""
    deadline = time.monotonic() + READER_JOIN_TIMEOUT
    for reader in readers:
        reader.join(timeout=max(0.0, deadline - time.monotonic()))
        if reader.is_alive():
            # A process outside the killed group still holds the pipe open;
            # the reader closes it once that process exits
            logger.warning(f"Pipe reader for pid {process.pid} did not stop; abandoning it")


class CannedTranscoder:
    """Transcoder double that writes a fixed payload instead of running a process."""

    def __init__(self, payload: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE, delay: float = 0.0) -> None:
        """
        Args:
            payload: Bytes written to every sink
            chunk_size: Bytes per write
            delay: Seconds to pause between writes (cancellable)
        """
        self.payload = payload
        self.chunk_size = chunk_size
        self.delay = delay
        self.calls: list[tuple[Profile, str]] = []

    def transcode(
        self,
        ctx: CancelContext,
        profile: Profile,
        in_path: str | os.PathLike,
        out: OutputSink,
    ) -> None:
        self.calls.append((profile, os.fspath(in_path)))
        for offset in range(0, len(self.payload), self.chunk_size):
            ctx.raise_if_done()
            try:
                out.write(self.payload[offset : offset + self.chunk_size])
            except (OSError, ValueError) as e:
                raise OutputWriteError(f"write output: {e}") from e
            if self.delay:
                ctx.wait(self.delay)
        ctx.raise_if_done()
