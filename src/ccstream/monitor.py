"""Real-time monitoring of growing stream-json log files.

A :class:`LogMonitor` tails one file. It remembers the byte offset it has
read up to, keeps an incomplete trailing line until its newline arrives, and
starts over when the file shrinks or is replaced. Changes are detected by
polling the file's size and inode from a background thread.
"""

from __future__ import annotations

import codecs
import logging
import queue
import stat
import threading
from collections.abc import Callable, Iterable, Iterator
from enum import StrEnum
from pathlib import Path
from types import TracebackType

from ccstream.events import StreamChunk, StreamEvent
from ccstream.parser import event_to_chunk, parse_stream_event

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.25
DEFAULT_MAX_PENDING = 1000
# Bytes just before the read offset compared on each change to spot in-place rewrites
FINGERPRINT_BYTES = 64

EventCallback = Callable[[StreamEvent], None]
Cleanup = Callable[[], None]


class MonitorState(StrEnum):
    """Lifecycle of a log monitor."""

    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


class ParserStream:
    """Push-style line parser.

    Text written to the stream may split lines anywhere. Each complete line
    is parsed and delivered to ``on_event``; the trailing fragment without a
    newline is held back until a later write completes it.
    """

    def __init__(self, on_event: EventCallback) -> None:
        self._on_event = on_event
        self._pending = ""

    @property
    def pending(self) -> str:
        """Incomplete trailing line awaiting its newline."""
        return self._pending

    def write(self, text: str) -> int:
        """Feed text and deliver every event it completes.

        Returns:
            Number of events delivered.
        """
        if not text:
            return 0
        *lines, self._pending = (self._pending + text).split("\n")
        delivered = 0
        for line in lines:
            event = parse_stream_event(line)
            if event is None:
                if line.strip():
                    logger.debug("Dropping unparseable line: %.80s", line)
                continue
            self._on_event(event)
            delivered += 1
        return delivered

    def flush(self) -> int:
        """Parse the held-back fragment as if its newline had arrived."""
        pending, self._pending = self._pending, ""
        event = parse_stream_event(pending)
        if event is None:
            return 0
        self._on_event(event)
        return 1

    def reset(self) -> None:
        """Discard the held-back fragment."""
        self._pending = ""


class ChunkStream:
    """Push-style projection of events onto display chunks."""

    def __init__(self, on_chunk: Callable[[StreamChunk], None]) -> None:
        self._on_chunk = on_chunk

    def write(self, event: StreamEvent) -> None:
        chunk = event_to_chunk(event)
        if chunk is not None:
            self._on_chunk(chunk)


def create_parser_stream(on_event: EventCallback) -> ParserStream:
    """Create a line parser that pushes events to ``on_event``."""
    return ParserStream(on_event)


def create_chunk_stream(on_chunk: Callable[[StreamChunk], None]) -> ChunkStream:
    """Create an event-to-chunk projector that pushes chunks to ``on_chunk``.

    Its ``write`` method is an event callback, so it can be handed straight
    to :func:`monitor_log`.
    """
    return ChunkStream(on_chunk)


class LogMonitor:
    """Tail a single log file and deliver new events in file order.

    Each instance owns its offset, decoder and partial-line buffer, so the
    same path can be monitored independently by several instances.

    Attributes:
        path: Absolute path of the watched file.
        poll_interval: Seconds between change checks.
    """

    def __init__(
        self,
        path: Path | str,
        on_event: EventCallback,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        from_end: bool = False,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.path = Path(path).absolute()
        self.poll_interval = poll_interval
        self._on_event = on_event
        self._from_end = from_end
        self._parser = ParserStream(self._deliver)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._offset = 0
        self._inode: int | None = None
        self._mtime_ns = 0
        self._fingerprint = b""
        self._state = MonitorState.IDLE
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def offset(self) -> int:
        """Byte offset read up to so far."""
        return self._offset

    @property
    def pending(self) -> str:
        """Incomplete trailing line held back from delivery."""
        return self._parser.pending

    def start(self, read_backlog: bool = True) -> None:
        """Begin monitoring.

        Args:
            read_backlog: Read the existing content before returning. When
                False the watcher thread reads it as its first step.

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: If the file cannot be inspected or is not a regular file.
            RuntimeError: If the monitor was already started.
        """
        if self._state is not MonitorState.IDLE:
            raise RuntimeError(f"Monitor for {self.path} already {self._state}")

        st = self.path.stat()
        if not stat.S_ISREG(st.st_mode):
            raise OSError(f"Not a regular file: {self.path}")
        self._inode = st.st_ino
        if self._from_end:
            self._offset = st.st_size
            self._mtime_ns = st.st_mtime_ns
            with self.path.open("rb") as f:
                f.seek(max(0, self._offset - FINGERPRINT_BYTES))
                self._fingerprint = f.read(self._offset - f.tell())

        self._state = MonitorState.ACTIVE
        logger.debug("Monitoring %s from offset %d", self.path, self._offset)

        if read_backlog:
            self.poll()

        self._thread = threading.Thread(
            target=self._watch,
            args=(not read_backlog,),
            name=f"ccstream-monitor:{self.path.name}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop monitoring. Calling it again has no effect."""
        if self._state is MonitorState.STOPPED:
            return
        self._state = MonitorState.STOPPED
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.poll_interval * 4))
            if thread.is_alive():
                logger.debug("Watcher for %s still running after stop, a callback may be slow", self.path)
        logger.debug("Stopped monitoring %s", self.path)

    def poll(self) -> int:
        """Read and deliver whatever was appended since the last read.

        Calls are serialized per monitor, so a check never overlaps an
        unfinished read of the same file.

        Returns:
            Number of events delivered.
        """
        with self._lock:
            if self._state is not MonitorState.ACTIVE:
                return 0
            try:
                st = self.path.stat()
            except FileNotFoundError:
                logger.debug("Log file %s is missing, waiting for it to reappear", self.path)
                return 0

            rewritten = (
                st.st_size < self._offset
                or (self._inode is not None and st.st_ino != self._inode)
                or st.st_mtime_ns < self._mtime_ns
            )
            if not rewritten and st.st_size == self._offset and st.st_mtime_ns == self._mtime_ns:
                return 0

            with self.path.open("rb") as f:
                if not rewritten and self._fingerprint:
                    f.seek(self._offset - len(self._fingerprint))
                    rewritten = f.read(len(self._fingerprint)) != self._fingerprint
                if rewritten:
                    logger.info("Log file %s was truncated or replaced, reading from the start", self.path)
                    self._reset()
                    self._inode = st.st_ino
                self._mtime_ns = st.st_mtime_ns
                if st.st_size <= self._offset:
                    return 0
                f.seek(self._offset)
                data = f.read(st.st_size - self._offset)

            self._offset += len(data)
            self._fingerprint = (self._fingerprint + data)[-FINGERPRINT_BYTES:]
            return self._parser.write(self._decoder.decode(data))

    def _reset(self) -> None:
        self._offset = 0
        self._fingerprint = b""
        self._decoder.reset()
        self._parser.reset()

    def _deliver(self, event: StreamEvent) -> None:
        # cleanup may run on another thread mid-read
        if self._state is MonitorState.ACTIVE:
            self._on_event(event)

    def _watch(self, poll_first: bool) -> None:
        if poll_first:
            self._safe_poll()
        while not self._stop_event.wait(self.poll_interval):
            self._safe_poll()

    def _safe_poll(self) -> None:
        try:
            self.poll()
        except Exception:
            logger.exception("Error while reading %s", self.path)


def monitor_log(
    log_path: Path | str,
    on_event: EventCallback,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    from_end: bool = False,
) -> Cleanup:
    """Deliver the events of a log file as it grows.

    Existing content is delivered first, in file order, before this returns.
    Monitoring continues past terminal events until the cleanup is called.

    Args:
        log_path: File to watch. It must exist.
        on_event: Called with each event, from the watcher thread once the
            backlog has been delivered.
        poll_interval: Seconds between change checks.
        from_end: Skip existing content and deliver only new lines.

    Returns:
        Idempotent cleanup function that stops monitoring.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    monitor = LogMonitor(log_path, on_event, poll_interval=poll_interval, from_end=from_end)
    monitor.start()
    return monitor.stop


def monitor_multiple_logs(
    log_paths: Iterable[Path | str],
    on_event: Callable[[Path, StreamEvent], None],
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    from_end: bool = False,
) -> Cleanup:
    """Monitor several log files independently.

    Events keep file order per path; events of different files may interleave.

    Args:
        log_paths: Files to watch.
        on_event: Called with the watched path and each of its events.
        poll_interval: Seconds between change checks.
        from_end: Skip existing content of every file.

    Returns:
        Cleanup function that stops all monitors.

    Raises:
        FileNotFoundError: If any file does not exist. Monitors started
            before the failure are stopped.
    """
    monitors: list[LogMonitor] = []

    def stop_all() -> None:
        for monitor in monitors:
            monitor.stop()

    try:
        for log_path in log_paths:
            path = Path(log_path)
            monitor = LogMonitor(
                path,
                lambda event, p=path: on_event(p, event),
                poll_interval=poll_interval,
                from_end=from_end,
            )
            monitor.start()
            monitors.append(monitor)
    except BaseException:
        stop_all()
        raise

    return stop_all


_CLOSED = object()


class MonitorStream:
    """Single-pass iterator over the events of a monitored log.

    Events are queued by the watcher thread and handed out in file order.
    Iteration blocks while waiting for new lines and ends once
    :meth:`cleanup` has been called. Use it as a context manager, or call
    :meth:`cleanup` explicitly, to release the watcher.
    """

    def __init__(
        self,
        log_path: Path | str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max_pending)
        self._closed = threading.Event()
        self._monitor = LogMonitor(log_path, self._enqueue, poll_interval=poll_interval)
        # The watcher thread reads the backlog so a full queue cannot block the caller
        self._monitor.start(read_backlog=False)

    @property
    def events(self) -> Iterator[StreamEvent]:
        return self

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _enqueue(self, event: StreamEvent) -> None:
        while not self._closed.is_set():
            try:
                self._queue.put(event, timeout=self._monitor.poll_interval)
                return
            except queue.Full:
                continue

    def __iter__(self) -> Iterator[StreamEvent]:
        return self

    def __next__(self) -> StreamEvent:
        while True:
            if self._closed.is_set() and self._queue.empty():
                raise StopIteration
            try:
                item = self._queue.get(timeout=self._monitor.poll_interval)
            except queue.Empty:
                continue
            if item is _CLOSED:
                raise StopIteration
            return item  # type: ignore[return-value]

    def cleanup(self) -> None:
        """Stop the watcher and end iteration. Safe to call more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._monitor.stop()
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass

    def __enter__(self) -> MonitorStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()


def create_async_monitor(
    log_path: Path | str,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_pending: int = DEFAULT_MAX_PENDING,
) -> MonitorStream:
    """Monitor a log file and consume its events by iteration.

    The caller must call ``cleanup()`` (or use the result as a context
    manager) even after breaking out of iteration, or the watcher keeps
    running.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    return MonitorStream(log_path, poll_interval=poll_interval, max_pending=max_pending)
