"""
Streaming CSV ingestion for the Runner Log Dashboard.

``StreamingIngestor`` decodes a running-log CSV record by record and
reports to a listener instead of returning a dataset:

- ``on_started``      once, before any record is read
- ``on_chunk``        every ``batch_size`` rows, plus one final flush
- ``on_progress``     0-99 by bytes parsed, only when the size is known
- ``on_failed``       ``SchemaError`` or ``DecodeError``, terminal
- ``on_succeeded``    terminal, after progress 100

Every callback receives the session id passed to ``begin`` so that a
consumer can discard events from a superseded upload.  Chunks are
copies; the ingestor keeps no reference to a row after emitting it.

Handles:

- UTF-8 BOM markers
- RFC 4180 quoting, including embedded commas, quotes and line breaks
- Blank lines (skipped)
- Duplicate header names (suffixed ``_1``, ``_2``, ...)
- Short rows (padded with ``""``) and surplus cells (kept under
  ``_extra_1``, ``_extra_2``, ... columns appended to the header)

``begin`` runs on the calling thread.  The GUI moves it to a worker
thread (see ``gui_ingest``).  Cancellation is permanent: a cancelled
ingestor emits nothing more, including for later ``begin`` calls.
"""

import codecs
import csv
import io
import logging
import os
import threading
import time
import warnings
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .constants import (
    DEFAULT_BATCH_SIZE, DEFAULT_ENCODING, LARGE_FILE_WARNING_BYTES,
    OVERFLOW_COLUMN_PREFIX, PROGRESS_DONE, PROGRESS_STREAMING_MAX,
    READ_BLOCK_BYTES,
)
from .csv_schema import check_schema
from .data_model import RawRow

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────────

class IngestError(Exception):
    """Terminal failure of an ingestion session."""


class SchemaError(IngestError):
    """Required header(s) absent from the file.

    Parameters
    ----------
    missing : sequence of str
        Canonical field names, in required order.
    """

    def __init__(self, missing: Sequence[str]):
        self.missing = tuple(missing)
        super().__init__(f"Missing headers: {', '.join(self.missing)}")


class DecodeError(IngestError):
    """The source could not be read or parsed as CSV."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Parsing error: {detail}")


# ── Settings and listener ────────────────────────────────────────────────

@dataclass(frozen=True)
class IngestSettings:
    """Per-run ingestion options.

    Parameters
    ----------
    batch_size : int
        Rows per ``on_chunk`` event (must be >= 1).
    encoding : str
        Text encoding for binary sources.  The default tolerates a BOM.
    large_file_warning_bytes : int
        Sources larger than this trigger a ``UserWarning``.
    """
    batch_size: int = DEFAULT_BATCH_SIZE
    encoding: str = DEFAULT_ENCODING
    large_file_warning_bytes: int = LARGE_FILE_WARNING_BYTES

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(
                f"batch_size must be at least 1, got {self.batch_size}"
            )


class IngestListener:
    """Receiver for ingestion events.  Every method defaults to a no-op."""

    def on_started(self, session_id: int) -> None:
        pass

    def on_chunk(self, session_id: int, rows: List[RawRow]) -> None:
        pass

    def on_progress(self, session_id: int, percent: int) -> None:
        pass

    def on_failed(self, session_id: int, error: IngestError) -> None:
        pass

    def on_succeeded(self, session_id: int, headers: List[str]) -> None:
        pass


# ── Byte sources ─────────────────────────────────────────────────────────

class _RawSource(io.RawIOBase):
    """Raw view of a caller's binary file object.

    Closing this view, or a buffer wrapped around it, leaves the
    underlying file open.
    """

    def __init__(self, fh):
        super().__init__()
        self._fh = fh

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._fh.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n


def _counted_lines(lines, encoding: str, counter: List[int]):
    """Yield *lines* unchanged, adding each line's encoded size to ``counter[0]``.

    Counting happens as the CSV reader pulls a line, so the total tracks
    what has been parsed rather than what has been buffered.
    """
    encoder = codecs.getincrementalencoder(encoding)(errors="replace")
    for line in lines:
        counter[0] += len(encoder.encode(line))
        yield line


def _source_size(fh) -> Optional[int]:
    """Remaining bytes in a seekable binary file, else ``None``."""
    try:
        if not fh.seekable():
            return None
        start = fh.tell()
        end = fh.seek(0, io.SEEK_END)
        fh.seek(start)
    except (AttributeError, OSError, ValueError):
        return None
    return end - start


def _dedupe_headers(headers: List[str]) -> List[str]:
    seen = {}
    result = []
    for name in headers:
        if name in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}_{seen[name]}"
            seen[candidate] = 0
            result.append(candidate)
        else:
            seen[name] = 0
            result.append(name)
    return result


# ── Ingestor ─────────────────────────────────────────────────────────────

class StreamingIngestor:
    """Decode a CSV source incrementally and report events to a listener.

    Parameters
    ----------
    listener : IngestListener
        Receives every event.  Any object with the same five methods works.
    settings : IngestSettings, optional
    """

    def __init__(self, listener: IngestListener, settings: Optional[IngestSettings] = None):
        self._listener = listener
        self._settings = settings or IngestSettings()
        self._cancel_event = threading.Event()

        self._session_id = 0
        self._buffer: List[RawRow] = []
        self._headers: List[str] = []
        self._overflow: List[str] = []
        self._row_count = 0
        self._surplus_cells = 0
        self._last_progress: Optional[int] = None

    @property
    def settings(self) -> IngestSettings:
        return self._settings

    def cancel(self) -> None:
        """Stop emitting events, for the running session and any later one.

        Safe to call from another thread, and before ``begin``.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def begin(self, source: Any, session_id: int = 0,
              total_bytes: Optional[int] = None) -> None:
        """Reset state and stream *source* to completion.

        Parameters
        ----------
        source : str, os.PathLike, binary or text file object
            Paths are opened (and closed) here; file objects are left
            open.  Text file objects should be opened with
            ``newline=""`` so quoted line breaks survive.
        session_id : int
            Echoed on every event.
        total_bytes : int, optional
            Size used for progress.  Measured automatically for paths
            and seekable binary files.  For text sources it is compared
            against the UTF-8 length of the lines consumed.
        """
        if self.cancelled:
            logger.info("Session %s: ingestor was cancelled, not reading", session_id)
            return
        self._reset(session_id)
        self._listener.on_started(session_id)
        started = time.perf_counter()
        logger.info("Session %s: ingesting %s", session_id, _describe(source))

        try:
            if isinstance(source, (str, bytes, os.PathLike)):
                with open(source, "rb") as fh:
                    ok = self._stream_binary(fh, total_bytes)
            elif isinstance(source, io.TextIOBase):
                ok = self._stream_text(source, total_bytes)
            else:
                ok = self._stream_binary(source, total_bytes)
        except (csv.Error, UnicodeDecodeError, OSError) as exc:
            if not self.cancelled:
                logger.warning("Session %s: decode failed: %s", session_id, exc)
                self._listener.on_failed(session_id, DecodeError(str(exc)))
            return

        if not ok:
            logger.info("Session %s: cancelled after %d rows", session_id, self._row_count)
            return

        self._finish(started)

    # ── internals ───────────────────────────────────────────────────

    def _reset(self, session_id: int) -> None:
        self._session_id = session_id
        self._buffer = []
        self._headers = []
        self._overflow = []
        self._row_count = 0
        self._surplus_cells = 0
        self._last_progress = None

    def _stream_binary(self, fh, total_bytes: Optional[int]) -> bool:
        if total_bytes is None:
            total_bytes = _source_size(fh)
        self._warn_if_large(total_bytes)

        encoding = self._settings.encoding
        text = io.TextIOWrapper(
            io.BufferedReader(_RawSource(fh), buffer_size=READ_BLOCK_BYTES),
            encoding=encoding,
            newline="",
        )
        consumed = [0]
        try:
            return self._consume(
                csv.reader(_counted_lines(text, encoding, consumed), strict=True),
                lambda: consumed[0], total_bytes,
            )
        finally:
            text.detach()

    def _stream_text(self, fh, total_bytes: Optional[int]) -> bool:
        consumed = [0]
        return self._consume(
            csv.reader(_counted_lines(fh, "utf-8", consumed), strict=True),
            lambda: consumed[0], total_bytes,
        )

    def _consume(self, reader, consumed, total_bytes: Optional[int]) -> bool:
        batch_size = self._settings.batch_size
        for record in reader:
            if self.cancelled:
                return False
            if not record:
                continue
            if not self._headers:
                self._headers = _dedupe_headers(list(record))
                continue

            self._buffer.append(self._to_row(record))
            self._row_count += 1
            if len(self._buffer) >= batch_size:
                self._emit_chunk()
            if total_bytes:
                self._report_progress(consumed(), total_bytes)

        return not self.cancelled

    def _to_row(self, record: List[str]) -> RawRow:
        n_headers = len(self._headers)
        if len(record) < n_headers:
            record = record + [""] * (n_headers - len(record))
        row = dict(zip(self._headers, record))
        if len(record) > n_headers:
            surplus = record[n_headers:]
            self._surplus_cells += len(surplus)
            for name, value in zip(self._overflow_columns(len(surplus)), surplus):
                row[name] = value
        return row

    def _overflow_columns(self, count: int) -> List[str]:
        """First *count* overflow column names, allocating new ones as needed."""
        taken = set(self._headers) | set(self._overflow)
        index = len(self._overflow)
        while len(self._overflow) < count:
            index += 1
            name = f"{OVERFLOW_COLUMN_PREFIX}{index}"
            if name not in taken:
                self._overflow.append(name)
                taken.add(name)
        return self._overflow[:count]

    def _emit_chunk(self) -> None:
        chunk = list(self._buffer)
        self._buffer.clear()
        self._listener.on_chunk(self._session_id, chunk)

    def _report_progress(self, consumed: int, total_bytes: int) -> None:
        percent = min(PROGRESS_STREAMING_MAX, round(consumed * 100 / total_bytes))
        if percent != self._last_progress:
            self._last_progress = percent
            self._listener.on_progress(self._session_id, percent)

    def _finish(self, started: float) -> None:
        session_id = self._session_id
        # Final flush, even when empty.
        self._emit_chunk()

        if self._surplus_cells:
            logger.warning(
                "Session %s: %d cell(s) beyond the %d header columns kept as %s",
                session_id, self._surplus_cells, len(self._headers),
                ", ".join(self._overflow),
            )

        result = check_schema(self._headers)
        if not result.ok:
            error = SchemaError(result.missing)
            logger.warning("Session %s: %s", session_id, error)
            self._listener.on_failed(session_id, error)
            return

        self._listener.on_progress(session_id, PROGRESS_DONE)
        logger.info(
            "Session %s: %d rows in %.2fs", session_id, self._row_count,
            time.perf_counter() - started,
        )
        self._listener.on_succeeded(session_id, self._headers + self._overflow)

    def _warn_if_large(self, total_bytes: Optional[int]) -> None:
        limit = self._settings.large_file_warning_bytes
        if total_bytes is not None and total_bytes > limit:
            warnings.warn(
                f"File is very large ({total_bytes / (1024 * 1024):.0f} MB). "
                f"All rows are kept in memory for the dashboard.",
                stacklevel=3,
            )


def _describe(source: Any) -> str:
    if isinstance(source, (str, bytes, os.PathLike)):
        return os.path.basename(os.fsdecode(source))
    return getattr(source, "name", type(source).__name__)
