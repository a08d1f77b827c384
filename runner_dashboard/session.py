"""
Ingestion session state for the Runner Log Dashboard.

``SessionState`` is an immutable snapshot of everything the dashboard
shows: the accumulated raw rows, the observed headers, upload progress
and the last error.  Transitions are pure functions (``start``,
``append_chunk``, ``set_progress``, ``fail``, ``succeed``,
``clear_progress``, ``reset``) returning a new snapshot.

``DashboardSession`` owns the current snapshot.  Every event handler
takes the session id the event was produced for and ignores it unless
that id is still current, so a superseded upload can never write into
the state of a newer one.  Handlers are serialized by a lock; readers
always see a complete snapshot.

Rows are stored as a tuple of chunk tuples, so appending a chunk never
copies rows that are already held.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .constants import PROGRESS_DONE
from .csv_ingest import IngestError, IngestListener
from .data_model import DashboardMetrics, RawRow
from .metrics import compute_metrics

logger = logging.getLogger(__name__)

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of one ingestion session.

    Parameters
    ----------
    session_id : int
        Id of the upload this snapshot belongs to.
    chunks : tuple of tuple of RawRow
        Accumulated rows, chunk by chunk, in file order.
    headers : tuple of str
        Header row, set on success.
    progress : int or None
        0-100 while an upload is in flight or just finished; ``None``
        when nothing is in flight.
    error : str or None
        User-facing message of a failed upload.
    status : str
        One of ``idle``, ``loading``, ``ready``, ``failed``.
    """
    session_id: int = 0
    chunks: Tuple[Tuple[RawRow, ...], ...] = ()
    headers: Tuple[str, ...] = ()
    progress: Optional[int] = None
    error: Optional[str] = None
    status: str = STATUS_IDLE

    @property
    def rows(self) -> List[RawRow]:
        return list(itertools.chain.from_iterable(self.chunks))

    @property
    def row_count(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    @property
    def columns(self) -> List[str]:
        """Column names for display: headers, else the first row's keys."""
        if self.headers:
            return list(self.headers)
        for chunk in self.chunks:
            if chunk:
                return list(chunk[0].keys())
        return []


# ── Transitions ──────────────────────────────────────────────────────────

def reset(state: SessionState, session_id: Optional[int] = None) -> SessionState:
    return SessionState(
        session_id=state.session_id if session_id is None else session_id,
    )


def start(state: SessionState, session_id: int) -> SessionState:
    return SessionState(session_id=session_id, progress=0, status=STATUS_LOADING)


def append_chunk(state: SessionState, rows: Sequence[RawRow]) -> SessionState:
    if not rows:
        return state
    return replace(state, chunks=state.chunks + (tuple(rows),))


def set_progress(state: SessionState, percent: int) -> SessionState:
    return replace(state, progress=max(0, min(PROGRESS_DONE, int(percent))))


def fail(state: SessionState, message: str) -> SessionState:
    # A failed upload shows no partial data.
    return replace(state, chunks=(), headers=(), error=message, status=STATUS_FAILED)


def succeed(state: SessionState, headers: Iterable[str]) -> SessionState:
    return replace(
        state, headers=tuple(headers), progress=PROGRESS_DONE,
        error=None, status=STATUS_READY,
    )


def clear_progress(state: SessionState) -> SessionState:
    return replace(state, progress=None)


# ── Controller ───────────────────────────────────────────────────────────

class DashboardSession:
    """Single owner of the dashboard's session state."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._state = SessionState()
        self._listeners: List[Callable[[SessionState], None]] = []
        self._metrics_key = None
        self._metrics = DashboardMetrics()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> int:
        return self._state.session_id

    def add_listener(self, callback: Callable[[SessionState], None]) -> None:
        """Call *callback* with the new state after every applied change."""
        self._listeners.append(callback)

    # ── session lifecycle ───────────────────────────────────────────

    def new_session(self) -> int:
        """Discard the current session and start loading a new one."""
        with self._lock:
            session_id = next(self._ids)
            self._state = start(self._state, session_id)
            new_state = self._state
        self._notify(new_state)
        return session_id

    def reset(self) -> None:
        """Clear all data.  Events from any running upload are ignored."""
        with self._lock:
            self._state = reset(self._state, next(self._ids))
            new_state = self._state
        self._notify(new_state)

    # ── event handlers ──────────────────────────────────────────────

    def apply_chunk(self, session_id: int, rows: Sequence[RawRow]) -> bool:
        return self._apply(session_id, append_chunk, rows)

    def apply_progress(self, session_id: int, percent: int) -> bool:
        return self._apply(session_id, set_progress, percent)

    def apply_failure(self, session_id: int, message: str) -> bool:
        return self._apply(session_id, fail, message)

    def apply_success(self, session_id: int, headers: Iterable[str]) -> bool:
        return self._apply(session_id, succeed, headers)

    def clear_progress(self, session_id: int) -> bool:
        return self._apply(session_id, clear_progress)

    def ingest_listener(self) -> "SessionIngestListener":
        """Listener that feeds ``StreamingIngestor`` events straight in."""
        return SessionIngestListener(self)

    # ── derived views ───────────────────────────────────────────────

    def metrics(self) -> DashboardMetrics:
        """Metrics of the current snapshot, memoized on its rows."""
        with self._lock:
            chunks = self._state.chunks
            if chunks is self._metrics_key:
                return self._metrics
        metrics = compute_metrics(list(itertools.chain.from_iterable(chunks)))
        with self._lock:
            self._metrics_key = chunks
            self._metrics = metrics
        return metrics

    # ── internals ───────────────────────────────────────────────────

    def _apply(self, session_id: int, transition, *args) -> bool:
        with self._lock:
            if session_id != self._state.session_id:
                logger.debug(
                    "Ignoring %s for stale session %s (current %s)",
                    transition.__name__, session_id, self._state.session_id,
                )
                return False
            self._state = transition(self._state, *args)
            new_state = self._state
        self._notify(new_state)
        return True

    def _notify(self, state: SessionState) -> None:
        for callback in list(self._listeners):
            callback(state)


class SessionIngestListener(IngestListener):
    """Adapter from ingestion events to ``DashboardSession`` handlers."""

    def __init__(self, session: DashboardSession):
        self._session = session

    def on_chunk(self, session_id: int, rows: List[RawRow]) -> None:
        self._session.apply_chunk(session_id, rows)

    def on_progress(self, session_id: int, percent: int) -> None:
        self._session.apply_progress(session_id, percent)

    def on_failed(self, session_id: int, error: IngestError) -> None:
        self._session.apply_failure(session_id, str(error))

    def on_succeeded(self, session_id: int, headers: List[str]) -> None:
        self._session.apply_success(session_id, headers)
