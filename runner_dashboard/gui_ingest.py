"""
Background CSV ingestion for the Runner Log Dashboard GUI.

``IngestWorker`` runs ``StreamingIngestor`` on its own ``QThread`` and
re-emits every ingestion event as a Qt signal.  Signals cross into the
GUI thread as queued connections, so slots always run on the main
thread, in emission order.
"""

from PySide6.QtCore import QThread, Signal

from .csv_ingest import IngestListener, IngestSettings, StreamingIngestor


class _SignalListener(IngestListener):
    """Forward ingestion events to the worker's signals."""

    def __init__(self, worker: "IngestWorker"):
        self._worker = worker

    def on_chunk(self, session_id, rows):
        self._worker.chunk_ready.emit(session_id, rows)

    def on_progress(self, session_id, percent):
        self._worker.progress_changed.emit(session_id, percent)

    def on_failed(self, session_id, error):
        self._worker.failed.emit(session_id, str(error))

    def on_succeeded(self, session_id, headers):
        self._worker.succeeded.emit(session_id, headers)


class IngestWorker(QThread):
    """
    Stream one CSV file in the background.

    Signals
    -------
    chunk_ready : Signal(int, object)
        Session id and a list of raw row dicts.
    progress_changed : Signal(int, int)
        Session id and percent (0-100).
    failed : Signal(int, str)
        Session id and a user-facing error message.
    succeeded : Signal(int, object)
        Session id and the list of header names.
    """

    chunk_ready = Signal(int, object)
    progress_changed = Signal(int, int)
    failed = Signal(int, str)
    succeeded = Signal(int, object)

    def __init__(self, source, session_id: int,
                 settings: IngestSettings = None, parent=None):
        super().__init__(parent)
        self._source = source
        self._session_id = session_id
        self._ingestor = StreamingIngestor(_SignalListener(self), settings)

    @property
    def session_id(self) -> int:
        return self._session_id

    def abort(self):
        """Stop after the current record; no further signals are emitted."""
        self._ingestor.cancel()

    def run(self):  # noqa: D401 – Qt override
        try:
            self._ingestor.begin(self._source, self._session_id)
        except Exception as exc:
            self.failed.emit(self._session_id, f"{type(exc).__name__}: {exc}")
