"""Shared test fixtures for the Runner Log Dashboard test suite."""

import io
import os

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

from runner_dashboard.csv_ingest import IngestListener


class RecordingListener(IngestListener):
    """Collects ingestion events as ``(kind, session_id, payload)`` tuples."""

    def __init__(self):
        self.events = []

    def on_started(self, session_id):
        self.events.append(("started", session_id, None))

    def on_chunk(self, session_id, rows):
        self.events.append(("chunk", session_id, rows))

    def on_progress(self, session_id, percent):
        self.events.append(("progress", session_id, percent))

    def on_failed(self, session_id, error):
        self.events.append(("failed", session_id, error))

    def on_succeeded(self, session_id, headers):
        self.events.append(("succeeded", session_id, headers))

    def kinds(self):
        return [kind for kind, _, _ in self.events]

    def payloads(self, kind):
        return [payload for k, _, payload in self.events if k == kind]

    @property
    def chunks(self):
        return self.payloads("chunk")

    @property
    def rows(self):
        return [row for chunk in self.chunks for row in chunk]


class UnsizedStream(io.RawIOBase):
    """Binary stream whose length cannot be measured."""

    def __init__(self, data: bytes):
        super().__init__()
        self._inner = io.BytesIO(data)

    def readable(self):
        return True

    def seekable(self):
        return False

    def readinto(self, buffer):
        data = self._inner.read(len(buffer))
        buffer[:len(data)] = data
        return len(data)


def make_log_csv(n_rows: int, people=("Ann", "Bo", "Cy")) -> str:
    """Running log with ``n_rows`` data rows and ISO dates."""
    lines = ["date,person,miles run"]
    for i in range(n_rows):
        day = 1 + i % 28
        month = 1 + (i // 28) % 12
        person = people[i % len(people)]
        miles = 1 + (i * 37 % 100) / 10
        lines.append(f"2024-{month:02d}-{day:02d},{person},{miles}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def recorder():
    return RecordingListener()


@pytest.fixture
def write_csv(tmp_path):
    """Write text to a CSV file under ``tmp_path`` and return its path."""
    def _write(text: str, name: str = "runs.csv", encoding: str = "utf-8") -> str:
        path = tmp_path / name
        path.write_bytes(text.encode(encoding))
        return str(path)
    return _write
