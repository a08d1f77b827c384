"""Tests for session state transitions and the session controller."""

import io

import pytest

from conftest import make_log_csv
from runner_dashboard.csv_ingest import IngestSettings, StreamingIngestor
from runner_dashboard.session import (
    STATUS_FAILED, STATUS_IDLE, STATUS_LOADING, STATUS_READY,
    DashboardSession, SessionState, append_chunk, clear_progress, fail,
    reset, set_progress, start, succeed,
)

ROW_A = {"date": "2024-01-01", "person": "Ann", "miles run": "3"}
ROW_B = {"date": "2024-01-02", "person": "Bo", "miles run": "5"}


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------

class TestTransitions:
    def test_initial_state(self):
        state = SessionState()
        assert state.status == STATUS_IDLE
        assert state.rows == []
        assert state.progress is None
        assert state.error is None

    def test_start_sets_loading_at_zero(self):
        state = start(SessionState(), 3)
        assert state.session_id == 3
        assert state.progress == 0
        assert state.status == STATUS_LOADING

    def test_start_discards_previous_rows(self):
        state = append_chunk(start(SessionState(), 1), [ROW_A])
        state = start(state, 2)
        assert state.rows == []

    def test_append_chunk_keeps_order_and_input_state(self):
        first = start(SessionState(), 1)
        second = append_chunk(first, [ROW_A])
        third = append_chunk(second, [ROW_B])
        assert third.rows == [ROW_A, ROW_B]
        assert third.row_count == 2
        assert first.rows == []
        assert second.rows == [ROW_A]

    def test_append_empty_chunk_is_identity(self):
        state = append_chunk(start(SessionState(), 1), [ROW_A])
        assert append_chunk(state, []) is state

    def test_set_progress_is_clamped(self):
        state = start(SessionState(), 1)
        assert set_progress(state, 150).progress == 100
        assert set_progress(state, -5).progress == 0
        assert set_progress(state, 42).progress == 42

    def test_fail_drops_rows_and_records_message(self):
        state = append_chunk(start(SessionState(), 1), [ROW_A])
        state = fail(state, "Missing headers: person")
        assert state.rows == []
        assert state.error == "Missing headers: person"
        assert state.status == STATUS_FAILED

    def test_succeed(self):
        state = append_chunk(start(SessionState(), 1), [ROW_A])
        state = succeed(state, ["date", "person", "miles run"])
        assert state.status == STATUS_READY
        assert state.progress == 100
        assert state.headers == ("date", "person", "miles run")
        assert state.rows == [ROW_A]

    def test_clear_progress_keeps_rows(self):
        state = succeed(append_chunk(start(SessionState(), 1), [ROW_A]), [])
        state = clear_progress(state)
        assert state.progress is None
        assert state.rows == [ROW_A]

    def test_reset(self):
        state = fail(start(SessionState(), 4), "boom")
        cleared = reset(state)
        assert cleared == SessionState(session_id=4)
        assert reset(state, 9).session_id == 9

    def test_columns_fall_back_to_first_row(self):
        state = append_chunk(start(SessionState(), 1), [ROW_A])
        assert state.columns == ["date", "person", "miles run"]
        state = succeed(state, ["date", "person", "miles run", "notes"])
        assert state.columns[-1] == "notes"
        assert SessionState().columns == []


# ---------------------------------------------------------------------------
# DashboardSession
# ---------------------------------------------------------------------------

class TestDashboardSession:
    def test_session_ids_increase(self):
        session = DashboardSession()
        first = session.new_session()
        second = session.new_session()
        assert second > first
        assert session.session_id == second

    def test_stale_events_are_ignored(self):
        session = DashboardSession()
        old = session.new_session()
        new = session.new_session()

        assert session.apply_chunk(old, [ROW_A]) is False
        assert session.apply_progress(old, 50) is False
        assert session.apply_failure(old, "boom") is False
        assert session.apply_success(old, ["date"]) is False
        assert session.clear_progress(old) is False

        state = session.state
        assert state.session_id == new
        assert state.rows == []
        assert state.progress == 0
        assert state.error is None
        assert state.status == STATUS_LOADING

    def test_new_upload_mid_stream_discards_old_rows(self):
        session = DashboardSession()
        first = session.new_session()
        session.apply_chunk(first, [ROW_A] * 500)
        second = session.new_session()
        session.apply_chunk(first, [ROW_A] * 500)
        session.apply_chunk(second, [ROW_B])
        session.apply_success(second, ["date", "person", "miles run"])

        assert session.state.rows == [ROW_B]
        assert session.state.status == STATUS_READY

    def test_reset_ignores_running_upload(self):
        session = DashboardSession()
        sid = session.new_session()
        session.apply_chunk(sid, [ROW_A])
        session.reset()
        assert session.apply_chunk(sid, [ROW_B]) is False
        assert session.state.rows == []
        assert session.state.status == STATUS_IDLE
        assert session.state.progress is None

    def test_failure_shows_no_partial_rows(self):
        session = DashboardSession()
        sid = session.new_session()
        session.apply_chunk(sid, [ROW_A])
        session.apply_failure(sid, "Parsing error: bad quote")
        assert session.state.rows == []
        assert session.state.error == "Parsing error: bad quote"

    def test_listeners_see_only_applied_changes(self):
        session = DashboardSession()
        seen = []
        session.add_listener(seen.append)
        old = session.new_session()
        new = session.new_session()
        session.apply_chunk(old, [ROW_A])
        session.apply_chunk(new, [ROW_B])
        assert len(seen) == 3
        assert seen[-1].rows == [ROW_B]

    def test_metrics_are_memoized(self):
        session = DashboardSession()
        sid = session.new_session()
        session.apply_chunk(sid, [ROW_A, ROW_B])
        first = session.metrics()
        assert session.metrics() is first
        assert first.overall.total == pytest.approx(8.0)

        session.apply_progress(sid, 50)
        assert session.metrics() is first

        session.apply_chunk(sid, [ROW_A])
        updated = session.metrics()
        assert updated is not first
        assert updated.overall.total == pytest.approx(11.0)

    def test_metrics_empty_session(self):
        metrics = DashboardSession().metrics()
        assert metrics.overall.count == 0
        assert metrics.per_person == []
        assert metrics.daily_trend == []


# ---------------------------------------------------------------------------
# Ingestor feeding a session
# ---------------------------------------------------------------------------

class TestIngestIntoSession:
    def test_end_to_end(self):
        session = DashboardSession()
        sid = session.new_session()
        ingestor = StreamingIngestor(session.ingest_listener(),
                                     IngestSettings(batch_size=100))
        ingestor.begin(io.BytesIO(make_log_csv(250).encode()), session_id=sid)

        state = session.state
        assert state.status == STATUS_READY
        assert state.row_count == 250
        assert state.progress == 100
        assert len(state.chunks) == 3
        assert session.metrics().valid_count == 250

    def test_superseded_upload_does_not_leak(self):
        session = DashboardSession()
        stale = session.new_session()
        current = session.new_session()
        listener = session.ingest_listener()

        StreamingIngestor(listener).begin(
            io.BytesIO(make_log_csv(40).encode()), session_id=stale)
        assert session.state.rows == []

        StreamingIngestor(listener).begin(
            io.BytesIO(make_log_csv(3).encode()), session_id=current)
        assert session.state.row_count == 3

    def test_schema_failure(self):
        session = DashboardSession()
        sid = session.new_session()
        StreamingIngestor(session.ingest_listener()).begin(
            io.BytesIO(b"date,miles run\n2024-01-01,3\n"), session_id=sid)
        assert session.state.status == STATUS_FAILED
        assert session.state.error == "Missing headers: person"
        assert session.state.rows == []
