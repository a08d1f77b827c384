"""Tests for the streaming CSV ingestor."""

import io
import warnings

import pytest

from conftest import RecordingListener, UnsizedStream, make_log_csv
from runner_dashboard.csv_ingest import (
    DecodeError,
    IngestSettings,
    SchemaError,
    StreamingIngestor,
)
from runner_dashboard.export import rows_to_csv
from runner_dashboard.metrics import compute_metrics


def _ingest(source, recorder, **settings):
    StreamingIngestor(recorder, IngestSettings(**settings)).begin(source, session_id=7)
    return recorder


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------

class TestChunking:
    def test_1200_rows_arrive_as_500_500_200(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(1200)), recorder)
        assert [len(c) for c in recorder.chunks] == [500, 500, 200]

    def test_exact_multiple_ends_with_empty_flush(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(1000)), recorder)
        assert [len(c) for c in recorder.chunks] == [500, 500, 0]

    def test_custom_batch_size(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(7)), recorder, batch_size=3)
        assert [len(c) for c in recorder.chunks] == [3, 3, 1]

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValueError):
            IngestSettings(batch_size=0)

    def test_rows_keep_file_order(self, write_csv, recorder):
        text = make_log_csv(1200)
        _ingest(write_csv(text), recorder)
        expected = [line.split(",")[2] for line in text.splitlines()[1:]]
        assert [row["miles run"] for row in recorder.rows] == expected

    def test_chunks_are_independent_copies(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(10)), recorder, batch_size=4)
        first = recorder.chunks[0]
        assert all(first is not other for other in recorder.chunks[1:])
        assert len(first) == 4

    def test_chunked_equals_single_batch(self, write_csv):
        path = write_csv(make_log_csv(1200))
        chunked = _ingest(path, RecordingListener(), batch_size=500)
        single = _ingest(path, RecordingListener(), batch_size=5000)

        assert [len(c) for c in single.chunks] == [1200]
        assert compute_metrics(chunked.rows) == compute_metrics(single.rows)


# ---------------------------------------------------------------------------
# Event sequence and progress
# ---------------------------------------------------------------------------

class TestEvents:
    def test_success_sequence(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(3)), recorder)
        kinds = recorder.kinds()
        assert kinds[0] == "started"
        assert kinds[-1] == "succeeded"
        assert kinds.count("succeeded") == 1
        assert "failed" not in kinds
        assert recorder.payloads("succeeded") == [["date", "person", "miles run"]]

    def test_session_id_is_echoed(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(3)), recorder)
        assert {sid for _, sid, _ in recorder.events} == {7}

    def test_progress_streams_below_100_then_finishes_at_100(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(3000)), recorder, batch_size=100)
        progress = recorder.payloads("progress")
        assert progress[-1] == 100
        streaming = progress[:-1]
        assert streaming
        assert all(0 <= p <= 99 for p in streaming)
        assert streaming == sorted(streaming)

    def test_progress_tracks_parsed_rows(self, write_csv, recorder):
        n_rows = 2000
        _ingest(write_csv(make_log_csv(n_rows)), recorder, batch_size=1)

        seen = []
        rows_so_far = 0
        for kind, _, payload in recorder.events:
            if kind == "chunk":
                rows_so_far += len(payload)
            elif kind == "progress" and payload < 100:
                seen.append((payload, rows_so_far))

        assert seen[0] == (0, 1)
        assert len(seen) >= 90
        for percent, rows in seen:
            assert abs(percent - rows * 100 / n_rows) <= 2

    def test_small_file_does_not_jump_to_99(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(100)), recorder, batch_size=1)
        assert recorder.payloads("progress")[0] <= 3

    def test_last_chunk_precedes_outcome(self, write_csv, recorder):
        _ingest(write_csv(make_log_csv(3)), recorder)
        kinds = recorder.kinds()
        assert kinds.index("succeeded") > max(i for i, k in enumerate(kinds) if k == "chunk")

    def test_no_progress_when_size_unknown(self, recorder):
        stream = UnsizedStream(make_log_csv(50).encode("utf-8"))
        _ingest(stream, recorder)
        assert recorder.payloads("progress") == [100]
        assert len(recorder.rows) == 50

    def test_explicit_total_bytes_for_text_source(self, recorder):
        text = make_log_csv(20)
        StreamingIngestor(recorder).begin(io.StringIO(text, newline=""),
                                          total_bytes=len(text.encode()))
        progress = recorder.payloads("progress")
        assert progress[-2] == 99
        assert progress[-1] == 100

    def test_begin_resets_previous_run(self, write_csv):
        recorder = RecordingListener()
        ingestor = StreamingIngestor(recorder, IngestSettings(batch_size=1000))
        ingestor.begin(write_csv(make_log_csv(5), "a.csv"), session_id=1)
        ingestor.begin(write_csv(make_log_csv(2), "b.csv"), session_id=2)
        second = [payload for kind, sid, payload in recorder.events
                  if kind == "chunk" and sid == 2]
        assert [len(c) for c in second] == [2]

    def test_cancel_stops_events(self, write_csv):
        class Cancelling(RecordingListener):
            def on_chunk(self, session_id, rows):
                super().on_chunk(session_id, rows)
                ingestor.cancel()

        listener = Cancelling()
        ingestor = StreamingIngestor(listener, IngestSettings(batch_size=10))
        ingestor.begin(write_csv(make_log_csv(100)))
        assert listener.kinds().count("chunk") == 1
        assert "succeeded" not in listener.kinds()
        assert "failed" not in listener.kinds()

    def test_cancel_before_begin_is_kept(self, write_csv, recorder):
        ingestor = StreamingIngestor(recorder)
        ingestor.cancel()
        ingestor.begin(write_csv(make_log_csv(10)))
        assert recorder.events == []
        assert ingestor.cancelled


# ---------------------------------------------------------------------------
# Schema failures
# ---------------------------------------------------------------------------

class TestSchemaFailure:
    def test_missing_header_fails_without_success(self, write_csv, recorder):
        _ingest(write_csv("Date,Miles Run\n2024-01-01,3\n"), recorder)
        kinds = recorder.kinds()
        assert "succeeded" not in kinds
        assert kinds[-1] == "failed"
        error = recorder.payloads("failed")[0]
        assert isinstance(error, SchemaError)
        assert error.missing == ("person",)
        assert str(error) == "Missing headers: person"

    def test_no_progress_100_on_failure(self, write_csv, recorder):
        _ingest(write_csv("a,b\n1,2\n"), recorder)
        assert 100 not in recorder.payloads("progress")

    def test_empty_file(self, write_csv, recorder):
        _ingest(write_csv(""), recorder)
        error = recorder.payloads("failed")[0]
        assert error.missing == ("date", "person", "miles run")

    def test_header_only_file_succeeds(self, write_csv, recorder):
        _ingest(write_csv("date,person,miles run\n"), recorder)
        assert recorder.kinds()[-1] == "succeeded"
        assert recorder.rows == []

    def test_alias_headers_pass(self, write_csv, recorder):
        _ingest(write_csv("date,name,distance\n2024-01-01,Ann,4\n"), recorder)
        assert recorder.kinds()[-1] == "succeeded"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

class TestDecoding:
    def test_quoted_fields(self, write_csv, recorder):
        text = 'date,person,miles run,notes\n2024-01-01,"Smith, Ann",3,"said ""hi""\nthen left"\n'
        _ingest(write_csv(text), recorder)
        (row,) = recorder.rows
        assert row["person"] == "Smith, Ann"
        assert row["notes"] == 'said "hi"\nthen left'

    def test_utf8_bom_is_stripped(self, write_csv, recorder):
        _ingest(write_csv("﻿date,person,miles run\n2024-01-01,Zoë,2\n"), recorder)
        assert recorder.kinds()[-1] == "succeeded"
        assert list(recorder.rows[0]) == ["date", "person", "miles run"]
        assert recorder.rows[0]["person"] == "Zoë"

    def test_crlf_and_blank_lines(self, write_csv, recorder):
        text = "date,person,miles run\r\n\r\n2024-01-01,Ann,3\r\n\r\n2024-01-02,Bo,4\r\n"
        _ingest(write_csv(text), recorder)
        assert [r["person"] for r in recorder.rows] == ["Ann", "Bo"]

    def test_values_stay_strings(self, write_csv, recorder):
        _ingest(write_csv("date,person,miles run\n2024-01-01,Ann,3.50\n"), recorder)
        assert recorder.rows[0]["miles run"] == "3.50"

    def test_short_rows_padded_and_surplus_cells_kept(self, write_csv, recorder):
        text = "date,person,miles run\n2024-01-01,Ann\n2024-01-02,Bo,4,extra,more\n"
        _ingest(write_csv(text), recorder)
        assert recorder.rows == [
            {"date": "2024-01-01", "person": "Ann", "miles run": ""},
            {"date": "2024-01-02", "person": "Bo", "miles run": "4",
             "_extra_1": "extra", "_extra_2": "more"},
        ]
        assert recorder.payloads("succeeded") == [
            ["date", "person", "miles run", "_extra_1", "_extra_2"],
        ]

    def test_surplus_column_names_avoid_existing_headers(self, write_csv, recorder):
        text = "date,person,miles run,_extra_1\n2024-01-01,Ann,3,a,b\n"
        _ingest(write_csv(text), recorder)
        assert recorder.rows[0]["_extra_1"] == "a"
        assert recorder.rows[0]["_extra_2"] == "b"
        assert recorder.payloads("succeeded")[0][-1] == "_extra_2"

    def test_surplus_cells_survive_csv_export(self, write_csv, recorder):
        text = "date,person,miles run\n2024-01-01,Ann,3\n2024-01-02,Bo,4,\"late, tired\"\n"
        _ingest(write_csv(text), recorder)
        exported = rows_to_csv(recorder.rows, recorder.payloads("succeeded")[0])
        assert exported == (
            "date,person,miles run,_extra_1\n"
            "2024-01-01,Ann,3,\n"
            "2024-01-02,Bo,4,\"late, tired\"\n"
        )

    def test_duplicate_headers_are_suffixed(self, write_csv, recorder):
        _ingest(write_csv("date,person,miles run,date\n2024-01-01,Ann,3,x\n"), recorder)
        assert recorder.rows[0] == {
            "date": "2024-01-01", "person": "Ann", "miles run": "3", "date_1": "x",
        }
        assert recorder.payloads("succeeded")[0][-1] == "date_1"

    def test_binary_file_object_left_open(self, recorder):
        fh = io.BytesIO(make_log_csv(4).encode("utf-8"))
        _ingest(fh, recorder)
        assert not fh.closed
        assert len(recorder.rows) == 4

    def test_text_file_object(self, recorder):
        _ingest(io.StringIO(make_log_csv(4), newline=""), recorder)
        assert len(recorder.rows) == 4
        assert recorder.kinds()[-1] == "succeeded"

    def test_bad_quoting_is_a_decode_error(self, write_csv, recorder):
        text = 'date,person,miles run\n2024-01-01,"Ann"x,3\n'
        _ingest(write_csv(text), recorder)
        kinds = recorder.kinds()
        assert kinds[-1] == "failed"
        assert "succeeded" not in kinds
        error = recorder.payloads("failed")[0]
        assert isinstance(error, DecodeError)
        assert str(error).startswith("Parsing error: ")

    def test_unterminated_quote_emits_no_later_chunks(self, write_csv, recorder):
        text = make_log_csv(5) + '2024-02-01,"Bo,4\n'
        _ingest(write_csv(text), recorder, batch_size=2)
        kinds = recorder.kinds()
        failed_at = kinds.index("failed")
        assert "chunk" not in kinds[failed_at:]
        assert failed_at == len(kinds) - 1
        assert isinstance(recorder.payloads("failed")[0], DecodeError)

    def test_invalid_utf8_is_a_decode_error(self, tmp_path, recorder):
        path = tmp_path / "bad.csv"
        path.write_bytes(b"date,person,miles run\n2024-01-01,\xff\xfe,3\n")
        _ingest(str(path), recorder)
        assert isinstance(recorder.payloads("failed")[0], DecodeError)

    def test_missing_file_is_a_decode_error(self, tmp_path, recorder):
        _ingest(str(tmp_path / "nope.csv"), recorder)
        assert recorder.kinds() == ["started", "failed"]

    def test_large_file_warning(self, write_csv, recorder):
        path = write_csv(make_log_csv(10))
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            _ingest(path, recorder, large_file_warning_bytes=10)
        assert any("very large" in str(w.message) for w in caught)
