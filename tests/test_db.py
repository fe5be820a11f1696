"""Tests for the local run history, on an in-memory SQLite database."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from urlcompare.data import db as db_ops
from urlcompare.models import ComparisonRunRecord, ComparisonStatus, IterationResult


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    db_ops.initialize_database(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def results():
    return [
        IterationResult.model_validate({"status": "MATCH", "operationName": "op",
                                        "api1": {"duration": 4}, "api2": {"duration": 6}}),
        IterationResult.model_validate({"status": "MISMATCH", "differences": ["$.a"],
                                        "api1": {"duration": 1.5}}),
        IterationResult.model_validate({"status": "ERROR", "errorMessage": "boom"}),
    ]


class TestRunHistory:
    def test_insert_stores_counts(self, db):
        record = db_ops.insert_run(db, "LIVE", None, results())
        assert record.id is not None
        assert (record.total, record.matches, record.mismatches, record.errors) == (3, 1, 1, 1)
        assert record.total_duration == 11.5

        as_model = ComparisonRunRecord.model_validate(record)
        assert as_model.comparison_mode == "LIVE"
        assert as_model.baseline_operation is None

    def test_results_round_trip(self, db):
        record = db_ops.insert_run(db, "BASELINE", "CAPTURE", results())
        loaded = db_ops.load_results(record)
        assert [r.status for r in loaded] == [
            ComparisonStatus.MATCH, ComparisonStatus.MISMATCH, ComparisonStatus.ERROR,
        ]
        assert loaded[1].differences == ["$.a"]
        assert loaded[2].error_message == "boom"

    def test_history_is_newest_first_and_limited(self, db):
        first = db_ops.insert_run(db, "LIVE", None, results())
        second = db_ops.insert_run(db, "LIVE", None, results()[:1])
        third = db_ops.insert_run(db, "BASELINE", "COMPARE", [])

        history = db_ops.fetch_history(db, limit=2)
        assert [r.id for r in history] == [third.id, second.id]
        assert db_ops.fetch_latest_run(db).id == third.id
        assert first.id < second.id

    def test_empty_history(self, db):
        assert db_ops.fetch_history(db) == []
        assert db_ops.fetch_latest_run(db) is None

    def test_failed_insert_rolls_back(self, db):
        with pytest.raises(IntegrityError):
            db_ops.insert_run(db, None, None, results())
        assert db_ops.fetch_history(db) == []
