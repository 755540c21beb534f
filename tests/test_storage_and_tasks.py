"""
Store Adapter and Rebuild Task Tests
====================================

SQLAlchemy stores against in-memory SQLite, batch rebuild summaries and the Celery
task bodies run synchronously.
"""
import logging
from datetime import datetime, timedelta

import pytest

from journey_analyzer import pipeline
from journey_analyzer.config import get_settings, reset_settings
from journey_analyzer.infrastructure import db
from journey_analyzer.reconstruction.builder import reconstruct_journey
from journey_analyzer.storage.sql import SqlEventStore, SqlJourneyStore
from journey_analyzer.tasks import rebuild


class TestEventStore:

    def test_rows_are_parsed_and_sorted(self, store_events, session):
        store_events(
            {"event_type": "heartbeat", "at": 30},
            {"event_type": "page_view", "at": 0, "page_url": "/", "metadata": {"botIndicators": {"plugins": 3}}},
        )
        events = SqlEventStore(session).list_events_for_session("s1")
        assert [e.event_type for e in events] == ["page_view", "heartbeat"]
        assert events[0].metadata.bot_indicators.plugins == 3

    def test_unreadable_rows_are_skipped(self, store_events, session, caplog):
        store_events(
            {"event_type": "page_view", "at": 0},
            {"event_type": "", "at": 5},
        )
        with caplog.at_level(logging.WARNING, logger="journey_analyzer.storage.sql"):
            events = SqlEventStore(session).list_events_for_session("s1")
        assert len(events) == 1
        assert "Skipping unreadable event" in caplog.text

    def test_unknown_vocabulary_is_kept_and_logged(self, store_events, session, caplog):
        store_events({"event_type": "teleport", "at": 0, "intent_type": "time_travel"})
        with caplog.at_level(logging.DEBUG, logger="journey_analyzer.storage.sql"):
            events = SqlEventStore(session).list_events_for_session("s1")
        assert [e.event_type for e in events] == ["teleport"]
        assert "event type 'teleport' outside vocabulary v1" in caplog.text
        assert "intent type 'time_travel' outside vocabulary v1" in caplog.text

    def test_ip_and_session_queries(self, store_events, session):
        store_events(
            {"event_type": "page_view", "at": 0, "session_id": "s1"},
            {"event_type": "page_view", "at": 600, "session_id": "s2", "ip_address": "81.2.69.7"},
            {"event_type": "page_view", "at": 900, "session_id": "s3", "ip_address": None},
        )
        store = SqlEventStore(session)
        assert store.list_all_ips() == ["81.2.69.160", "81.2.69.7"]
        assert [e.session_id for e in store.list_events_for_ip("81.2.69.7")] == ["s2"]
        assert store.list_unique_session_ids() == ["s1", "s2", "s3"]
        since = datetime(2024, 3, 4, 9, 9, 0)
        assert store.list_unique_session_ids(since=since) == ["s2", "s3"]


class TestJourneyStore:

    def test_upsert_twice_keeps_one_identical_row(self, make_event, session):
        journey = reconstruct_journey([
            make_event("page_view", 0, page_url="/"),
            make_event("cta_click", 20, intent_type="book_visit"),
        ])
        store = SqlJourneyStore(session)
        store.upsert_journey(journey)
        first = store.get_journey("s1")
        store.upsert_journey(journey)
        session.expire_all()

        assert store.get_journey("s1") == first
        assert len(store.list_journeys()) == 1
        assert first["outcome"] == "engaged"
        assert first["page_sequence"] == [{"url": "/", "timestamp": "2024-03-04T09:00:00"}]

    def test_bot_filter(self, make_event, session):
        store = SqlJourneyStore(session)
        store.upsert_journey(reconstruct_journey([make_event("page_view", 0, session_id="human", page_url="/")]))
        store.upsert_journey(reconstruct_journey([make_event("pixel_view", 0, session_id="pixel", page_url="/")]))
        assert [j["journey_id"] for j in store.list_journeys(include_bots=False)] == ["human"]

    def test_delete_nothing(self, session):
        assert SqlJourneyStore(session).delete_journeys_by_ids([]) == 0

    def test_get_journey_with_events(self, store_events, session):
        store_events(
            {"event_type": "heartbeat", "at": 30},
            {"event_type": "page_view", "at": 0, "page_url": "/"},
        )
        result = pipeline.get_journey_with_events(SqlEventStore(session), "s1")
        assert result["journey"]["journey_id"] == "s1"
        assert [e["event_type"] for e in result["events"]] == ["page_view", "heartbeat"]
        assert pipeline.get_journey_with_events(SqlEventStore(session), "missing") is None


class TestRebuildTasks:

    def test_rebuild_journey(self, store_events, session):
        store_events({"event_type": "page_view", "at": 0, "page_url": "/"})
        result = rebuild.rebuild_journey.run("s1")
        assert result == {"status": "ok", "processed": 1, "updated": 1, "errors": []}
        assert SqlJourneyStore(session).get_journey("s1")["entry_page"] == "/"

    def test_recent_rebuild_only_touches_new_events(self, store_events, session):
        store_events(
            {"event_type": "page_view", "session_id": "old", "page_url": "/"},
            {"event_type": "page_view", "session_id": "new", "page_url": "/", "occurred_at": datetime.utcnow() - timedelta(minutes=1)},
        )
        result = rebuild.rebuild_recent_journeys.run()
        assert result["processed"] == 1
        journeys = SqlJourneyStore(session)
        assert journeys.get_journey("new") is not None
        assert journeys.get_journey("old") is None

    def test_failed_journey_does_not_abort_batch(self, store_events, monkeypatch):
        store_events(
            {"event_type": "page_view", "at": 0, "session_id": "bad"},
            {"event_type": "page_view", "at": 0, "session_id": "good"},
        )
        real = pipeline.reconstruct_journey

        def flaky(events, journey_id=None, **kwargs):
            if journey_id == "bad":
                raise ValueError("boom")
            return real(events, journey_id, **kwargs)

        monkeypatch.setattr(pipeline, "reconstruct_journey", flaky)
        result = rebuild.rebuild_all_journeys.run()
        assert result == {
            "status": "partial",
            "processed": 2,
            "updated": 1,
            "errors": [{"journey_id": "bad", "error": "boom"}],
        }

    def test_consolidation_task(self, store_events):
        store_events(
            {"event_type": "page_view", "at": 0, "session_id": "s1"},
            {"event_type": "page_view", "at": 60, "session_id": "s2"},
        )
        result = rebuild.run_consolidation()
        assert result["sessions"] == 1
        assert result["errors"] == []

    def test_beat_schedule(self):
        from journey_analyzer.infrastructure.celery_app import celery_app

        entry = celery_app.conf.beat_schedule["rebuild-recent-journeys"]
        assert entry["task"] == "journey_analyzer.tasks.rebuild.rebuild_recent_journeys"
        assert entry["schedule"] == 30.0


class TestSettings:

    def test_database_healthcheck(self):
        assert db.healthcheck()

    def test_missing_database_config_raises(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_PROJECT_REF", raising=False)
        monkeypatch.delenv("SUPABASE_DB_PASSWORD", raising=False)
        reset_settings()
        try:
            with pytest.raises(RuntimeError):
                db._dsn()
        finally:
            monkeypatch.undo()
            reset_settings()

    def test_heuristics_override_from_env(self, monkeypatch):
        monkeypatch.setenv("HEURISTICS", '{"session_gap_minutes": 45, "bot_threshold": 60}')
        reset_settings()
        try:
            heuristics = get_settings().heuristics
            assert heuristics.session_gap_minutes == 45
            assert heuristics.bot_threshold == 60
            assert heuristics.search_exclusion_seconds == 2.0
        finally:
            monkeypatch.undo()
            reset_settings()
