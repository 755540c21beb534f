"""
Session Consolidation Tests
===========================

IP-based re-segmentation into 30-minute-gap sessions, visit numbering, journey id
assignment and duplicate/orphan cleanup.
"""
import logging

from journey_analyzer.config import Heuristics
from journey_analyzer.consolidation.consolidator import consolidate_sessions
from journey_analyzer.consolidation.sessions import consolidate_ip_events, split_sessions
from journey_analyzer.pipeline import rebuild_sessions
from journey_analyzer.storage.base import EventStore
from journey_analyzer.storage.sql import SqlEventStore, SqlJourneyStore

MINUTE = 60


class TestSplitSessions:

    def test_forty_five_minute_gap_splits(self, make_event):
        events = [
            make_event("page_view", 45 * MINUTE, page_url="/c"),
            make_event("page_view", 0, page_url="/a"),
            make_event("page_view", 10 * MINUTE, page_url="/b"),
        ]
        sessions = split_sessions(events)
        assert [[e.page_url for e in s] for s in sessions] == [["/a", "/b"], ["/c"]]

    def test_gap_must_exceed_threshold(self, make_event):
        exactly = [make_event("heartbeat", 0), make_event("heartbeat", 30 * MINUTE)]
        just_over = [make_event("heartbeat", 0), make_event("heartbeat", 30 * MINUTE + 1)]
        assert len(split_sessions(exactly)) == 1
        assert len(split_sessions(just_over)) == 2

    def test_gap_is_configurable(self, make_event):
        events = [make_event("heartbeat", 0), make_event("heartbeat", 20 * MINUTE)]
        assert len(split_sessions(events, Heuristics(session_gap_minutes=15))) == 2

    def test_no_events_no_sessions(self):
        assert split_sessions([]) == []


class TestConsolidateIp:

    def test_visit_numbers_and_suffixed_ids(self, make_event):
        events = [
            make_event("page_view", 0, session_id="s1", page_url="/"),
            make_event("page_view", 2 * 60 * MINUTE, session_id="s1", page_url="/fees"),
        ]
        journeys = consolidate_ip_events(events)
        assert [(j.journey_id, j.visit_number) for j in journeys] == [("s1", 1), ("s1_p2", 2)]

    def test_sessions_from_several_ids_merge(self, make_event):
        events = [
            make_event("page_view", 0, session_id="s1", page_url="/"),
            make_event("page_view", 5 * MINUTE, session_id="s2", page_url="/fees"),
        ]
        journeys = consolidate_ip_events(events)
        assert len(journeys) == 1
        assert journeys[0].journey_id == "s1"
        assert [p.url for p in journeys[0].page_sequence] == ["/", "/fees"]

    def test_ids_claimed_by_another_ip_are_suffixed(self, make_event):
        claimed = {"s1"}
        journeys = consolidate_ip_events([make_event("page_view", 0, session_id="s1")], claimed)
        assert journeys[0].journey_id == "s1_p1"
        assert claimed == {"s1", "s1_p1"}


class TestConsolidateStore:

    def _seed(self, store_events, session):
        store_events(
            {"event_type": "page_view", "at": 0, "session_id": "s1", "page_url": "/"},
            {"event_type": "heartbeat", "at": 30, "session_id": "s1"},
            {"event_type": "page_view", "at": 120, "session_id": "s2", "page_url": "/fees"},
            {"event_type": "page_view", "at": 3 * 60 * MINUTE, "session_id": "s3", "page_url": "/"},
            {"event_type": "page_view", "at": 0, "session_id": "ghost", "page_url": "/", "ip_address": None},
        )
        # journeys left behind by earlier per-session rebuilds
        rebuild_sessions(SqlEventStore(session), SqlJourneyStore(session), ["s1", "s2", "s3", "ghost"])

    def test_duplicates_and_orphans_are_deleted(self, store_events, session):
        self._seed(store_events, session)
        journeys = SqlJourneyStore(session)
        assert journeys.list_journeys_with_no_ip() == ["ghost"]

        summary = consolidate_sessions(SqlEventStore(session), journeys)

        assert summary["status"] == "ok"
        assert summary["ips"] == 1
        assert summary["sessions"] == 2
        assert summary["duplicates_deleted"] == 1
        assert summary["orphans_deleted"] == 1
        assert summary["errors"] == []
        assert [j["journey_id"] for j in journeys.list_journeys()] == ["s1", "s3"]
        assert journeys.get_journey("s1")["event_count"] == 3
        assert journeys.get_journey("s3")["visit_number"] == 2

    def test_rerun_is_idempotent(self, store_events, session):
        self._seed(store_events, session)
        journeys = SqlJourneyStore(session)
        consolidate_sessions(SqlEventStore(session), journeys)
        first = journeys.list_journeys()

        summary = consolidate_sessions(SqlEventStore(session), journeys)
        session.expire_all()

        assert summary["duplicates_deleted"] == 0
        assert summary["orphans_deleted"] == 0
        assert journeys.list_journeys() == first

    def test_site_scope(self, store_events, session):
        store_events(
            {"event_type": "page_view", "at": 0, "session_id": "a1", "site_id": 1},
            {"event_type": "page_view", "at": 0, "session_id": "b1", "site_id": 2, "ip_address": "81.2.69.200"},
        )
        journeys = SqlJourneyStore(session)
        summary = consolidate_sessions(SqlEventStore(session), journeys, site_id=2)
        assert summary["ips"] == 1
        assert [j["journey_id"] for j in journeys.list_journeys()] == ["b1"]

    def test_one_failing_ip_does_not_abort(self, make_event):
        class FlakyEvents(EventStore):
            def list_events_for_session(self, session_id):
                return []

            def list_events_for_ip(self, ip_address, site_id=None):
                if ip_address == "81.2.69.9":
                    raise ConnectionError("read timed out")
                return [make_event("page_view", 0, session_id=f"s-{ip_address}", ip_address=ip_address)]

            def list_all_ips(self, site_id=None):
                return ["81.2.69.1", "81.2.69.9"]

            def list_unique_session_ids(self, since=None):
                return []

        class MemoryJourneys:
            def __init__(self):
                self.rows = {}

            def upsert_journey(self, journey):
                self.rows[journey.journey_id] = journey.to_dict()

            def delete_journeys_by_ids(self, journey_ids):
                ids = [i for i in journey_ids if i in self.rows]
                for i in ids:
                    del self.rows[i]
                return len(ids)

            def list_journeys_with_no_ip(self, site_id=None):
                return []

        store = MemoryJourneys()
        summary = consolidate_sessions(FlakyEvents(), store)
        assert summary["status"] == "partial"
        assert summary["errors"] == [{"ip": "81.2.69.9", "error": "read timed out"}]
        assert list(store.rows) == ["s-81.2.69.1"]

    def test_failed_ip_keeps_journeys_it_shares(self, store_events, session, caplog):
        store_events(
            {"event_type": "page_view", "at": 0, "session_id": "x", "ip_address": "81.2.69.1"},
            {"event_type": "page_view", "at": 60, "session_id": "s", "ip_address": "81.2.69.1"},
            {"event_type": "page_view", "at": 0, "session_id": "s", "ip_address": "81.2.69.9"},
        )
        journeys = SqlJourneyStore(session)
        rebuild_sessions(SqlEventStore(session), journeys, ["x", "s"])

        class UnreachableIp(SqlEventStore):
            def list_events_for_ip(self, ip_address, site_id=None):
                if ip_address == "81.2.69.9":
                    raise ConnectionError("read timed out")
                return super().list_events_for_ip(ip_address, site_id)

        with caplog.at_level(logging.WARNING, logger="journey_analyzer.consolidation.consolidator"):
            summary = consolidate_sessions(UnreachableIp(session), journeys)

        assert summary["status"] == "partial"
        assert summary["duplicates_deleted"] == 0
        assert "Duplicate cleanup deferred" in caplog.text
        assert journeys.get_journey("s") is not None
        assert journeys.get_journey("x")["event_count"] == 2
