"""
Event Schema Tests
==================

Lenient parsing of tracked-event rows and their metadata payload.
"""
from datetime import datetime

from journey_analyzer.validation.events import (
    EventMetadata,
    TrackedEvent,
    is_known_event_type,
    is_known_intent_type,
    parse_event,
)


class TestTrackedEvent:

    def test_journey_id_is_accepted_as_session_id(self):
        event = TrackedEvent.model_validate({"journey_id": "j-1", "event_type": "page_view"})
        assert event.session_id == "j-1"

    def test_aware_timestamps_become_naive_utc(self):
        event = TrackedEvent.model_validate({
            "session_id": "s1", "event_type": "page_view", "occurred_at": "2024-03-04T10:00:00+01:00",
        })
        assert event.occurred_at == datetime(2024, 3, 4, 9, 0, 0)

    def test_missing_event_type_is_rejected(self):
        event, reason = parse_event({"session_id": "s1", "occurred_at": "2024-03-04T10:00:00"})
        assert event is None
        assert reason.startswith("validation_error:")

    def test_non_mapping_metadata_becomes_empty(self):
        event = TrackedEvent.model_validate({"session_id": "s1", "event_type": "heartbeat", "metadata": "oops"})
        assert event.metadata == EventMetadata()

    def test_click_types(self):
        assert TrackedEvent.model_validate({"session_id": "s1", "event_type": "download_click"}).is_click
        assert not TrackedEvent.model_validate({"session_id": "s1", "event_type": "form_submit"}).is_click


class TestMetadata:

    def test_camel_and_snake_case_keys(self):
        assert EventMetadata.model_validate({"fieldsCompleted": 3}).fields_completed == 3
        assert EventMetadata.model_validate({"fields_completed": 3}).fields_completed == 3

    def test_wrongly_typed_keys_are_dropped_individually(self):
        metadata = EventMetadata.model_validate({"depth": "deep", "formId": "contact", "unknownKey": 1})
        assert metadata.depth is None
        assert metadata.form_id == "contact"

    def test_vocabulary(self):
        assert is_known_event_type("site_search")
        assert not is_known_event_type("teleport")
        assert not is_known_event_type(None)
        assert is_known_intent_type("book_visit")
        assert not is_known_intent_type("teleport")
        assert not is_known_intent_type(None)
