from __future__ import annotations
from typing import Sequence
from journey_analyzer.validation.events import TrackedEvent
from .journey import Outcome

NEAR_COMPLETE_FIELDS = 5
MID_FIELDS = 2
NEAR_COMPLETE_TOUCHED = 8
MID_TOUCHED = 3


def classify_form_abandonment(events: Sequence[TrackedEvent]) -> Outcome:
    """Bucket an unsubmitted form by how far the visitor got.

    Only meaningful when a real form start exists and no real submit does. An explicit
    ``form_abandon`` event (its ``fields_completed`` count) is preferred; otherwise the
    depth is inferred from ``form_field_blur`` events.
    """
    abandons = [e for e in events if e.event_type == "form_abandon"]
    if abandons:
        completed = abandons[-1].metadata.fields_completed or 0
        if completed >= NEAR_COMPLETE_FIELDS:
            return Outcome.FORM_NEAR_COMPLETE_ABANDON
        if completed >= MID_FIELDS:
            return Outcome.FORM_MID_ABANDON
        return Outcome.FORM_EARLY_ABANDON

    touched: set[str] = set()
    completed_fields: set[str] = set()
    for e in events:
        if e.event_type != "form_field_blur" or not e.metadata.field_name:
            continue
        touched.add(e.metadata.field_name)
        if e.metadata.completed is True:
            completed_fields.add(e.metadata.field_name)

    if len(completed_fields) >= NEAR_COMPLETE_FIELDS or len(touched) >= NEAR_COMPLETE_TOUCHED:
        return Outcome.FORM_NEAR_COMPLETE_ABANDON
    if len(completed_fields) >= MID_FIELDS or len(touched) >= MID_TOUCHED:
        return Outcome.FORM_MID_ABANDON
    return Outcome.FORM_EARLY_ABANDON
