"""Tracked-event schema.

Rows from the event store are parsed into frozen ``TrackedEvent`` models. The metadata
payload is schema-validated but lenient: unknown keys are ignored and a key holding a
value of the wrong type is dropped (becomes ``None``) instead of failing the event.
Client instrumentation sends camelCase keys, server-side enrichment sends snake_case;
both are accepted.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel


SCHEMA_VERSION = "v1"

EVENT_TYPES = frozenset({
    "page_view",
    "pixel_view",
    "cta_click",
    "download_click",
    "external_link",
    "form_start",
    "form_field_focus",
    "form_field_blur",
    "form_submit",
    "form_abandon",
    "scroll_depth",
    "section_view",
    "element_hover",
    "heartbeat",
    "rage_click",
    "exit_intent",
    "site_search",
})

INTENT_TYPES = frozenset({
    "book_visit",
    "enquire",
    "apply",
    "prospectus",
    "download_prospectus",
    "demo",
    "contact",
    "calculate",
    "download",
    "external",
})

CLICK_EVENT_TYPES = ("cta_click", "download_click", "external_link")


def is_known_event_type(event_type: str | None) -> bool:
    """Unknown types are still processed as opaque tags; this only reports drift."""
    return event_type in EVENT_TYPES


def is_known_intent_type(intent_type: str | None) -> bool:
    return intent_type in INTENT_TYPES


class _LenientModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True, alias_generator=to_camel)

    @field_validator("*", mode="wrap")
    @classmethod
    def _drop_invalid(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return None


class Fingerprint(_LenientModel):
    canvas_suspicious: bool | None = None
    canvas_error: bool | None = None
    webgl: Any = None
    webgl_suspicious: bool | None = None
    webgl_missing: bool | None = None
    webgl_error: bool | None = None
    webgl_vendor: str | None = None
    webgl_renderer: str | None = None
    screen_res: str | None = None
    platform: str | None = None


class MousePatterns(_LenientModel):
    no_movement: bool | None = None
    too_straight: bool | None = None
    uniform_timing: bool | None = None
    total_movements: int | None = None
    total_clicks: int | None = None
    total_distance: float | None = None
    straight_line_ratio: float | None = None
    timing_variance: float | None = None
    max_speed: float | None = None


class ScrollPatterns(_LenientModel):
    no_scroll: bool | None = None
    too_uniform: bool | None = None
    no_direction_change: bool | None = None
    total_scrolls: int | None = None
    direction_changes: int | None = None
    uniform_count: int | None = None
    timing_variance: float | None = None
    max_speed: float | None = None


class JsChallenge(_LenientModel):
    passed: bool | None = None
    failures: tuple[str, ...] | None = None


class BotIndicators(_LenientModel):
    """Client-reported automation and behaviour summary."""
    webdriver: bool | None = None
    automation_controlled: bool | None = None
    plugins: int | None = None
    languages: Any = None  # list of languages, a count, or False
    notification_permission: str | None = None
    permission_timestamp: float | None = None
    touch_support: bool | None = None
    device_type: str | None = None
    fingerprint: Fingerprint | None = None
    mouse_patterns: MousePatterns | None = None
    scroll_patterns: ScrollPatterns | None = None
    honeypot_clicked: bool | None = None
    js_challenge_passed: bool | None = None
    js_challenge_failures: tuple[str, ...] | None = None
    js_challenge: JsChallenge | None = None
    timing_anomaly: bool | None = None


class EventMetadata(_LenientModel):
    depth: float | None = None
    field_name: str | None = None
    completed: bool | None = None
    fields_completed: int | None = None
    form_id: str | None = None
    form_label: str | None = None
    bot_indicators: BotIndicators | None = None
    # Older tracking scripts send these at the top level
    fingerprint: Fingerprint | None = None
    mouse_analysis: MousePatterns | None = None
    scroll_analysis: ScrollPatterns | None = None


class TrackedEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Any = None
    session_id: str = Field(min_length=1, validation_alias=AliasChoices("session_id", "journey_id"))
    visitor_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    event_type: str = Field(min_length=1)
    page_url: str | None = None
    referrer: str | None = None
    intent_type: str | None = None
    cta_label: str | None = None
    device_type: str | None = None
    occurred_at: datetime | None = None
    site_id: int | None = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)

    @field_validator("occurred_at", mode="wrap")
    @classmethod
    def _parse_timestamp(cls, value, handler):
        # An event that cannot be ordered is kept but excluded later by the sorter
        try:
            ts = handler(value)
        except ValidationError:
            return None
        if ts is not None and ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
        return ts

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value):
        return value if isinstance(value, (dict, EventMetadata)) else {}

    @property
    def is_click(self) -> bool:
        return self.event_type in CLICK_EVENT_TYPES


def parse_event(row: dict) -> tuple[TrackedEvent | None, str | None]:
    """Parse a store row; returns ``(event, None)`` or ``(None, reason)``."""
    try:
        return TrackedEvent.model_validate(row), None
    except ValidationError as ve:
        return None, f"validation_error:{ve.errors()[0].get('msg', 'invalid')}"
