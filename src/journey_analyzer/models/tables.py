from __future__ import annotations
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, JSON, Boolean, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from journey_analyzer.infrastructure.db import Base


class JourneyEvent(Base):
    """Append-only tracked interaction. Never mutated by the reconstruction pipeline."""
    __tablename__ = "journey_events"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    journey_id: Mapped[str] = mapped_column(String(128), index=True)
    visitor_id: Mapped[str | None] = mapped_column(String(128), index=True, default=None)
    ip_address: Mapped[str | None] = mapped_column(String(64), index=True, default=None)
    user_agent: Mapped[str | None] = mapped_column(Text, default=None)
    event_type: Mapped[str] = mapped_column(String(64), index=True)
    page_url: Mapped[str | None] = mapped_column(Text, default=None)
    referrer: Mapped[str | None] = mapped_column(Text, default=None)
    intent_type: Mapped[str | None] = mapped_column(String(64), default=None)
    cta_label: Mapped[str | None] = mapped_column(String(256), default=None)
    device_type: Mapped[str | None] = mapped_column(String(32), default=None)
    occurred_at: Mapped[datetime | None] = mapped_column(DateTime, index=True, default=None)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, default=None)
    site_id: Mapped[int | None] = mapped_column(Integer, index=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_journey_events_journey_ts", "journey_id", "occurred_at"),
        Index("ix_journey_events_ip_ts", "ip_address", "occurred_at"),
        Index("ix_journey_events_site_ip", "site_id", "ip_address"),
    )


class Journey(Base):
    """One reconstructed visit-session; rebuilt in place (upsert by journey_id)."""
    __tablename__ = "journeys"
    journey_id: Mapped[str] = mapped_column(String(160), primary_key=True)
    visitor_id: Mapped[str | None] = mapped_column(String(128), index=True, default=None)
    visit_number: Mapped[int] = mapped_column(Integer, default=1)
    first_seen: Mapped[datetime] = mapped_column(DateTime, index=True)
    last_seen: Mapped[datetime] = mapped_column(DateTime, index=True)
    entry_page: Mapped[str | None] = mapped_column(Text, default=None)
    entry_referrer: Mapped[str | None] = mapped_column(Text, default=None)
    initial_intent: Mapped[str | None] = mapped_column(String(64), default=None)
    page_sequence: Mapped[list] = mapped_column(JSON, default=list)
    event_count: Mapped[int] = mapped_column(Integer, default=0)
    outcome: Mapped[str] = mapped_column(String(48), index=True)
    outcome_detail: Mapped[dict] = mapped_column(JSON, default=dict)
    time_to_action: Mapped[int | None] = mapped_column(Integer, default=None)
    loops: Mapped[list] = mapped_column(JSON, default=list)
    friction: Mapped[dict] = mapped_column(JSON, default=dict)
    confidence: Mapped[int] = mapped_column(Integer, default=0, index=True)
    engagement_metrics: Mapped[dict] = mapped_column(JSON, default=dict)
    is_bot: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    bot_score: Mapped[int] = mapped_column(Integer, default=0, index=True)
    bot_type: Mapped[str | None] = mapped_column(String(32), index=True, default=None)
    bot_signals: Mapped[list] = mapped_column(JSON, default=list)
    site_id: Mapped[int | None] = mapped_column(Integer, index=True, default=None)
    primary_ip_address: Mapped[str | None] = mapped_column(String(64), index=True, default=None)

    __table_args__ = (
        Index("ix_journeys_site_first_seen", "site_id", "first_seen"),
    )
