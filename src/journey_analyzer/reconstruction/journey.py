"""Result types produced by the reconstruction pipeline."""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from journey_analyzer.config import DEFAULT_HEURISTICS, Heuristics


class Outcome(str, Enum):
    VISIT_BOOKED = "visit_booked"
    ENQUIRY_SUBMITTED = "enquiry_submitted"
    FORM_EARLY_ABANDON = "form_early_abandon"
    FORM_MID_ABANDON = "form_mid_abandon"
    FORM_NEAR_COMPLETE_ABANDON = "form_near_complete_abandon"
    ENGAGED = "engaged"
    NO_ACTION = "no_action"


class Strength(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FrictionSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class PageVisit:
    url: Optional[str]
    timestamp: datetime


@dataclass
class Loop:
    url: Optional[str]
    visit_count: int


@dataclass(frozen=True)
class EngagementMetrics:
    max_scroll_pct: float = 0
    dwell_seconds: int = 0
    unique_pages: int = 0
    section_count: int = 0
    total_events: int = 0


@dataclass(frozen=True)
class OutcomeResult:
    outcome: Outcome
    raw: str
    intent_type: Optional[str] = None


@dataclass(frozen=True)
class FrictionSignal:
    type: str
    count: int
    patterns: Tuple[Tuple[Optional[str], Optional[str]], ...] = ()


@dataclass(frozen=True)
class FrictionReport:
    detected: bool
    signals: Tuple[FrictionSignal, ...]
    severity: FrictionSeverity


@dataclass(frozen=True)
class BotVerdict:
    is_bot: bool = False
    bot_score: int = 0
    bot_type: Optional[str] = None
    signals: Tuple[str, ...] = ()


@dataclass
class Journey:
    journey_id: str
    visitor_id: Optional[str]
    visit_number: int
    first_seen: datetime
    last_seen: datetime
    entry_page: Optional[str]
    entry_referrer: Optional[str]
    initial_intent: str
    page_sequence: List[PageVisit]
    event_count: int
    outcome: Outcome
    outcome_detail: Dict[str, Any]
    time_to_action: Optional[int]
    loops: List[Loop]
    friction: FrictionReport
    confidence: int
    engagement_metrics: EngagementMetrics
    bot: BotVerdict = field(default_factory=BotVerdict)
    site_id: Optional[int] = None
    primary_ip_address: Optional[str] = None

    def is_reliable(self, config: Heuristics = DEFAULT_HEURISTICS) -> bool:
        """Downstream reporting treats journeys below this confidence as unusable."""
        return self.confidence >= config.reliable_confidence

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation; timestamps as ISO-8601 strings."""
        return {
            "journey_id": self.journey_id,
            "visitor_id": self.visitor_id,
            "visit_number": self.visit_number,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "entry_page": self.entry_page,
            "entry_referrer": self.entry_referrer,
            "initial_intent": self.initial_intent,
            "page_sequence": [{"url": p.url, "timestamp": p.timestamp.isoformat()} for p in self.page_sequence],
            "event_count": self.event_count,
            "outcome": self.outcome.value,
            "outcome_detail": dict(self.outcome_detail),
            "time_to_action": self.time_to_action,
            "loops": [asdict(loop) for loop in self.loops],
            "friction": friction_to_dict(self.friction),
            "confidence": self.confidence,
            "engagement_metrics": asdict(self.engagement_metrics),
            "is_bot": self.bot.is_bot,
            "bot_score": self.bot.bot_score,
            "bot_type": self.bot.bot_type,
            "bot_signals": list(self.bot.signals),
            "site_id": self.site_id,
            "primary_ip_address": self.primary_ip_address,
        }


def friction_to_dict(report: FrictionReport) -> Dict[str, Any]:
    signals = []
    for s in report.signals:
        entry: Dict[str, Any] = {"type": s.type, "count": s.count}
        if s.patterns:
            entry["patterns"] = [list(p) for p in s.patterns]
        signals.append(entry)
    return {"detected": report.detected, "signals": signals, "severity": report.severity.value}
