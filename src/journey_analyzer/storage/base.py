from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from journey_analyzer.reconstruction.journey import Journey
from journey_analyzer.validation.events import TrackedEvent


class EventStore(ABC):
    """Read side of the append-only event log."""

    @abstractmethod
    def list_events_for_session(self, session_id: str) -> List[TrackedEvent]:
        ...

    @abstractmethod
    def list_events_for_ip(self, ip_address: str, site_id: Optional[int] = None) -> List[TrackedEvent]:
        ...

    @abstractmethod
    def list_all_ips(self, site_id: Optional[int] = None) -> List[str]:
        ...

    @abstractmethod
    def list_unique_session_ids(self, since: Optional[datetime] = None) -> List[str]:
        ...


class JourneyStore(ABC):
    """Keyed journey storage with idempotent upsert-by-id."""

    @abstractmethod
    def upsert_journey(self, journey: Journey) -> None:
        ...

    @abstractmethod
    def delete_journeys_by_ids(self, journey_ids: Iterable[str]) -> int:
        ...

    @abstractmethod
    def list_journeys_with_no_ip(self, site_id: Optional[int] = None) -> List[str]:
        ...

    @abstractmethod
    def get_journey(self, journey_id: str) -> Optional[Dict[str, Any]]:
        ...
