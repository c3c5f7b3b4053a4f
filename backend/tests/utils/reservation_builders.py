"""Shared constants and fakes for reservation tests."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from studiohub.services.notifications.change_notifier import ChangeNotifier

BOOKING_DATE = datetime(2026, 1, 15).date()
OWNER_ID = "01HV0000000000000000000001"
CUSTOMER_ID = "01HV0000000000000000000002"
OTHER_USER_ID = "01HV0000000000000000000003"
UNKNOWN_ID = "01HV00000000000000000000ZZ"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(ChangeNotifier):
    """Captures published events instead of handing them to a broadcaster."""

    def __init__(self) -> None:
        super().__init__()
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, channel: str, event: Dict[str, Any]) -> None:
        self.published.append((channel, event))

    def events(self, event_type: str, channel: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            event
            for ch, event in self.published
            if event["type"] == event_type and (channel is None or ch == channel)
        ]

    def clear(self) -> None:
        self.published.clear()
