from .change_notifier import ChangeNotifier
from .events import EventType, build_event

__all__ = ["ChangeNotifier", "EventType", "build_event"]
