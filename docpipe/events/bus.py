"""In-process typed publish/subscribe for pipeline and batch events."""

from collections import defaultdict, deque
from collections.abc import Callable
from typing import TypeVar

from docpipe.events.events import Event
from docpipe.logging.logger import Log

E = TypeVar("E", bound=Event)

Handler = Callable[[E], None]


class EventBus:
    """Dispatches events to handlers subscribed to their type or a base type.

    Subscribing to ``Event`` receives everything. Handlers run synchronously in
    the publisher's task; a failing handler is logged and skipped.
    """

    _HISTORY_LIMIT = 200

    def __init__(self) -> None:
        self._subscribers: dict[type[Event], list[Callable[[Event], None]]] = defaultdict(list)
        self._history: deque[Event] = deque(maxlen=self._HISTORY_LIMIT)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._subscribers[event_type].append(handler)  # type: ignore[arg-type]

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)  # type: ignore[arg-type]
        if not handlers:
            self._subscribers.pop(event_type, None)

    def publish(self, event: Event) -> None:
        self._history.append(event)
        for event_type in type(event).__mro__:
            for handler in list(self._subscribers.get(event_type, [])):
                try:
                    handler(event)
                except Exception as exc:
                    Log.exception(
                        f"Event handler {getattr(handler, '__name__', handler)!r} "
                        f"failed on {type(event).__name__}: {exc}"
                    )

    def history(self, event_type: type[Event] = Event) -> list[Event]:
        return [event for event in self._history if isinstance(event, event_type)]
