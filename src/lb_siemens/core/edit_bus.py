import logging
from typing import Callable, List

from lb_siemens.models.edit_models import EditEvent

logger = logging.getLogger(__name__)

EditListener = Callable[[EditEvent], None]


class EditEventBus:
    """
    Two-phase dispatcher for edit notifications.

    Capture listeners see an event before the host applies it; normal
    listeners see it afterwards. Settled listeners run once the cycle is
    over, whether or not the edit could be applied. Listeners run
    synchronously in registration order.
    """
    def __init__(self):
        self._capture: List[EditListener] = []
        self._listeners: List[EditListener] = []
        self._settled: List[EditListener] = []

    def on(self, callback: EditListener, capture: bool = False):
        """Register a callback for edit events."""
        listeners = self._capture if capture else self._listeners
        listeners.append(callback)

    def off(self, callback: EditListener, capture: bool = False):
        """Unregister a callback."""
        listeners = self._capture if capture else self._listeners
        self._remove(listeners, callback)

    def on_settled(self, callback: EditListener):
        """Register a callback run at the end of every edit cycle."""
        self._settled.append(callback)

    def off_settled(self, callback: EditListener):
        self._remove(self._settled, callback)

    def emit_capture(self, event: EditEvent):
        self._call(self._capture, event)

    def emit(self, event: EditEvent):
        self._call(self._listeners, event)

    def emit_settled(self, event: EditEvent):
        self._call(self._settled, event)

    def _remove(self, listeners: List[EditListener], callback: EditListener):
        try:
            listeners.remove(callback)
        except ValueError:
            pass

    def _call(self, listeners: List[EditListener], event: EditEvent):
        for callback in list(listeners):
            try:
                callback(event)
            except Exception:
                # Prevent one listener from breaking the edit cycle
                logger.exception(f"Error in edit listener {getattr(callback, '__qualname__', callback)}")

    def clear(self):
        """Remove all listeners."""
        self._capture.clear()
        self._listeners.clear()
        self._settled.clear()
