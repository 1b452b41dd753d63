import logging
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List

from PySide6.QtCore import QObject, Signal as QtSignal

from lb_siemens.models.edit_models import EditIntent, SubscribeIntent

logger = logging.getLogger(__name__)


def describe_intent(intent: EditIntent) -> str:
    """One line summary, e.g. ``subscribe RxExtIn1;/Ind/q <- Meas/GGIO1.Ind.q via GCB``."""
    if isinstance(intent, SubscribeIntent):
        fcda = intent.fcda
        source = (f"{fcda.get('ldInst')}/{fcda.get('prefix') or ''}{fcda.get('lnClass')}"
                  f"{fcda.get('lnInst') or ''}.{fcda.get('doName')}.{fcda.get('daName')}")
        return f"subscribe {intent.sink.get('intAddr')} <- {source} via {intent.control_block.get('name')}"
    return "unsubscribe " + ", ".join(str(sink.get('intAddr')) for sink in intent.sinks)


class IntentHistory(QObject):
    """Bounded record of the companion edits the plugin requested."""
    event_logged = QtSignal(str, str)  # action, message

    def __init__(self, max_history: int = 1000):
        super().__init__()
        self._history: Deque[Dict[str, str]] = deque(maxlen=max_history)

    def record(self, intent: EditIntent):
        action = "subscribe" if isinstance(intent, SubscribeIntent) else "unsubscribe"
        message = describe_intent(intent)
        self._history.append({
            'timestamp': datetime.now().strftime("%H:%M:%S.%f")[:-3],
            'action': action,
            'message': message,
        })
        logger.debug(f"Recorded {message}")
        self.event_logged.emit(action, message)

    @property
    def history(self) -> List[Dict[str, str]]:
        return list(self._history)
