import logging
from typing import Optional

from PySide6.QtCore import QObject, QSettings, Signal as QtSignal

logger = logging.getLogger(__name__)

ENABLED_KEY = "oscd-subscriber-lb-siemens"


class PluginSettings(QObject):
    """
    Persisted enable/disable toggle for the Siemens companion wiring.
    Disabled until the user turns it on.
    """
    enabled_changed = QtSignal(bool)

    def __init__(self, settings: Optional[QSettings] = None):
        super().__init__()
        self.settings = settings if settings is not None else QSettings("OpenSCD", "SubscriberLaterBindingSiemens")

    @property
    def enabled(self) -> bool:
        return bool(self.settings.value(ENABLED_KEY, False, type=bool))

    def set_enabled(self, enabled: bool):
        if enabled == self.enabled:
            return
        self.settings.setValue(ENABLED_KEY, bool(enabled))
        self.settings.sync()
        logger.info(f"Siemens later binding {'enabled' if enabled else 'disabled'}")
        self.enabled_changed.emit(bool(enabled))
