import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from PySide6.QtCore import QObject, Signal as QtSignal

from lb_siemens.core.edit_bus import EditEventBus
from lb_siemens.core.intent_history import IntentHistory
from lb_siemens.core.resolver import EditFlags, EditIntentResolver
from lb_siemens.core.scl_tree import SclTree, local_name
from lb_siemens.core.settings import PluginSettings
from lb_siemens.models.edit_models import EditEvent, Update, flatten_edits

logger = logging.getLogger(__name__)

LATER_BINDING_IDENTITY = "danyill.oscd-subscriber-later-binding"
SIEMENS_MANUFACTURER = "SIEMENS"


def should_listen(event: EditEvent) -> bool:
    """Only edits made by the later binding subscriber plugin, when it allows external plugins."""
    initiator = event.initiator or {}
    return (
        initiator.get("identity") == LATER_BINDING_IDENTITY
        and "allowexternalplugins" in initiator
    )


class SubscriberLaterBindingSiemens(QObject):
    """
    Adds SIPROTEC 5 companion subscriptions to ExtRef edits.

    Listens to the host edit bus in two phases. The capture phase clones
    every ExtRef about to be updated; the normal phase compares each clone
    with the live ExtRef and emits ``edit_requested`` for every companion
    that has to follow. The host is expected to connect ``edit_requested``
    to its subscribe/unsubscribe handling.
    """
    edit_requested = QtSignal(object)  # EditIntent

    def __init__(self, doc: Optional[SclTree] = None, settings: Optional[PluginSettings] = None,
                 history: Optional[IntentHistory] = None):
        super().__init__()
        self.doc = doc
        self.settings = settings if settings is not None else PluginSettings()
        self.history = history

        self.pre_event_ext_refs: List[Optional[ET.Element]] = []
        self.flags = EditFlags()

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def attach(self, bus: EditEventBus):
        bus.on(self.capture_metadata, capture=True)
        bus.on(self.modify_additional_ext_refs)
        bus.on_settled(self.clear_metadata)

    def detach(self, bus: EditEventBus):
        bus.off(self.capture_metadata, capture=True)
        bus.off(self.modify_additional_ext_refs)
        bus.off_settled(self.clear_metadata)

    def clear_metadata(self, event: Optional[EditEvent] = None):
        """Drop the snapshots and flags captured for the current edit."""
        # companion edits settle while the triggering event is still processed
        if event is not None and not should_listen(event):
            return
        self.pre_event_ext_refs = []
        self.flags = EditFlags()

    def capture_metadata(self, event: EditEvent):
        """
        Record the ExtRefs as they are before the edit is applied, and the
        options of the initiating plugin, for later processing.
        """
        if not should_listen(event) or self.doc is None:
            return

        initiator = event.initiator
        self.flags = EditFlags(
            ignore_supervision="ignoresupervision" in initiator,
            check_only_preferred_basic_type="checkonlypreferredbasictype" in initiator,
        )
        self.pre_event_ext_refs = [
            self.doc.clone(edit.element)
            if isinstance(edit, Update) and local_name(edit.element.tag) == "ExtRef" else None
            for edit in flatten_edits(event.detail)
        ]

    def modify_additional_ext_refs(self, event: EditEvent):
        """
        Subscribe or unsubscribe the companions of every SIEMENS ExtRef
        updated by the event.

        Assumes subscriptions are always added and removed through Update
        edits of ExtRef elements.
        """
        if not should_listen(event):
            return

        try:
            if not self.enabled or self.doc is None:
                return

            resolver = EditIntentResolver(self.doc)
            for index, edit in enumerate(flatten_edits(event.detail)):
                if not self._is_siemens_ext_ref_update(edit):
                    continue
                pre_event = self.pre_event_ext_refs[index] if index < len(self.pre_event_ext_refs) else None
                for intent in resolver.resolve(edit.element, pre_event, self.flags):
                    if self.history is not None:
                        self.history.record(intent)
                    self.edit_requested.emit(intent)
        finally:
            self.clear_metadata()

    def _is_siemens_ext_ref_update(self, edit) -> bool:
        if not isinstance(edit, Update) or local_name(edit.element.tag) != "ExtRef":
            return False
        ied = self.doc.closest(edit.element, "IED")
        return ied is not None and ied.get("manufacturer") == SIEMENS_MANUFACTURER
