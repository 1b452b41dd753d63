"""
Minimal SCL editor host.

Holds the document, applies edit records and runs the two-phase edit
notification cycle. It also provides the generic subscribe/unsubscribe
primitives that turn edit intents into ExtRef attribute updates.
"""
import logging
import os
import xml.etree.ElementTree as ET
from typing import List, Optional

from lb_siemens.core.edit_bus import EditEventBus
from lb_siemens.core.scl_tree import SclTree, local_name
from lb_siemens.models.edit_models import (
    EditBatch,
    EditEvent,
    EditIntent,
    EditRecord,
    EditVariant,
    Insert,
    Remove,
    SubscribeIntent,
    UnsubscribeIntent,
    Update,
    flatten_edits,
)
from lb_siemens.models.scl_models import SERVICE_TYPE_BY_TAG, SOURCE_ATTRS, SOURCE_CB_ATTRS

logger = logging.getLogger(__name__)

SIEMENS_PLUGIN_IDENTITY = "oscd-subscriber-lb-siemens"


class SclEditError(Exception):
    """Raised when an edit record cannot be applied to the document."""


class SclEditor:
    def __init__(self, root: ET.Element, doc_name: str = ""):
        self.doc_name = doc_name
        self.tree = SclTree(root)
        self.bus = EditEventBus()

    @classmethod
    def from_file(cls, file_path: str) -> "SclEditor":
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"SCL file not found: {file_path}")
        tree = ET.parse(file_path)
        return cls(tree.getroot(), doc_name=os.path.basename(file_path))

    @classmethod
    def from_string(cls, text: str, doc_name: str = "") -> "SclEditor":
        return cls(ET.fromstring(text), doc_name=doc_name)

    def add_plugin(self, plugin):
        """Give a plugin the document, the edit bus and a route back for its edit requests."""
        plugin.doc = self.tree
        plugin.attach(self.bus)
        plugin.edit_requested.connect(self.request)

    # ------------------------------------------------------------------
    # Edit cycle
    # ------------------------------------------------------------------

    def dispatch(self, event: EditEvent):
        """
        Notify capture listeners, apply the edits, then notify listeners.

        Every record is checked against the document before anything is
        applied, so a rejected batch leaves the document untouched and no
        listener is notified of it. Settled listeners run at the end of
        every cycle, including failed ones.
        """
        edits = flatten_edits(event.detail)
        try:
            for edit in edits:
                self.validate(edit)
            self.bus.emit_capture(event)
            for edit in edits:
                self.apply(edit)
            self.bus.emit(event)
        finally:
            self.bus.emit_settled(event)

    def edit(self, detail: EditVariant, **initiator: str):
        self.dispatch(EditEvent(detail=detail, initiator=dict(initiator)))

    def validate(self, edit: EditRecord):
        """Raise SclEditError when ``edit`` cannot be applied to the current document."""
        if isinstance(edit, Update):
            self._check_in_document(edit.element)
        elif isinstance(edit, Insert):
            self._check_in_document(edit.parent)
            if edit.reference is not None and self.tree.parent(edit.reference) is not edit.parent:
                raise SclEditError(f"Insert reference <{local_name(edit.reference.tag)}> is not a child "
                                   f"of <{local_name(edit.parent.tag)}>")
        elif isinstance(edit, Remove):
            if self.tree.parent(edit.node) is None:
                raise SclEditError(f"Cannot remove detached <{local_name(edit.node.tag)}>")
        else:
            raise SclEditError(f"Unknown edit record {edit!r}")

    def apply(self, edit: EditRecord):
        self.validate(edit)
        if isinstance(edit, Update):
            for name, value in edit.attributes.items():
                if value is None:
                    edit.element.attrib.pop(name, None)
                else:
                    edit.element.set(name, value)
        elif isinstance(edit, Insert):
            if edit.reference is None:
                edit.parent.append(edit.node)
            else:
                edit.parent.insert(list(edit.parent).index(edit.reference), edit.node)
            self.tree.refresh()
        else:
            self.tree.parent(edit.node).remove(edit.node)
            self.tree.refresh()

    def _check_in_document(self, element: ET.Element):
        if not self.tree.contains(element):
            raise SclEditError(f"<{local_name(element.tag)}> is not part of {self.doc_name or 'the document'}")

    # ------------------------------------------------------------------
    # Subscription primitives
    # ------------------------------------------------------------------

    def subscribe(self, sink: ET.Element, fcda: ET.Element, control_block: ET.Element,
                  force: bool = False, ignore_supervision: bool = False,
                  check_only_preferred_basic_type: bool = False) -> Optional[Update]:
        """
        Build the Update binding ``sink`` to ``fcda`` published by ``control_block``.

        Returns None when the sink's preferred attributes reject the source,
        unless ``force`` is set.
        """
        service_type = SERVICE_TYPE_BY_TAG.get(local_name(control_block.tag))
        attributes = {
            "iedName": self.tree.get_attr(self.tree.closest(fcda, "IED"), "name"),
            "serviceType": service_type,
        }
        for name in ("ldInst", "prefix", "lnClass", "lnInst", "doName", "daName"):
            attributes[name] = fcda.get(name) or None

        if not force and not self._preferred_match(sink, attributes, check_only_preferred_basic_type):
            logger.warning(f"ExtRef {sink.get('intAddr')} rejects {attributes['lnClass']}.{attributes['doName']}"
                           f".{attributes['daName']}")
            return None

        ln = self.tree.closest(control_block, "LN0")
        ld = self.tree.closest(control_block, "LDevice")
        attributes.update({
            "srcLDInst": self.tree.get_attr(ld, "inst") or None,
            "srcPrefix": self.tree.get_attr(ln, "prefix") or None,
            "srcLNClass": self.tree.get_attr(ln, "lnClass") or None,
            "srcLNInst": self.tree.get_attr(ln, "inst") or None,
            "srcCBName": control_block.get("name"),
        })
        if ignore_supervision:
            logger.debug(f"Supervision left unchanged for {sink.get('intAddr')}")
        return Update(element=sink, attributes=attributes)

    def _preferred_match(self, sink: ET.Element, attributes: dict, check_only_preferred_basic_type: bool) -> bool:
        checks = [("pServT", "serviceType")]
        if not check_only_preferred_basic_type:
            checks += [("pLN", "lnClass"), ("pDO", "doName"), ("pDA", "daName")]
        return all(
            sink.get(preferred) is None or sink.get(preferred) == attributes.get(actual)
            for preferred, actual in checks
        )

    def unsubscribe(self, sinks: List[ET.Element], ignore_supervision: bool = False) -> List[Update]:
        """Build the Updates removing the source binding from each sink."""
        if ignore_supervision:
            logger.debug(f"Supervision left unchanged for {len(sinks)} ExtRefs")
        return [
            Update(element=sink, attributes={name: None for name in SOURCE_ATTRS + SOURCE_CB_ATTRS})
            for sink in sinks
        ]

    def request(self, intent: EditIntent):
        """Apply an intent coming from a plugin as a new edit event."""
        if isinstance(intent, SubscribeIntent):
            update = self.subscribe(intent.sink, intent.fcda, intent.control_block,
                                    force=intent.force,
                                    ignore_supervision=intent.ignore_supervision,
                                    check_only_preferred_basic_type=intent.check_only_preferred_basic_type)
            edits: List[EditVariant] = [update] if update is not None else []
        elif isinstance(intent, UnsubscribeIntent):
            edits = list(self.unsubscribe(list(intent.sinks), ignore_supervision=intent.ignore_supervision))
        else:
            raise SclEditError(f"Unknown edit intent {intent!r}")

        if edits:
            self.edit(EditBatch(edits=edits), identity=SIEMENS_PLUGIN_IDENTITY)
