"""
Edit records exchanged with the host editor and the edit intents produced
by the resolver.

An edit notification carries either a single record or an ``EditBatch``
whose items may themselves be batches. ``flatten_edits`` turns the detail
into one ordered list, which is the order snapshots are keyed by.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
import xml.etree.ElementTree as ET


@dataclass
class Update:
    """Set (str) or remove (None) attributes on an element."""
    element: ET.Element
    attributes: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class Insert:
    parent: ET.Element
    node: ET.Element
    reference: Optional[ET.Element] = None  # insert before; None appends


@dataclass
class Remove:
    node: ET.Element


EditRecord = Union[Update, Insert, Remove]


@dataclass
class EditBatch:
    edits: List["EditVariant"] = field(default_factory=list)


EditVariant = Union[Update, Insert, Remove, EditBatch]


def flatten_edits(detail: EditVariant) -> List[EditRecord]:
    """Depth-first flattening of nested batches, preserving order."""
    if isinstance(detail, EditBatch):
        flat: List[EditRecord] = []
        for item in detail.edits:
            flat.extend(flatten_edits(item))
        return flat
    return [detail]


@dataclass
class EditEvent:
    """
    An edit notification.

    ``initiator`` holds the attributes of the element that requested the
    edit, e.g. the later binding subscriber plugin with its
    ``identity`` and ``allowexternalplugins`` attributes.
    """
    detail: EditVariant
    initiator: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SubscribeIntent:
    sink: ET.Element
    fcda: ET.Element
    control_block: ET.Element
    force: bool = False
    ignore_supervision: bool = False
    check_only_preferred_basic_type: bool = False


@dataclass(frozen=True)
class UnsubscribeIntent:
    sinks: tuple
    ignore_supervision: bool = False


EditIntent = Union[SubscribeIntent, UnsubscribeIntent]
