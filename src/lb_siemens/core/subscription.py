"""
Subscription lookups shared by the companion matchers.

- is_subscribed(ext_ref): ExtRef carries a complete source binding
- find_fcdas(tree, ext_ref): FCDAs of the source IED the ExtRef points at
- find_control_block(tree, ext_ref): control block publishing those FCDAs
"""
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from lb_siemens.core.scl_tree import SclTree, local_name
from lb_siemens.models.scl_models import (
    CONTROL_BLOCK_TAGS,
    FCDA_IDENTITY_ATTRS,
    SUBSCRIPTION_IDENTITY_ATTRS,
)

logger = logging.getLogger(__name__)


def is_subscribed(ext_ref: Optional[ET.Element]) -> bool:
    """Check if the ExtRef is bound to a data source."""
    if ext_ref is None:
        return False
    return all(ext_ref.get(attr) is not None for attr in SUBSCRIPTION_IDENTITY_ATTRS)


def _in_private(tree: SclTree, element: ET.Element) -> bool:
    return tree.closest(element, "Private") is not None


def find_fcdas(tree: SclTree, ext_ref: Optional[ET.Element]) -> List[ET.Element]:
    """
    Return the FCDAs matching the source described by an ExtRef.

    The ExtRef may be a detached snapshot; only its attributes are used.
    Missing attributes compare equal to empty ones.
    """
    if ext_ref is None or local_name(ext_ref.tag) != "ExtRef":
        return []
    if _in_private(tree, ext_ref):
        return []

    ied_name = ext_ref.get("iedName")
    ied = next(
        (element for element in tree.descendants(tree.root, "IED")
         if element.get("name") == ied_name and not _in_private(tree, element)),
        None,
    )
    if ied is None:
        return []

    return [
        fcda for fcda in tree.descendants(ied, "FCDA")
        if not _in_private(tree, fcda)
        and all((fcda.get(attr) or "") == (ext_ref.get(attr) or "") for attr in FCDA_IDENTITY_ATTRS)
    ]


def _matches_src_cb(tree: SclTree, ext_ref: ET.Element, cb: ET.Element) -> bool:
    ln = tree.closest(cb, "LN0")
    if ln is None:
        return False
    ld = tree.closest(ln, "LDevice")
    ld_inst = ld.get("inst") if ld is not None else None

    return (
        ext_ref.get("srcCBName") == cb.get("name")
        and (ext_ref.get("srcLNInst") or "") == (ln.get("inst") or "")
        and (ext_ref.get("srcLNClass") or "LLN0") == ln.get("lnClass")
        and (ext_ref.get("srcPrefix") or "") == (ln.get("prefix") or "")
        and (ext_ref.get("srcLDInst") or ext_ref.get("ldInst")) == ld_inst
    )


def find_control_block(tree: SclTree, ext_ref: Optional[ET.Element]) -> Optional[ET.Element]:
    """
    Locate the control block an ExtRef is subscribed through.

    Explicit ``srcCBName`` binding wins; otherwise the first control block
    whose ``datSet`` names the DataSet holding the FCDA is used.
    """
    if ext_ref is None:
        return None

    cb_tags = CONTROL_BLOCK_TAGS.get(ext_ref.get("serviceType"), [])
    for fcda in find_fcdas(tree, ext_ref):
        data_set = tree.parent(fcda)
        if data_set is None:
            continue
        ds_name = data_set.get("name") or ""
        any_ln = tree.parent(data_set)
        if any_ln is None:
            continue

        for tag in cb_tags:
            for cb in tree.descendants(any_ln, tag):
                if ext_ref.get("srcCBName"):
                    if _matches_src_cb(tree, ext_ref, cb):
                        return cb
                elif cb.get("datSet") == ds_name:
                    return cb

    logger.debug(f"No control block for ExtRef intAddr={ext_ref.get('intAddr')}")
    return None
