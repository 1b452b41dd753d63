"""
Sampled value stream detection for SIPROTEC 5.

A sampled value stream in a DataSet is a run of MX FCDAs from one logical
device, one lnClass and one doName, alternating value and ``q``, with
ascending lnInst. The phases are received by consecutive ExtRefs spread
over consecutive logical nodes of one LDevice.
"""
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

from lb_siemens.core.address import expected_int_addr
from lb_siemens.core.scl_tree import SclTree
from lb_siemens.core.subscription import is_subscribed
from lb_siemens.models.scl_models import QUALITY_DA_NAME

logger = logging.getLogger(__name__)

# Widest stream considered: four value/quality pairs
MAX_STREAM_FCDAS = 8

# More than a single value/quality pair is needed to treat FCDAs as a stream
MIN_STREAM_COUNT = 3


def _ln_inst(fcda: ET.Element) -> Optional[int]:
    try:
        return int(fcda.get("lnInst") or "")
    except ValueError:
        return None


def count_sv_stream(tree: SclTree, first_fcda: ET.Element) -> int:
    """Number of FCDAs, starting at ``first_fcda``, that form a sampled value stream."""
    fcdas = [first_fcda] + tree.next_siblings(first_fcda, MAX_STREAM_FCDAS - 1)

    ld_inst = first_fcda.get("ldInst")
    ln_class = first_fcda.get("lnClass")
    do_name = first_fcda.get("doName")
    da_name = first_fcda.get("daName")
    inst = _ln_inst(first_fcda)
    count = 0

    for index, fcda in enumerate(fcdas):
        current_inst = _ln_inst(fcda)

        if (
            fcda.get("ldInst") != ld_inst
            or fcda.get("lnClass") != ln_class
            or fcda.get("doName") != do_name
            or fcda.get("fc") != "MX"
            or (current_inst is not None and inst is not None and current_inst < inst)
        ):
            break

        if index % 2 == 0:
            da_name = fcda.get("daName")
        elif fcda.get("daName") != QUALITY_DA_NAME:
            break

        if current_inst is not None:
            inst = current_inst
        count += 1

    logger.debug(f"SV stream from {ln_class}{first_fcda.get('lnInst')}.{do_name}.{da_name}: {count} FCDAs")
    return count


def stream_fcdas(tree: SclTree, first_fcda: ET.Element, count: int) -> List[ET.Element]:
    return [first_fcda] + tree.next_siblings(first_fcda, count - 1)


def stream_extrefs(tree: SclTree, first_ext_ref: ET.Element, count: int) -> List[ET.Element]:
    """
    ExtRefs of the logical device holding ``first_ext_ref``, starting at it,
    limited to ``count``. ExtRefs before it in the document are never included.
    """
    ld = tree.closest(first_ext_ref, "LDevice")
    if ld is None:
        return []
    candidates = [
        ext_ref for ext_ref in tree.descendants(ld, "ExtRef")
        if not tree.precedes(ext_ref, first_ext_ref)
    ]
    return candidates[:count]


def match_fcdas_to_extrefs(
    tree: SclTree, fcdas: List[ET.Element], ext_refs: List[ET.Element]
) -> List[Tuple[ET.Element, ET.Element]]:
    """
    Pair stream FCDAs with ExtRefs position by position.

    Each pair is judged on its own: the ExtRef internal address must be the
    one SIPROTEC 5 derives from the FCDA and its logical node class must be
    the FCDA lnClass.
    """
    matched: List[Tuple[ET.Element, ET.Element]] = []

    for index, (fcda, ext_ref) in enumerate(zip(fcdas, ext_refs)):
        # subscription status must not change while the pair is judged
        subscription_status = is_subscribed(ext_ref) or index == 0

        int_addr = ext_ref.get("intAddr")
        ln = tree.closest(ext_ref, "LN")
        ext_ref_ln_class = ln.get("lnClass") if ln is not None else None
        if int_addr is None or ext_ref_ln_class is None:
            continue

        fcda_int_addr = expected_int_addr(fcda.get("doName"), fcda.get("lnClass"), fcda.get("daName"))
        if (
            int_addr == fcda_int_addr
            and ext_ref_ln_class == fcda.get("lnClass")
            and (is_subscribed(ext_ref) or index == 0) == subscription_status
        ):
            matched.append((fcda, ext_ref))

    return matched
