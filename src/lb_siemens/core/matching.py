"""
Value/quality pair matching.

SIPROTEC 5 publishes a measured or status value followed by its quality,
and the receiving ExtRefs follow the same order, e.g.::

    RxExtIn1;/Ind/stVal
    RxExtIn1;/Ind/q
"""
import xml.etree.ElementTree as ET
from typing import Optional

from lb_siemens.core.address import parse_int_addr
from lb_siemens.core.scl_tree import SclTree, local_name
from lb_siemens.models.scl_models import QUALITY_DA_NAME

# daName is the attribute allowed to differ between value and quality
_FCDA_PAIR_ATTRS = ("ldInst", "prefix", "lnClass", "lnInst", "doName")


def _is_quality_da(da_name: Optional[str]) -> bool:
    # "q" itself and structured names like "mag.q" both end in a "q" segment
    if da_name is None:
        return False
    return da_name.split('.')[-1] == QUALITY_DA_NAME


def is_fcda_quality_pair(a: ET.Element, b: ET.Element) -> bool:
    """Check that two FCDAs are identical except that ``b`` is a quality attribute."""
    if a is b:
        return False
    if not all(a.get(attr) == b.get(attr) for attr in _FCDA_PAIR_ATTRS):
        return False
    return _is_quality_da(b.get("daName"))


def is_extref_quality_pair(a: ET.Element, b: ET.Element) -> bool:
    """
    Check that the internal addresses of two ExtRefs differ only in that
    ``b`` receives the quality attribute. Missing or malformed addresses
    never match.
    """
    if a is b:
        return False
    a_addr = parse_int_addr(a.get("intAddr"))
    b_addr = parse_int_addr(b.get("intAddr"))
    if a_addr is None or b_addr is None:
        return False

    return (
        a_addr.name == b_addr.name
        and a_addr.ln_class == b_addr.ln_class
        and a_addr.do_path == b_addr.do_path
        and b_addr.da_path == QUALITY_DA_NAME
    )


def _find_following(tree: SclTree, element: ET.Element, tag: str, predicate) -> Optional[ET.Element]:
    parent = tree.parent(element)
    if parent is None:
        return None
    siblings = list(parent)
    for candidate in siblings[siblings.index(element) + 1:]:
        if local_name(candidate.tag) == tag and predicate(element, candidate):
            return candidate
    return None


def find_quality_fcda(tree: SclTree, fcda: ET.Element) -> Optional[ET.Element]:
    """First following FCDA in the same DataSet carrying the quality of ``fcda``."""
    return _find_following(tree, fcda, "FCDA", is_fcda_quality_pair)


def find_quality_extref(tree: SclTree, ext_ref: ET.Element) -> Optional[ET.Element]:
    """First following ExtRef in the same Inputs receiving the quality for ``ext_ref``."""
    return _find_following(tree, ext_ref, "ExtRef", is_extref_quality_pair)
