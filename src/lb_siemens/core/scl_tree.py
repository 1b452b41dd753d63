import copy
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Optional


def local_name(tag) -> str:
    """Strip an ElementTree ``{namespace}`` prefix from a tag."""
    if not isinstance(tag, str):
        return ""
    if '}' in tag:
        return tag.split('}', 1)[1]
    return tag


class SclTree:
    """
    Read-only navigation over a parsed SCL document.

    ElementTree has no parent pointers or document order comparison, so
    both are indexed once here. Call ``refresh()`` after the structure of
    the document changes (attribute updates do not need it).
    """

    def __init__(self, root: ET.Element):
        self.root = root
        self._parents: Dict[ET.Element, ET.Element] = {}
        self._order: Dict[ET.Element, int] = {}
        self.refresh()

    def refresh(self):
        self._parents = {child: parent for parent in self.root.iter() for child in parent}
        self._order = {element: index for index, element in enumerate(self.root.iter())}

    def contains(self, element: ET.Element) -> bool:
        return element in self._order

    def parent(self, element: ET.Element) -> Optional[ET.Element]:
        return self._parents.get(element)

    def next_siblings(self, element: ET.Element, n: int) -> List[ET.Element]:
        """Return up to ``n`` elements following ``element`` under the same parent."""
        parent = self.parent(element)
        if parent is None or n <= 0:
            return []
        children = list(parent)
        index = children.index(element)
        return children[index + 1:index + 1 + n]

    def descendants(self, element: ET.Element, tag: str) -> Iterator[ET.Element]:
        """Descendants of ``element`` (excluding itself) with local name ``tag``, in document order."""
        for node in element.iter():
            if node is not element and local_name(node.tag) == tag:
                yield node

    def closest(self, element: ET.Element, tag: str) -> Optional[ET.Element]:
        """Nearest ancestor-or-self with local name ``tag``."""
        node = element
        while node is not None:
            if local_name(node.tag) == tag:
                return node
            node = self.parent(node)
        return None

    def precedes(self, a: ET.Element, b: ET.Element) -> bool:
        """True when ``a`` comes strictly before ``b`` in document order."""
        if a not in self._order or b not in self._order:
            return False
        return self._order[a] < self._order[b]

    def clone(self, element: ET.Element) -> ET.Element:
        """Detached deep copy of an element, used for pre-edit snapshots."""
        return copy.deepcopy(element)

    def get_attr(self, element: Optional[ET.Element], name: str) -> str:
        if element is None:
            return ""
        return element.get(name) or ""
