"""Document tree node model.

The document tree is owned top-down: a ``NonTextNode`` owns its ``children``
and every node keeps a non-owning ``parent`` back-reference used only for
upward traversal and detachment. Removing a node from its parent's children
drops the whole subtree.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class QualifiedName:
    """Namespace-aware identifier for a tag or attribute."""

    name: str
    prefix: str = ""
    local: str = ""
    uri: str = ""

    @classmethod
    def from_name(cls, name: str, uri: str = "") -> "QualifiedName":
        """Split a prefixed name such as ``w:val`` into its parts."""
        prefix, _, local = name.rpartition(":")
        return cls(name=name, prefix=prefix, local=local, uri=uri)


@dataclass(frozen=True)
class QualifiedAttribute(QualifiedName):
    """Qualified attribute name together with its value."""

    value: str = ""


AttributeValue = Union[str, QualifiedAttribute]


@dataclass(eq=False)
class TextNode:
    """Leaf node holding raw character data."""

    text: str = ""
    parent: Optional["NonTextNode"] = field(default=None, repr=False)
    if_name: Optional[str] = None

    is_text = True

    def __repr__(self) -> str:
        return f"TextNode({self.text!r})"


@dataclass(eq=False)
class NonTextNode:
    """Element node with a qualified tag, attributes and owned children.

    Provides child management and tree navigation. Identity, not structure,
    is used for equality so that ``children.index`` finds the exact node.
    """

    tag: str
    attrs: Dict[str, AttributeValue] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    parent: Optional["NonTextNode"] = field(default=None, repr=False)
    if_name: Optional[str] = None

    is_text = False

    def __post_init__(self) -> None:
        """Validate the tag and adopt any initial children."""
        if not self.tag:
            raise ValueError("Element tag cannot be empty")
        for child in self.children:
            child.parent = self

    def __repr__(self) -> str:
        return f"NonTextNode({self.tag!r}, children={len(self.children)})"

    @property
    def local_name(self) -> str:
        """Get local tag name without namespace prefix."""
        return self.tag.rpartition(":")[2]

    @property
    def prefix(self) -> Optional[str]:
        """Get namespace prefix if present."""
        if ":" in self.tag:
            return self.tag.split(":", 1)[0]
        return None

    def add_child(self, child: "Node") -> "Node":
        """Append a child node and establish parent relationship."""
        if not isinstance(child, (TextNode, NonTextNode)):
            raise TypeError("Child must be a TextNode or NonTextNode instance")
        child.parent = self
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: "Node") -> None:
        """Insert child node at specific index."""
        if not isinstance(child, (TextNode, NonTextNode)):
            raise TypeError("Child must be a TextNode or NonTextNode instance")
        if not (0 <= index <= len(self.children)):
            raise IndexError("Child index out of range")
        child.parent = self
        self.children.insert(index, child)

    def remove_child(self, child: "Node") -> bool:
        """Remove a child node and clear parent relationship."""
        for i, existing in enumerate(self.children):
            if existing is child:
                del self.children[i]
                child.parent = None
                return True
        return False

    def index_of(self, child: "Node") -> int:
        """Get the position of a direct child, by identity."""
        for i, existing in enumerate(self.children):
            if existing is child:
                return i
        raise ValueError("Node is not a child of this element")

    def find_child(self, tag: str) -> Optional["NonTextNode"]:
        """Find first direct child with matching tag name."""
        for child in self.children:
            if isinstance(child, NonTextNode) and child.tag == tag:
                return child
        return None

    def find_children(self, tag: str) -> List["NonTextNode"]:
        """Find all direct children with matching tag name."""
        return [
            child for child in self.children
            if isinstance(child, NonTextNode) and child.tag == tag
        ]

    def find(self, tag: str) -> Optional["NonTextNode"]:
        """Find first descendant element with matching tag name."""
        for node in iter_nodes(self):
            if node is not self and isinstance(node, NonTextNode) and node.tag == tag:
                return node
        return None

    def find_all(self, tag: str) -> List["NonTextNode"]:
        """Find all descendant elements with matching tag name."""
        return [
            node for node in iter_nodes(self)
            if node is not self and isinstance(node, NonTextNode) and node.tag == tag
        ]

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        value = self.attrs.get(name)
        if value is None:
            return default
        if isinstance(value, QualifiedAttribute):
            return value.value
        return value

    def set_attribute(self, name: str, value: str) -> None:
        """Set attribute value."""
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError("Attribute name and value must be strings")
        self.attrs[name] = value

    @property
    def text_content(self) -> str:
        """Concatenated text of every descendant text node."""
        return "".join(node.text for node in iter_text_nodes(self))


Node = Union[TextNode, NonTextNode]


def iter_nodes(root: Node) -> Iterator[Node]:
    """Iterate over a subtree in document order (pre-order).

    The iteration works on a snapshot of each child list, so callers may
    detach the node they are currently visiting.
    """
    stack: List[Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, NonTextNode):
            stack.extend(reversed(list(node.children)))


def iter_text_nodes(root: Node) -> Iterator[TextNode]:
    """Iterate over the text leaves of a subtree in document order."""
    for node in iter_nodes(root):
        if isinstance(node, TextNode):
            yield node


def ancestors(node: Node) -> List[NonTextNode]:
    """List the ancestors of a node, nearest first."""
    result = []
    current = node.parent
    while current is not None:
        result.append(current)
        current = current.parent
    return result


def find_ancestor(node: Node, tag: str) -> Optional[NonTextNode]:
    """Find the nearest ancestor with the given tag."""
    for ancestor in ancestors(node):
        if ancestor.tag == tag:
            return ancestor
    return None


def is_descendant(node: Node, root: Node) -> bool:
    """Check whether ``node`` is ``root`` or lies inside it."""
    current: Optional[Node] = node
    while current is not None:
        if current is root:
            return True
        current = current.parent
    return False


def common_ancestor(first: Node, second: Node) -> Optional[NonTextNode]:
    """Find the lowest element containing both nodes."""
    first_chain = [first] + ancestors(first)
    for candidate in [second] + ancestors(second):
        if any(candidate is node for node in first_chain):
            return candidate if isinstance(candidate, NonTextNode) else candidate.parent
    return None


def child_towards(ancestor: NonTextNode, node: Node) -> Node:
    """Return the direct child of ``ancestor`` on the path down to ``node``."""
    current: Node = node
    while current.parent is not None and current.parent is not ancestor:
        current = current.parent
    if current.parent is not ancestor:
        raise ValueError("Node is not a descendant of the given ancestor")
    return current


def detach(node: Node) -> None:
    """Remove a node (and its subtree) from its parent."""
    if node.parent is not None:
        node.parent.remove_child(node)


def insert_before(reference: Node, new_node: Node) -> None:
    """Insert ``new_node`` as the preceding sibling of ``reference``."""
    parent = reference.parent
    if parent is None:
        raise ValueError("Reference node has no parent")
    parent.insert_child(parent.index_of(reference), new_node)


def insert_after(reference: Node, new_node: Node) -> None:
    """Insert ``new_node`` as the following sibling of ``reference``."""
    parent = reference.parent
    if parent is None:
        raise ValueError("Reference node has no parent")
    parent.insert_child(parent.index_of(reference) + 1, new_node)


def replace_with(old: Node, new_nodes: List[Node]) -> None:
    """Replace ``old`` in its parent by a sequence of nodes."""
    parent = old.parent
    if parent is None:
        raise ValueError("Node to replace has no parent")
    index = parent.index_of(old)
    parent.remove_child(old)
    for offset, new_node in enumerate(new_nodes):
        parent.insert_child(index + offset, new_node)


def clone(node: Node) -> Tuple[Node, Dict[int, Node]]:
    """Deep-copy a subtree.

    Returns:
        The detached copy and a mapping ``id(original) -> copy`` for every
        node of the subtree, used to locate nodes inside the copy.
    """
    mapping: Dict[int, Node] = {}

    def copy_node(original: Node) -> Node:
        if isinstance(original, TextNode):
            copied: Node = TextNode(text=original.text, if_name=original.if_name)
        else:
            copied = NonTextNode(
                tag=original.tag,
                attrs=dict(original.attrs),
                if_name=original.if_name,
            )
            for child in original.children:
                copied.add_child(copy_node(child))
        mapping[id(original)] = copied
        return copied

    return copy_node(node), mapping


def element(tag: str, attrs: Optional[Dict[str, AttributeValue]] = None,
            children: Optional[List[Node]] = None) -> NonTextNode:
    """Shorthand constructor used when synthesizing markup."""
    return NonTextNode(tag=tag, attrs=dict(attrs or {}), children=list(children or []))
