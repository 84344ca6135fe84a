from __future__ import annotations

from collections.abc import Iterator

from .constants import COMMENT_NODE, TEXT_NODE
from .serialize import to_html, to_inner_html, to_text


class Node:
    """Represents a DOM-like node.
    - tag_name: e.g., 'div', 'p', etc. Use '#text' for text nodes and '#comment' for comments.
    - attributes: dict of tag attributes (empty for text and comments)
    - data: the markup-ready content of text and comment nodes
    - children: list of child Nodes
    - parent: reference to parent Node (or None for a root)
    - next_sibling/previous_sibling: references to adjacent nodes in the tree.

    Two references to the same Node are two handles on one node: a change made
    through either is visible through both. Use deep_copy() for an independent
    subtree.
    """

    __slots__ = (
        "attributes",
        "children",
        "data",
        "next_sibling",
        "parent",
        "previous_sibling",
        "tag_name",
    )

    def __init__(self, tag_name: str, attributes: dict[str, str] | None = None, data: str | None = None) -> None:
        if tag_name is None or tag_name == "":
            msg = "Empty tag_name passed to Node constructor"
            raise ValueError(msg)

        self.tag_name = tag_name
        self.attributes: dict[str, str] = dict(attributes) if attributes else {}
        self.data = data
        self.children: list[Node] = []
        self.parent: Node | None = None
        self.next_sibling: Node | None = None
        self.previous_sibling: Node | None = None

    @classmethod
    def text(cls, data: str) -> Node:
        return cls(TEXT_NODE, data=data)

    @classmethod
    def comment(cls, data: str) -> Node:
        return cls(COMMENT_NODE, data=data)

    @property
    def is_tag(self) -> bool:
        return self.tag_name not in (TEXT_NODE, COMMENT_NODE)

    @property
    def is_text(self) -> bool:
        return self.tag_name == TEXT_NODE

    @property
    def is_comment(self) -> bool:
        return self.tag_name == COMMENT_NODE

    # ----------
    # Navigation
    # ----------

    def root(self) -> Node:
        """Follow parent links up to the top of the tree."""
        current = self
        while current.parent is not None:
            current = current.parent
        return current

    def iter_descendants(self) -> Iterator[Node]:
        """Yield every node below this one in document order (preorder)."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def iter_following_siblings(self) -> Iterator[Node]:
        sibling = self.next_sibling
        while sibling is not None:
            yield sibling
            sibling = sibling.next_sibling

    def next_tag_sibling(self) -> Node | None:
        for sibling in self.iter_following_siblings():
            if sibling.is_tag:
                return sibling
        return None

    # ----------
    # Attributes
    # ----------

    def get_attribute(self, name: str) -> str | None:
        if not self.is_tag:
            return None
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        if self.is_tag:
            self.attributes[name] = value

    def clear_attribute(self, name: str) -> None:
        if self.is_tag:
            self.attributes.pop(name, None)

    # --------
    # Mutation
    # --------

    def append_child(self, child: Node) -> None:
        # Check for circular reference before adding
        if self._would_create_circular_reference(child):
            msg = f"Adding {child.tag_name} as child of {self.tag_name} would create circular reference"
            raise ValueError(msg)

        child._unlink()

        # Update sibling links in new location
        if self.children:
            self.children[-1].next_sibling = child
            child.previous_sibling = self.children[-1]
        else:
            child.previous_sibling = None

        child.parent = self
        child.next_sibling = None
        self.children.append(child)

    def prepend_child(self, child: Node) -> None:
        self.insert_child_at(0, child)

    def _would_create_circular_reference(self, child: Node) -> bool:
        """Check if adding child would create a circular reference."""
        current: Node | None = self
        while current is not None:
            if current is child:
                return True  # Self is a descendant of child
            current = current.parent
        return False

    def insert_child_at(self, index: int, child: Node) -> None:
        """Insert a child at the specified index."""
        if self._would_create_circular_reference(child):
            msg = f"Adding {child.tag_name} as child of {self.tag_name} would create circular reference"
            raise ValueError(msg)

        child._unlink()

        # Append at end if index is out of bounds
        if index < 0 or index >= len(self.children):
            self.append_child(child)
            return

        child.parent = self
        self.children.insert(index, child)

        child.next_sibling = self.children[index + 1]
        self.children[index + 1].previous_sibling = child
        if index == 0:
            child.previous_sibling = None
        else:
            child.previous_sibling = self.children[index - 1]
            self.children[index - 1].next_sibling = child

    def insert_before(self, new_node: Node, reference_node: Node) -> None:
        if reference_node.parent is not self:
            return

        if self._would_create_circular_reference(new_node):
            msg = f"Adding {new_node.tag_name} as child of {self.tag_name} would create circular reference"
            raise ValueError(msg)

        new_node._unlink()

        idx = self._index_of(reference_node)
        new_node.parent = self
        self.children.insert(idx, new_node)

        # Update sibling pointers
        new_node.next_sibling = reference_node
        new_node.previous_sibling = reference_node.previous_sibling
        reference_node.previous_sibling = new_node
        if new_node.previous_sibling:
            new_node.previous_sibling.next_sibling = new_node

    def remove_child(self, child: Node) -> None:
        """Remove a child node, updating all sibling links."""
        if child.parent is not self:
            return
        child._unlink()

    def detach(self) -> None:
        """Remove this node from its parent; the subtree stays intact and reusable."""
        self._unlink()

    def clear_children(self) -> None:
        for child in list(self.children):
            child._unlink()

    def _index_of(self, child: Node) -> int:
        # Identity lookup: list.index() would compare with __eq__.
        for idx, candidate in enumerate(self.children):
            if candidate is child:
                return idx
        msg = f"{child!r} is not a child of {self!r}"
        raise ValueError(msg)

    def _unlink(self) -> None:
        parent = self.parent
        if parent is None:
            return

        # Update sibling links in old location
        if self.previous_sibling:
            self.previous_sibling.next_sibling = self.next_sibling
        if self.next_sibling:
            self.next_sibling.previous_sibling = self.previous_sibling

        del parent.children[parent._index_of(self)]
        self.parent = None
        self.next_sibling = None
        self.previous_sibling = None

    def deep_copy(self) -> Node:
        """Return an independent copy of this subtree without a parent."""
        clone = Node(self.tag_name, self.attributes, self.data)
        for child in self.children:
            clone.append_child(child.deep_copy())
        return clone

    # ---------
    # Rendering
    # ---------

    def outer_html(self) -> str:
        return to_html(self)

    def inner_html(self) -> str:
        return to_inner_html(self)

    def text_content(self) -> str:
        return to_text(self)

    def __repr__(self) -> str:
        if self.tag_name == TEXT_NODE:
            return f"Node(#text='{(self.data or '')[:30]}')"
        if self.tag_name == COMMENT_NODE:
            return f"Node(#comment='{(self.data or '')[:30]}')"
        return f"Node(<{self.tag_name}>, children={len(self.children)})"
