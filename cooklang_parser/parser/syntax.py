"""
Concrete syntax tree produced by :py:func:`cooklang_parser.parser.parse`.

All offsets in the tree (node spans and diagnostic spans) are byte offsets
into the UTF-8 encoding of the source, so they may be used to slice the
original input buffer directly.

The tree is stored as a flat arena: nodes are addressed by integer index and
each node's direct children occupy a contiguous slice of a shared edge
table. Parent links and each node's position within its parent are recorded
too, allowing constant time navigation in every direction.

Node kinds (:py:class:`NodeKind`) and field names (the role a node plays in
its parent, e.g. ``"name"`` or ``"note"``) are stable and may be relied upon
by syntax highlighters and other tooling.

.. autoclass:: NodeKind
    :members:
    :undoc-members:

.. autoclass:: Node
    :members:

.. autoclass:: SyntaxTree
    :members:
"""

from typing import Iterator, List, Optional, Sequence, Tuple

from dataclasses import dataclass, replace

from enum import Enum

from cooklang_parser.recipe import Span

from cooklang_parser.diagnostics import Diagnostic


__all__ = [
    "NodeKind",
    "Node",
    "SyntaxTree",
    "SyntaxTreeBuilder",
    "utf8_offsets",
]


class NodeKind(Enum):
    """The kinds of syntax node. Values are the stable, public kind names."""

    recipe = "recipe"
    frontmatter = "frontmatter"
    yaml_content = "yaml_content"
    metadata = "metadata"
    metadata_key = "metadata_key"
    metadata_value = "metadata_value"
    section = "section"
    section_header = "section_header"
    step = "step"
    plain_text = "plain_text"
    line_break = "line_break"
    ingredient = "ingredient"
    cookware = "cookware"
    timer = "timer"
    ingredient_text = "ingredient_text"
    cookware_text = "cookware_text"
    timer_text = "timer_text"
    recipe_reference = "recipe_reference"
    quantity_block = "quantity_block"
    amount = "amount"
    units = "units"
    integer = "integer"
    fraction = "fraction"
    mixed_fraction = "mixed_fraction"
    decimal = "decimal"
    fractional_digits = "fractional_digits"
    text_quantity = "text_quantity"
    note = "note"
    note_text = "note_text"
    comment = "comment"
    block_comment = "block_comment"
    error = "error"


@dataclass(frozen=True)
class Node:
    """A node in a :py:class:`SyntaxTree`."""

    kind: NodeKind

    start: int
    end: int
    """The half-open range of UTF-8 source bytes covered by this node."""

    field: Optional[str]
    """The role this node plays in its parent, if any (e.g. ``"name"``)."""

    children_start: int
    children_end: int
    """The slice of :py:attr:`SyntaxTree.edges` listing this node's children."""

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)


class SyntaxTree:
    """
    A parsed recipe. The root node is always the last node in the arena.
    """

    source: str

    encoded: bytes
    """The UTF-8 encoding of :py:attr:`source`, which all spans index into."""

    nodes: Tuple[Node, ...]
    edges: Tuple[int, ...]
    diagnostics: Tuple[Diagnostic, ...]

    def __init__(
        self,
        source: str,
        nodes: Sequence[Node],
        edges: Sequence[int],
        parents: Sequence[Optional[int]],
        positions: Sequence[int],
        diagnostics: Sequence[Diagnostic] = (),
    ) -> None:
        self.source = source
        self.encoded = source.encode("utf-8")
        self.nodes = tuple(nodes)
        self.edges = tuple(edges)
        self._parents = tuple(parents)
        self._positions = tuple(positions)
        self.diagnostics = tuple(diagnostics)

    @property
    def root(self) -> int:
        return len(self.nodes) - 1

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def children(self, index: int) -> Tuple[int, ...]:
        node = self.nodes[index]
        return self.edges[node.children_start : node.children_end]

    def parent(self, index: int) -> Optional[int]:
        return self._parents[index]

    def _sibling(self, index: int, delta: int) -> Optional[int]:
        parent = self._parents[index]
        if parent is None:
            return None
        parent_node = self.nodes[parent]
        position = parent_node.children_start + self._positions[index] + delta
        if parent_node.children_start <= position < parent_node.children_end:
            return self.edges[position]
        else:
            return None

    def next_sibling(self, index: int) -> Optional[int]:
        return self._sibling(index, 1)

    def previous_sibling(self, index: int) -> Optional[int]:
        return self._sibling(index, -1)

    def child_by_field(self, index: int, field: str) -> Optional[int]:
        """Return the first child of a node filling the named field, if any."""
        for child in self.children(index):
            if self.nodes[child].field == field:
                return child
        return None

    def text(self, index: int) -> str:
        """The source text covered by a node."""
        node = self.nodes[index]
        return self.encoded[node.start : node.end].decode("utf-8")

    def walk(self, index: Optional[int] = None) -> Iterator[int]:
        """Iterate over node indices in pre-order, starting at the root."""
        stack = [self.root if index is None else index]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.children(current)))

    def sexp(self, index: Optional[int] = None) -> str:
        """
        Render the tree as a tree-sitter style S-expression, e.g.::

            (recipe (step (plain_text) (ingredient name: (ingredient_text))))
        """
        if index is None:
            index = self.root
        node = self.nodes[index]
        parts = [node.kind.value]
        for child in self.children(index):
            child_field = self.nodes[child].field
            if child_field is not None:
                parts.append(f"{child_field}: {self.sexp(child)}")
            else:
                parts.append(self.sexp(child))
        return "({})".format(" ".join(parts))


def utf8_offsets(source: str) -> List[int]:
    """
    Return a table mapping each character offset in ``source`` (including
    the offset just past the end) to the corresponding UTF-8 byte offset.
    """
    offsets = [0]
    for char in source:
        offsets.append(offsets[-1] + len(char.encode("utf-8")))
    return offsets


class SyntaxTreeBuilder:
    """
    Accumulates nodes bottom-up: children must be added before their parent.

    Nodes are added with character offsets into the source string. These
    are converted into UTF-8 byte offsets by :py:meth:`build`.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._nodes: List[Node] = []
        self._edges: List[int] = []
        self._parents: List[Optional[int]] = []
        self._positions: List[int] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def add(
        self,
        kind: NodeKind,
        start: int,
        end: int,
        children: Sequence[int] = (),
        field: Optional[str] = None,
    ) -> int:
        """Add a node, adopting the given (parentless) children."""
        index = len(self._nodes)
        children_start = len(self._edges)
        for position, child in enumerate(children):
            self._edges.append(child)
            self._parents[child] = index
            self._positions[child] = position
        self._nodes.append(
            Node(kind, start, end, field, children_start, len(self._edges))
        )
        self._parents.append(None)
        self._positions.append(0)
        return index

    def __getitem__(self, index: int) -> Node:
        return self._nodes[index]

    def build(self, diagnostics: Sequence[Diagnostic] = ()) -> SyntaxTree:
        """
        Produce the finished tree. The spans of the nodes and of the given
        diagnostics are translated from character to byte offsets.
        """
        nodes = self._nodes
        if not self._source.isascii():
            offsets = utf8_offsets(self._source)
            nodes = [
                replace(node, start=offsets[node.start], end=offsets[node.end])
                for node in nodes
            ]
            diagnostics = [
                replace(
                    diagnostic,
                    span=Span(
                        offsets[diagnostic.span.start], offsets[diagnostic.span.end]
                    ),
                )
                for diagnostic in diagnostics
            ]

        return SyntaxTree(
            self._source,
            nodes,
            self._edges,
            self._parents,
            self._positions,
            diagnostics,
        )
