"""
Cooklang source is compiled into the recipe data model (see
:py:mod:`cooklang_parser.recipe`) by the following functions:

.. autofunction:: cooklang_parser.assembler.compile

.. autofunction:: cooklang_parser.assembler.compile_strict

.. autoclass:: CompiledRecipe
    :members:

Lower-level access to the assembly of a previously parsed
:py:class:`~cooklang_parser.parser.syntax.SyntaxTree` is provided by:

.. autofunction:: cooklang_parser.assembler.assemble
"""

from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from cooklang_parser.parser import parse

from cooklang_parser.parser.syntax import NodeKind, SyntaxTree

from cooklang_parser.diagnostics import Diagnostic, RecipeSyntaxError

from cooklang_parser.recipe import (
    Span,
    Recipe,
    Block,
    Metadata,
    Section,
    Step,
    Note,
    Comment,
    BlockComment,
    Segment,
    Text,
    Ingredient,
    Cookware,
    Timer,
    Amount,
    Quantity,
    Integer,
    Fraction,
    MixedFraction,
    Decimal,
    TextQuantity,
)


__all__ = [
    "assemble",
    "CompiledRecipe",
    "compile",
    "compile_strict",
]


def strip_comment_markers(text: str) -> str:
    """
    Return the content of a line (``-- ...``) or block (``[- ... -]``)
    comment with its markers and surrounding whitespace removed.
    """
    if text.startswith("[-"):
        text = text[2:]
        if text.endswith("-]"):
            text = text[:-2]
    elif text.startswith("--"):
        text = text[2:]
    return text.strip()


def _utf8_length(text: str) -> int:
    return len(text.encode("utf-8"))

class RecipeAssembler:
    """
    Folds a :py:class:`~cooklang_parser.parser.syntax.SyntaxTree` into a
    :py:class:`~cooklang_parser.recipe.Recipe`. Single use.
    """

    tree: SyntaxTree

    comments: List[Union[Comment, BlockComment]]
    """Every comment encountered so far, in source order."""

    def __init__(self, tree: SyntaxTree) -> None:
        self.tree = tree
        self.comments = []

        self._quantity_assemblers: Dict[NodeKind, Callable[[int], Quantity]] = {
            NodeKind.integer: self._assemble_integer,
            NodeKind.fraction: self._assemble_fraction,
            NodeKind.mixed_fraction: self._assemble_mixed_fraction,
            NodeKind.decimal: self._assemble_decimal,
            NodeKind.text_quantity: self._assemble_text_quantity,
        }

    def _span(self, index: int) -> Span:
        return self.tree[index].span

    def _field_text(self, index: int, field: str) -> Optional[str]:
        child = self.tree.child_by_field(index, field)
        if child is None:
            return None
        else:
            return self.tree.text(child)

    def _field_int(self, index: int, field: str) -> int:
        text = self._field_text(index, field)
        assert text is not None
        return int(text)

    # Quantities

    def _assemble_integer(self, index: int) -> Quantity:
        return Integer(self._span(index), int(self.tree.text(index)))

    def _assemble_fraction(self, index: int) -> Quantity:
        return Fraction(
            self._span(index),
            self._field_int(index, "numerator"),
            self._field_int(index, "denominator"),
        )

    def _assemble_mixed_fraction(self, index: int) -> Quantity:
        return MixedFraction(
            self._span(index),
            self._field_int(index, "whole"),
            self._field_int(index, "numerator"),
            self._field_int(index, "denominator"),
        )

    def _assemble_decimal(self, index: int) -> Quantity:
        fractional_part = self._field_text(index, "fractional_part")
        assert fractional_part is not None
        return Decimal(
            self._span(index),
            self._field_int(index, "integer_part"),
            fractional_part,
        )

    def _assemble_text_quantity(self, index: int) -> Quantity:
        return TextQuantity(self._span(index), self.tree.text(index))

    def _assemble_amount(self, index: int) -> Amount:
        quantity = self.tree.child_by_field(index, "quantity")
        assert quantity is not None
        return Amount(
            self._span(index),
            self._quantity_assemblers[self.tree[quantity].kind](quantity),
            self._field_text(index, "unit"),
        )

    # Step contents

    def _assemble_reference(self, index: int) -> Segment:
        name = self._field_text(index, "name")

        amount: Optional[Amount] = None
        for child in self.tree.children(index):
            if self.tree[child].kind is NodeKind.quantity_block:
                amount_index = self.tree.child_by_field(child, "amount")
                if amount_index is not None:
                    amount = self._assemble_amount(amount_index)

        note = self._field_text(index, "note")
        if note is not None:
            note = note.strip() or None

        kind = self.tree[index].kind
        span = self._span(index)
        if kind is NodeKind.ingredient:
            return Ingredient(span, name or "", amount, note)
        elif kind is NodeKind.cookware:
            return Cookware(span, name or "", amount, note)
        else:
            return Timer(span, name, amount, note)

    def _assemble_comment(self, index: int) -> Union[Comment, BlockComment]:
        text = strip_comment_markers(self.tree.text(index))
        if self.tree[index].kind is NodeKind.block_comment:
            return BlockComment(self._span(index), text)
        else:
            return Comment(self._span(index), text)

    def _strip_text(
        self, segment: Text, leading: bool = False, trailing: bool = False
    ) -> Text:
        """Strip whitespace from a Text segment, shrinking its span to match."""
        covered = segment.span.of(self.tree.source)
        text = segment.text
        start, end = segment.span.start, segment.span.end
        if leading:
            text = text.lstrip()
            start += _utf8_length(covered) - _utf8_length(covered.lstrip())
        if trailing:
            text = text.rstrip()
            end -= _utf8_length(covered) - _utf8_length(covered.rstrip())
        return Text(Span(start, max(start, end)), text)

    def _assemble_step(self, index: int) -> List[Block]:
        """
        Produce a :py:class:`Step` for a paragraph, or, for a paragraph
        consisting only of comments, a series of comment blocks.
        """
        segments: List[Segment] = []
        step_comments: List[Union[Comment, BlockComment]] = []

        # Adjacent text (including line breaks) is accumulated here before
        # being merged into a single Text segment
        text_parts: List[str] = []
        text_start = text_end = 0

        def flush_text() -> None:
            if text_parts:
                segments.append(Text(Span(text_start, text_end), "".join(text_parts)))
                text_parts.clear()

        for child in self.tree.children(index):
            node = self.tree[child]
            if node.kind in (NodeKind.plain_text, NodeKind.line_break):
                if not text_parts:
                    text_start = node.start
                text_end = node.end
                if node.kind is NodeKind.plain_text:
                    text_parts.append(self.tree.text(child))
                else:
                    if text_parts:
                        text_parts[-1] = text_parts[-1].rstrip()
                    text_parts.append(" ")
            elif node.kind in (NodeKind.comment, NodeKind.block_comment):
                step_comments.append(self._assemble_comment(child))
            else:
                flush_text()
                segments.append(self._assemble_reference(child))
        flush_text()

        self.comments.extend(step_comments)

        # Trim surrounding whitespace from the step as a whole
        if segments:
            first = segments[0]
            if isinstance(first, Text):
                segments[0] = self._strip_text(first, leading=True)
            last = segments[-1]
            if isinstance(last, Text):
                segments[-1] = self._strip_text(last, trailing=True)
        segments = [s for s in segments if not (isinstance(s, Text) and not s.text)]

        if segments:
            return [Step(self._span(index), tuple(segments))]
        else:
            return list(step_comments)

    # Line-level constructs

    def _assemble_block(self, index: int) -> List[Block]:
        kind = self.tree[index].kind
        span = self._span(index)
        if kind is NodeKind.metadata:
            return [
                Metadata(
                    span,
                    self._field_text(index, "key") or "",
                    self._field_text(index, "value") or "",
                )
            ]
        elif kind is NodeKind.section:
            return [Section(span, self._field_text(index, "header"))]
        elif kind is NodeKind.note:
            return [Note(span, self._field_text(index, "content") or "")]
        elif kind is NodeKind.step:
            return self._assemble_step(index)
        else:
            # Error nodes carry no semantic content
            return []

    def assemble(self) -> Recipe:
        frontmatter: Optional[str] = None
        blocks: List[Block] = []

        root = self.tree.root
        for child in self.tree.children(root):
            if self.tree[child].kind is NodeKind.frontmatter:
                frontmatter = self._field_text(child, "content") or ""
            else:
                blocks.extend(self._assemble_block(child))

        return Recipe(
            self._span(root),
            frontmatter,
            tuple(blocks),
            tuple(self.comments),
        )


def assemble(tree: SyntaxTree) -> Recipe:
    """
    Assemble a parsed :py:class:`~cooklang_parser.parser.syntax.SyntaxTree`
    into a :py:class:`~cooklang_parser.recipe.Recipe`.

    Malformed constructs (reported in the tree's diagnostics) are assembled
    as far as possible. For example, an ingredient with an unterminated
    quantity block still produces an :py:class:`Ingredient` with whatever
    amount could be read.
    """
    return RecipeAssembler(tree).assemble()


class CompiledRecipe(NamedTuple):
    recipe: Recipe
    """The assembled recipe."""

    diagnostics: Tuple[Diagnostic, ...]
    """Problems found in the source, in the order encountered."""

    tree: SyntaxTree
    """The syntax tree the recipe was assembled from."""


def compile(source: Union[str, bytes]) -> CompiledRecipe:
    """
    Compile a Cooklang recipe (a :py:class:`str` or UTF-8 encoded
    :py:class:`bytes`) into a :py:class:`~cooklang_parser.recipe.Recipe`.

    Never raises for malformed recipes: the (possibly partial) recipe is
    returned alongside a list of diagnostics which the caller may choose to
    treat as fatal or advisory. All spans are byte offsets into the UTF-8
    encoded source.

    Raises
    ======
    UnicodeDecodeError
        If ``source`` is :py:class:`bytes` but not valid UTF-8.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8")
    tree = parse(source)
    return CompiledRecipe(assemble(tree), tree.diagnostics, tree)


def compile_strict(source: Union[str, bytes]) -> Recipe:
    """
    Like :py:func:`compile` but treats any diagnostic as fatal.

    Raises
    ======
    cooklang_parser.diagnostics.RecipeSyntaxError
        For the first problem found in the source.
    """
    compiled = compile(source)
    if compiled.diagnostics:
        raise RecipeSyntaxError.from_diagnostic(
            compiled.tree.source, compiled.diagnostics[0]
        )
    return compiled.recipe
