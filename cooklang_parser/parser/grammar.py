"""
Recursive descent parser for Cooklang.

The parser consumes :py:class:`~cooklang_parser.parser.scanner.Token` objects
with a single token of lookahead and builds a
:py:class:`~cooklang_parser.parser.syntax.SyntaxTree` bottom-up. Every choice
is made by inspecting the lookahead token, in a fixed order of precedence:

* Line-level constructs (frontmatter, metadata, sections and notes) are
  recognised first, at the start of a line.
* Within a step, references (``@``, ``#``, ``~``) and comments take priority
  over prose.
* Within a quantity block, the numeric forms take priority over free text
  (see :py:mod:`cooklang_parser.parser.quantity`).

Parsing never backtracks and never raises on malformed input. Problems are
recorded as :py:class:`~cooklang_parser.diagnostics.Diagnostic` values and
parsing resumes at the next line boundary.

The grammar, informally::

    recipe         := frontmatter? (metadata | section | note-line | step | NL)*
    frontmatter    := "---" NL line* "---" NL
    metadata       := ">>" key ":" value?
    section        := "="+ header? "="*
    note-line      := ">" text?
    step           := step-line (NL step-line)*
    step-line      := (ingredient | cookware | timer | text
                       | comment | block-comment)+
    ingredient     := "@" name quantity-block? note-paren?
    cookware       := "#" name quantity-block? note-paren?
    timer          := "~" name? quantity-block? note-paren?
    quantity-block := "{" amount? "}"
    amount         := quantity ("%" unit)?
    note-paren     := "(" text ")"
"""

from typing import List, Optional, Sequence

import logging

from cooklang_parser.recipe import Span

from cooklang_parser.diagnostics import Diagnostic, ErrorKind

from cooklang_parser.parser.scanner import Scanner, Token, TokenKind

from cooklang_parser.parser.syntax import NodeKind, SyntaxTree, SyntaxTreeBuilder

from cooklang_parser.parser.quantity import QuantityPart, classify


__all__ = [
    "RecipeParser",
]


logger = logging.getLogger(__name__)


REFERENCE_KINDS = {
    TokenKind.ingredient_sigil: (NodeKind.ingredient, NodeKind.ingredient_text),
    TokenKind.cookware_sigil: (NodeKind.cookware, NodeKind.cookware_text),
    TokenKind.timer_sigil: (NodeKind.timer, NodeKind.timer_text),
}

STEP_TOKENS = frozenset(
    (
        TokenKind.text,
        TokenKind.comment,
        TokenKind.block_comment,
        TokenKind.ingredient_sigil,
        TokenKind.cookware_sigil,
        TokenKind.timer_sigil,
    )
)
"""Tokens which may begin (or continue) a step."""

LINE_END_TOKENS = frozenset((TokenKind.newline, TokenKind.eof))


class _PendingDiagnostic:
    """A diagnostic not yet attributed to a syntax node."""

    def __init__(self, span: Span, kind: ErrorKind, message: str) -> None:
        self.span = span
        self.kind = kind
        self.message = message
        self.node: Optional[int] = None


class RecipeParser:
    """
    Parses a single recipe. Instances are single-use: construct a new parser
    for every source string.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._scanner = Scanner(source)
        self._builder = SyntaxTreeBuilder(source)
        self._lookahead = self._scanner.next_token()
        self._diagnostics: List[_PendingDiagnostic] = []
        self._unclaimed: List[_PendingDiagnostic] = []

    # Token handling

    def _peek(self) -> TokenKind:
        return self._lookahead.kind

    def _advance(self) -> Token:
        token = self._lookahead
        self._lookahead = self._scanner.next_token()
        return token

    # Tree and diagnostics construction

    def _report(self, kind: ErrorKind, start: int, end: int, message: str) -> None:
        logger.debug(
            "Recovering from %s at offset %d: %s", kind.name, start, message
        )
        diagnostic = _PendingDiagnostic(Span(start, end), kind, message)
        self._diagnostics.append(diagnostic)
        self._unclaimed.append(diagnostic)

    def _node(
        self,
        kind: NodeKind,
        start: int,
        end: int,
        children: Sequence[int] = (),
        field: Optional[str] = None,
    ) -> int:
        index = self._builder.add(kind, start, end, children, field)

        # Attribute outstanding diagnostics to the innermost enclosing node
        # (nodes are created innermost first).
        if self._unclaimed:
            still_unclaimed = []
            for diagnostic in self._unclaimed:
                if start <= diagnostic.span.start and diagnostic.span.end <= end:
                    diagnostic.node = index
                else:
                    still_unclaimed.append(diagnostic)
            self._unclaimed = still_unclaimed

        return index

    def _token_node(
        self, kind: NodeKind, token: Token, field: Optional[str] = None
    ) -> int:
        return self._node(kind, token.start, token.end, field=field)

    # Grammar rules

    def parse(self) -> SyntaxTree:
        children = []

        if self._peek() is TokenKind.frontmatter_delimiter:
            children.append(self._parse_frontmatter())

        while self._peek() is not TokenKind.eof:
            kind = self._peek()
            if kind is TokenKind.newline:
                self._advance()
            elif kind is TokenKind.metadata_marker:
                children.append(self._parse_metadata())
            elif kind is TokenKind.section_marker:
                children.append(self._parse_section())
            elif kind is TokenKind.note_marker:
                children.append(self._parse_note())
            elif kind in STEP_TOKENS:
                children.append(self._parse_step())
            else:
                children.append(self._parse_unexpected())

        root = self._node(NodeKind.recipe, 0, len(self._source), children)
        assert root == len(self._builder) - 1

        return self._builder.build(
            [Diagnostic(d.span, d.kind, d.message, d.node) for d in self._diagnostics]
        )

    def _parse_unexpected(self) -> int:
        """
        Consume tokens up to the end of the line as an error node. Unreachable
        for token streams produced by the scanner, but guarantees progress.
        """
        start = self._lookahead.start
        end = start
        while self._peek() not in LINE_END_TOKENS:
            end = self._advance().end
        return self._node(NodeKind.error, start, end)

    def _parse_frontmatter(self) -> int:
        opening = self._advance()
        if self._peek() is TokenKind.newline:
            self._advance()

        content_start = self._lookahead.start
        while self._peek() not in (TokenKind.frontmatter_delimiter, TokenKind.eof):
            self._advance()

        children = []
        if self._peek() is TokenKind.frontmatter_delimiter:
            content_end = self._lookahead.start
            end = self._advance().end
            if self._peek() is TokenKind.newline:
                end = self._advance().end
        else:
            content_end = end = len(self._source)
            self._report(
                ErrorKind.unterminated_frontmatter,
                opening.start,
                opening.end,
                "Frontmatter is missing a closing '---' line.",
            )

        if content_end > content_start:
            children.append(
                self._node(
                    NodeKind.yaml_content, content_start, content_end, field="content"
                )
            )

        return self._node(NodeKind.frontmatter, opening.start, end, children)

    def _parse_metadata(self) -> int:
        marker = self._advance()
        key = self._advance()
        colon = self._advance()

        children = [self._token_node(NodeKind.metadata_key, key, "key")]
        end = colon.end

        if self._peek() is TokenKind.metadata_value:
            value = self._advance()
            children.append(self._token_node(NodeKind.metadata_value, value, "value"))
            end = value.end
        elif self._peek() is TokenKind.eof:
            self._report(
                ErrorKind.unexpected_end_of_input,
                colon.start,
                colon.end,
                f"Metadata '{self._source[key.start:key.end]}' is missing a value.",
            )

        return self._node(NodeKind.metadata, marker.start, end, children)

    def _parse_section(self) -> int:
        opening = self._advance()
        start, end = opening.start, opening.end
        children = []
        while self._peek() in (TokenKind.section_marker, TokenKind.section_header):
            token = self._advance()
            if token.kind is TokenKind.section_header:
                children.append(
                    self._token_node(NodeKind.section_header, token, "header")
                )
            end = token.end
        return self._node(NodeKind.section, start, end, children)

    def _parse_note(self) -> int:
        marker = self._advance()
        children = []
        end = marker.end
        if self._peek() is TokenKind.note_line_text:
            text = self._advance()
            children.append(self._token_node(NodeKind.note_text, text, "content"))
            end = text.end
        return self._node(NodeKind.note, marker.start, end, children)

    def _parse_step(self) -> int:
        children: List[int] = []

        while True:
            kind = self._peek()
            if kind is TokenKind.text:
                children.append(self._token_node(NodeKind.plain_text, self._advance()))
            elif kind is TokenKind.comment:
                children.append(self._token_node(NodeKind.comment, self._advance()))
            elif kind is TokenKind.block_comment:
                children.append(self._parse_block_comment())
            elif kind in REFERENCE_KINDS:
                children.append(self._parse_reference())
            elif kind is TokenKind.newline:
                newline = self._advance()
                if self._peek() in STEP_TOKENS:
                    # Steps are paragraphs: the next content line continues this step
                    children.append(self._token_node(NodeKind.line_break, newline))
                else:
                    break
            else:
                break

        start = self._builder[children[0]].start
        end = self._builder[children[-1]].end
        return self._node(NodeKind.step, start, end, children)

    def _parse_block_comment(self) -> int:
        token = self._advance()
        text = self._source[token.start : token.end]
        if len(text) < 4 or not text.endswith("-]"):
            self._report(
                ErrorKind.unterminated_block_comment,
                token.start,
                token.start + 2,
                "Block comment is missing a closing '-]'.",
            )
        return self._token_node(NodeKind.block_comment, token)

    def _parse_reference(self) -> int:
        sigil = self._advance()
        kind, name_kind = REFERENCE_KINDS[sigil.kind]

        children = []
        end = sigil.end

        if self._peek() is TokenKind.name:
            name = self._advance()
            children.append(self._token_node(name_kind, name, "name"))
            end = name.end
        elif self._peek() is TokenKind.reference_path:
            path = self._advance()
            trimmed = self._strip(path)
            assert trimmed is not None
            children.append(
                self._node(
                    NodeKind.recipe_reference, trimmed.start, trimmed.end, field="name"
                )
            )
            end = path.end

        if self._peek() is TokenKind.lbrace:
            block = self._parse_quantity_block()
            children.append(block)
            end = self._builder[block].end

        if self._peek() is TokenKind.lparen:
            opening = self._advance()
            end = opening.end
            if self._peek() is TokenKind.note_text:
                text = self._advance()
                children.append(self._token_node(NodeKind.note_text, text, "note"))
                end = text.end
            if self._peek() is TokenKind.rparen:
                end = self._advance().end
            else:
                self._report(
                    ErrorKind.unterminated_note,
                    opening.start,
                    opening.end,
                    "Note is missing a closing ')'.",
                )

        return self._node(kind, sigil.start, end, children)

    def _parse_quantity_block(self) -> int:
        opening = self._advance()
        end = opening.end

        quantity: Optional[Token] = None
        percent: Optional[Token] = None
        unit: Optional[Token] = None

        if self._peek() is TokenKind.quantity_text:
            quantity = self._advance()
            end = quantity.end
        if self._peek() is TokenKind.percent:
            percent = self._advance()
            end = percent.end
            if self._peek() is TokenKind.unit_text:
                unit = self._advance()
                end = unit.end

        children = []
        amount = self._parse_amount(quantity, percent, unit)
        if amount is not None:
            children.append(amount)

        if self._peek() is TokenKind.rbrace:
            end = self._advance().end
        else:
            self._report(
                ErrorKind.unterminated_quantity_block,
                opening.start,
                opening.end,
                "Quantity block is missing a closing '}'.",
            )

        return self._node(NodeKind.quantity_block, opening.start, end, children)

    def _strip(self, token: Optional[Token]) -> Optional[Span]:
        """The whitespace-trimmed span of a token, or None if blank."""
        if token is None:
            return None
        text = self._source[token.start : token.end]
        stripped = text.strip()
        if not stripped:
            return None
        start = token.start + (len(text) - len(text.lstrip()))
        return Span(start, start + len(stripped))

    def _parse_amount(
        self,
        quantity_token: Optional[Token],
        percent: Optional[Token],
        unit_token: Optional[Token],
    ) -> Optional[int]:
        quantity = self._strip(quantity_token)
        unit = self._strip(unit_token)

        if quantity is None:
            if percent is not None:
                self._report(
                    ErrorKind.malformed_number,
                    percent.start,
                    percent.end,
                    "Amount is missing a quantity before '%'.",
                )
            return None

        classification = classify(
            self._source[quantity.start : quantity.end], quantity.start
        )
        for error in classification.errors:
            self._report(
                ErrorKind.malformed_number, error.start, error.end, error.message
            )

        children = [self._add_quantity(classification.part)]
        end = quantity.end
        if unit is not None:
            children.append(
                self._node(NodeKind.units, unit.start, unit.end, field="unit")
            )
            end = unit.end

        return self._node(NodeKind.amount, quantity.start, end, children, "amount")

    def _add_quantity(self, part: QuantityPart) -> int:
        children = [self._add_quantity(child) for child in part.children]
        return self._node(part.kind, part.start, part.end, children, part.field)
