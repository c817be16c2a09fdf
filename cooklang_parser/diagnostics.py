"""
Problems found while parsing a recipe are reported as :py:class:`Diagnostic`
values rather than raised. Parsing always produces a (possibly partial)
document and the host decides whether any diagnostic is fatal.

.. autoclass:: ErrorKind
    :members:
    :undoc-members:

.. autoclass:: Diagnostic
    :members:

Hosts which prefer exceptions may use
:py:func:`cooklang_parser.assembler.compile_strict` which raises the following
for the first diagnostic found:

.. autoexception:: RecipeSyntaxError
"""

from typing import Optional, Tuple

from dataclasses import dataclass

from enum import Enum, auto

from peggie.error_message_generation import (
    offset_to_line_and_column,
    extract_line,
    format_error_message,
)

from cooklang_parser.recipe import Span


__all__ = [
    "ErrorKind",
    "Diagnostic",
    "RecipeSyntaxError",
]


def _locate(source: str, offset: int) -> Tuple[int, int, str]:
    """
    Find the (1-indexed) line, column and line snippet for a UTF-8 byte
    offset into the source. Columns count characters.
    """
    char_offset = len(source.encode("utf-8")[:offset].decode("utf-8"))
    line, column = offset_to_line_and_column(source, char_offset)
    return line, column, extract_line(source, line)

class ErrorKind(Enum):
    """Kinds of syntax problem."""

    unterminated_frontmatter = auto()
    unterminated_block_comment = auto()
    unterminated_quantity_block = auto()
    unterminated_note = auto()
    malformed_number = auto()
    unexpected_end_of_input = auto()


@dataclass(frozen=True)
class Diagnostic:
    """A description of a problem found in a recipe."""

    span: Span
    """The range of UTF-8 source bytes the problem relates to."""

    kind: ErrorKind

    message: str
    """A human readable explanation."""

    node: Optional[int] = None
    """
    The index (into the :py:class:`~cooklang_parser.parser.syntax.SyntaxTree`)
    of the nearest syntax node enclosing the problem.
    """

    def format(self, source: str) -> str:
        """
        Render this diagnostic with a source snippet, for example::

            At line 1 column 7:
                @flour{2%cups
                      ^
            Quantity block is missing a closing '}'.
        """
        line, column, snippet = _locate(source, self.span.start)
        return format_error_message(line, column, snippet, self.message)


@dataclass
class RecipeSyntaxError(ValueError):
    """Thrown by strict parsing when a recipe contains a syntax problem."""

    line: int
    column: int
    snippet: str
    """The source code location and snippet of the cause of the problem."""

    diagnostic: Diagnostic

    def __str__(self) -> str:
        return format_error_message(
            self.line, self.column, self.snippet, self.diagnostic.message
        )

    @classmethod
    def from_diagnostic(
        cls, source: str, diagnostic: Diagnostic
    ) -> "RecipeSyntaxError":
        line, column, snippet = _locate(source, diagnostic.span.start)
        return cls(line, column, snippet, diagnostic)
