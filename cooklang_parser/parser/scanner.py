"""
Context sensitive tokenizer for Cooklang recipes.

Cooklang cannot be tokenized by a context-free lexer: whether ``olive oil``
is an ingredient name or prose depends on whether a ``{`` follows, whether
``#`` starts a cookware reference depends on what precedes and follows it,
and so on. The :py:class:`Scanner` therefore tracks a small amount of state
(a :py:class:`Mode` and the kind of the previous token) and uses bounded
lookahead to produce an unambiguous token stream which the
:py:mod:`~cooklang_parser.parser.grammar` consumes without backtracking.

Every call to :py:meth:`Scanner.next_token` consumes at least one character,
apart from the final ``eof`` token which is returned repeatedly.

.. autoclass:: Scanner
    :members:

.. autoclass:: Token
    :members:

.. autoclass:: TokenKind
    :members:
    :undoc-members:

.. autoclass:: Mode
    :members:
    :undoc-members:

.. autofunction:: scan_multiword
"""

from typing import Iterator, Optional

from dataclasses import dataclass

from enum import Enum, auto

from cooklang_parser.recipe import REFERENCE_PREFIXES


__all__ = [
    "TokenKind",
    "Mode",
    "Token",
    "Scanner",
    "is_word_char",
    "scan_multiword",
]


class TokenKind(Enum):
    newline = auto()
    eof = auto()

    frontmatter_delimiter = auto()
    frontmatter_line = auto()

    metadata_marker = auto()
    metadata_key = auto()
    colon = auto()
    metadata_value = auto()

    section_marker = auto()
    section_header = auto()

    note_marker = auto()
    note_line_text = auto()

    text = auto()
    comment = auto()
    block_comment = auto()

    ingredient_sigil = auto()
    cookware_sigil = auto()
    timer_sigil = auto()
    name = auto()
    reference_path = auto()

    lbrace = auto()
    quantity_text = auto()
    percent = auto()
    unit_text = auto()
    rbrace = auto()

    lparen = auto()
    note_text = auto()
    rparen = auto()


class Mode(Enum):
    """Scanner modes."""

    default = auto()
    frontmatter = auto()
    metadata = auto()
    section_header = auto()
    name = auto()
    """Entered immediately after a reference sigil (``@``, ``#`` or ``~``)."""
    quantity_block = auto()
    note = auto()
    """Within a parenthesised note."""


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    start: int
    end: int


HSPACE = " \t"

WORD_PUNCTUATION = "_-'\""

SIGILS = {
    "@": TokenKind.ingredient_sigil,
    "#": TokenKind.cookware_sigil,
    "~": TokenKind.timer_sigil,
}

# Tokens after which '{' opens a quantity block and '(' opens a note
QUANTITY_BLOCK_OPENERS = frozenset(
    (TokenKind.name, TokenKind.reference_path, TokenKind.timer_sigil)
)
NOTE_OPENERS = QUANTITY_BLOCK_OPENERS | {TokenKind.rbrace}

# Tokens followed by insignificant whitespace
SPACE_SKIPPING = frozenset(
    (
        TokenKind.note_marker,
        TokenKind.note_line_text,
        TokenKind.colon,
        TokenKind.metadata_value,
    )
)


def is_word_char(char: str) -> bool:
    return (
        char.isalnum()
        or char in WORD_PUNCTUATION
        or (ord(char) > 127 and not char.isspace())
    )


def _scan_word(source: str, pos: int) -> int:
    """Return the end of the word starting at pos (pos if there is none)."""
    if source.startswith("--", pos):
        return pos
    end = pos
    while end < len(source) and is_word_char(source[end]):
        end += 1
    return end


def _skip_hspace(source: str, pos: int) -> int:
    while pos < len(source) and source[pos] in HSPACE:
        pos += 1
    return pos


def _line_end(source: str, pos: int) -> int:
    """Offset of the newline (or end of input) ending the line containing pos."""
    end = source.find("\n", pos)
    if end == -1:
        return len(source)
    elif end > pos and source[end - 1] == "\r":
        return end - 1
    else:
        return end


def _rstrip_end(source: str, start: int, end: int, chars: str = HSPACE) -> int:
    while end > start and source[end - 1] in chars:
        end -= 1
    return end


def scan_multiword(source: str, pos: int, terminator: str = "{") -> int:
    """
    Find the end of a name starting at ``pos``.

    A name is normally a single word. Several whitespace separated words are
    only taken together when the run of words is immediately followed by
    ``terminator``. For example, from ``olive oil{1%tbsp}`` the name is
    ``olive oil`` while from ``pan on medium.`` it is just ``pan``.

    Returns ``pos`` if no word starts at ``pos``.
    """
    name_end = _scan_word(source, pos)
    if name_end == pos:
        return pos

    cursor = name_end
    while True:
        if source.startswith(terminator, cursor):
            return cursor
        space_end = _skip_hspace(source, cursor)
        if space_end == cursor:
            break
        word_end = _scan_word(source, space_end)
        if word_end == space_end:
            break
        cursor = word_end

    return name_end


class Scanner:
    """
    Split a recipe into :py:class:`Token` objects.

    Tokens are produced one at a time by :py:meth:`next_token`, or may be
    iterated over (ending with, and including, the ``eof`` token).
    """

    source: str
    pos: int
    mode: Mode

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.mode = Mode.default
        self._at_line_start = True
        self._last: Optional[TokenKind] = None

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.eof:
                break

    def next_token(self) -> Token:
        """Produce the next token, updating :py:attr:`mode`."""
        if (
            self._last is None
            and self._is_frontmatter_delimiter(0)
            and _line_end(self.source, 0) < len(self.source)
        ):
            self.mode = Mode.frontmatter

        if self.mode is Mode.frontmatter:
            token = self._scan_frontmatter()
        elif self.mode is Mode.metadata:
            token = self._scan_metadata()
        elif self.mode is Mode.section_header:
            token = self._scan_section_header()
        elif self.mode is Mode.name:
            token = self._scan_name()
        elif self.mode is Mode.quantity_block:
            token = self._scan_quantity_block()
        elif self.mode is Mode.note:
            token = self._scan_note()
        else:
            token = self._scan_default()

        self.pos = token.end
        self._last = token.kind
        self._at_line_start = token.kind is TokenKind.newline
        return token

    # Helpers

    def _token(self, kind: TokenKind, start: int, end: int) -> Token:
        return Token(kind, start, end)

    def _newline_or_eof(self, pos: int) -> Optional[Token]:
        """Return a newline or eof token if one starts at pos."""
        source = self.source
        if pos >= len(source):
            return self._token(TokenKind.eof, len(source), len(source))
        elif source[pos] == "\n":
            return self._token(TokenKind.newline, pos, pos + 1)
        elif source.startswith("\r\n", pos):
            return self._token(TokenKind.newline, pos, pos + 2)
        else:
            return None

    def _is_frontmatter_delimiter(self, pos: int) -> bool:
        """Does a line consisting only of '---' start at pos?"""
        end = _line_end(self.source, pos)
        return self.source.startswith("---", pos) and (
            _rstrip_end(self.source, pos + 3, end) == pos + 3
        )

    def _is_name_start(self, pos: int) -> bool:
        return (
            _scan_word(self.source, pos) > pos
            or self.source.startswith(REFERENCE_PREFIXES, pos)
        )

    def _at_word_boundary(self, pos: int) -> bool:
        return pos == 0 or not is_word_char(self.source[pos - 1])

    def _starts_reference(self, pos: int) -> bool:
        char = self.source[pos]
        if char not in SIGILS or not self._at_word_boundary(pos):
            return False
        elif char == "~":
            return True
        else:
            return self._is_name_start(pos + 1)

    # Modes

    def _scan_frontmatter(self) -> Token:
        source = self.source
        pos = self.pos

        token = self._newline_or_eof(pos)
        if token is not None:
            return token

        end = _line_end(source, pos)
        if self._last is None:
            # Opening delimiter
            return self._token(TokenKind.frontmatter_delimiter, pos, end)
        elif self._at_line_start and self._is_frontmatter_delimiter(pos):
            self.mode = Mode.default
            return self._token(TokenKind.frontmatter_delimiter, pos, end)
        else:
            return self._token(TokenKind.frontmatter_line, pos, end)

    def _scan_metadata(self) -> Token:
        source = self.source
        pos = _skip_hspace(source, self.pos)
        end = _line_end(source, pos)

        if self._last is TokenKind.metadata_marker:
            colon = source.index(":", pos, end)
            return self._token(
                TokenKind.metadata_key, pos, _rstrip_end(source, pos, colon)
            )
        elif self._last is TokenKind.metadata_key:
            return self._token(TokenKind.colon, pos, pos + 1)
        else:
            self.mode = Mode.default
            value_end = _rstrip_end(source, pos, end)
            if value_end > pos:
                return self._token(TokenKind.metadata_value, pos, value_end)
            else:
                return self._scan_default()

    def _scan_section_header(self) -> Token:
        source = self.source
        pos = _skip_hspace(source, self.pos)

        token = self._newline_or_eof(pos)
        if token is not None:
            self.mode = Mode.default
            return token

        if source[pos] == "=":
            if self._last is TokenKind.section_header:
                # Everything after the header's closing '=' is decoration
                end = _rstrip_end(source, pos, _line_end(source, pos))
            else:
                end = pos
                while end < len(source) and source[end] == "=":
                    end += 1
            return self._token(TokenKind.section_marker, pos, end)

        # The header runs up to the first '='
        end = source.find("=", pos, _line_end(source, pos))
        if end == -1:
            end = _line_end(source, pos)
        end = _rstrip_end(source, pos, end)
        return self._token(TokenKind.section_header, pos, end)

    def _scan_name(self) -> Token:
        source = self.source
        pos = self.pos
        self.mode = Mode.default

        if self._last is not TokenKind.timer_sigil and source.startswith(
            REFERENCE_PREFIXES, pos
        ):
            end = pos
            while end < len(source) and source[end] not in "{(\r\n":
                end += 1
            return self._token(TokenKind.reference_path, pos, end)

        end = scan_multiword(source, pos)
        if end > pos:
            return self._token(TokenKind.name, pos, end)
        else:
            # Anonymous timer
            return self._scan_default()

    def _scan_quantity_block(self) -> Token:
        source = self.source
        pos = self.pos

        if pos >= len(source) or source[pos] in "\r\n":
            # Unterminated: leave reporting this to the parser
            self.mode = Mode.default
            return self._scan_default()
        elif source[pos] == "}":
            self.mode = Mode.default
            return self._token(TokenKind.rbrace, pos, pos + 1)
        elif source[pos] == "%" and self._last in (
            TokenKind.lbrace,
            TokenKind.quantity_text,
        ):
            return self._token(TokenKind.percent, pos, pos + 1)

        if self._last is TokenKind.percent:
            kind = TokenKind.unit_text
            stop = "}\r\n"
        else:
            kind = TokenKind.quantity_text
            stop = "%}\r\n"

        end = pos + 1
        while end < len(source) and source[end] not in stop:
            end += 1
        return self._token(kind, pos, end)

    def _scan_note(self) -> Token:
        source = self.source
        pos = self.pos

        if pos >= len(source) or source[pos] in "\r\n":
            self.mode = Mode.default
            return self._scan_default()
        elif source[pos] == ")":
            self.mode = Mode.default
            return self._token(TokenKind.rparen, pos, pos + 1)

        depth = 0
        end = pos
        while end < len(source) and source[end] not in "\r\n":
            if source[end] == "(":
                depth += 1
            elif source[end] == ")":
                if depth == 0:
                    break
                depth -= 1
            end += 1
        return self._token(TokenKind.note_text, pos, end)

    def _scan_default(self) -> Token:
        source = self.source
        pos = self.pos

        if self._at_line_start or self._last in SPACE_SKIPPING:
            pos = _skip_hspace(source, pos)

        token = self._newline_or_eof(pos)
        if token is not None:
            return token

        if self._last is TokenKind.note_marker:
            return self._token(
                TokenKind.note_line_text,
                pos,
                _rstrip_end(source, pos, _line_end(source, pos)),
            )

        if self._at_line_start:
            token = self._scan_line_start(pos)
            if token is not None:
                return token

        char = source[pos]
        if source.startswith("--", pos):
            return self._token(TokenKind.comment, pos, _line_end(source, pos))
        elif source.startswith("[-", pos):
            return self._scan_block_comment(pos)
        elif self._starts_reference(pos):
            self.mode = Mode.name
            return self._token(SIGILS[char], pos, pos + 1)
        elif char == "{" and self._last in QUANTITY_BLOCK_OPENERS:
            self.mode = Mode.quantity_block
            return self._token(TokenKind.lbrace, pos, pos + 1)
        elif char == "(" and self._last in NOTE_OPENERS:
            self.mode = Mode.note
            return self._token(TokenKind.lparen, pos, pos + 1)
        else:
            return self._scan_text(pos)

    def _scan_line_start(self, pos: int) -> Optional[Token]:
        """Recognise line-level constructs (metadata, notes, sections)."""
        source = self.source
        if source.startswith(">>", pos):
            end = _line_end(source, pos)
            colon = source.find(":", pos + 2, end)
            if colon != -1 and source[pos + 2 : colon].strip(HSPACE):
                self.mode = Mode.metadata
                return self._token(TokenKind.metadata_marker, pos, pos + 2)
            else:
                return None
        elif source.startswith(">", pos):
            return self._token(TokenKind.note_marker, pos, pos + 1)
        elif source.startswith("=", pos):
            end = pos
            while end < len(source) and source[end] == "=":
                end += 1
            self.mode = Mode.section_header
            return self._token(TokenKind.section_marker, pos, end)
        else:
            return None

    def _scan_block_comment(self, pos: int) -> Token:
        end = self.source.find("-]", pos + 2)
        if end == -1:
            return self._token(TokenKind.block_comment, pos, len(self.source))
        else:
            return self._token(TokenKind.block_comment, pos, end + 2)

    def _scan_text(self, pos: int) -> Token:
        source = self.source
        end = pos + 1
        while end < len(source):
            char = source[end]
            if char == "\n" or source.startswith("\r\n", end):
                break
            elif source.startswith("--", end) or source.startswith("[-", end):
                break
            elif char in SIGILS and self._starts_reference(end):
                break
            end += 1
        return self._token(TokenKind.text, pos, end)
