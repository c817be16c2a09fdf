"""
Cooklang source is parsed into a concrete syntax tree (see
:py:mod:`cooklang_parser.parser.syntax`) using
:py:func:`cooklang_parser.parser.parse`:

.. autofunction:: cooklang_parser.parser.parse

Parsing is performed in two stages: the context sensitive
:py:mod:`~cooklang_parser.parser.scanner` splits the source into tokens which
the recursive descent :py:mod:`~cooklang_parser.parser.grammar` then arranges
into a tree. Quantity literals are classified separately by the
:py:mod:`~cooklang_parser.parser.quantity` sub-parser.
"""

import logging

from cooklang_parser.parser.grammar import RecipeParser

from cooklang_parser.parser.syntax import SyntaxTree


__all__ = [
    "parse",
]


logger = logging.getLogger(__name__)


def parse(source: str) -> SyntaxTree:
    """
    Parse a recipe into a syntax tree.

    Never raises for malformed input: problems are reported in
    :py:attr:`SyntaxTree.diagnostics` alongside a best-effort tree.
    """
    tree = RecipeParser(source).parse()
    logger.debug(
        "Parsed %d characters into %d nodes with %d diagnostic(s)",
        len(source),
        len(tree),
        len(tree.diagnostics),
    )
    return tree
