"""
Classification of quantity literals using a :py:mod:`peggie` grammar (read
from ``quantity.peg``).

Quantities are classified but never evaluated: the result records which
numeric form (if any) was used and where each of its components lies in the
source so that the exact literal can be reproduced later.

.. autofunction:: classify

.. autodata:: grammar
"""

from typing import Any, List, NamedTuple, Optional, Sequence, cast

import os

import peggie
from peggie import compile_grammar, Parser

from cooklang_parser.parser.syntax import NodeKind

__all__ = [
    "grammar",
    "grammar_source",
    "QuantityPart",
    "QuantityError",
    "Classification",
    "classify",
]

grammar_source_path = os.path.join(os.path.dirname(__file__), "quantity.peg")

with open(grammar_source_path) as f:
    grammar_source = f.read()
    """
    The quantity literal :py:mod:`peggie` grammar source in a string.
    """

grammar = compile_grammar(grammar_source)
"""
The compiled :py:class:`peggie.Grammar` for quantity literals.
"""


class QuantityPart(NamedTuple):
    """A (sub-)component of a classified quantity."""

    kind: NodeKind
    start: int
    end: int
    field: Optional[str] = None
    children: Sequence["QuantityPart"] = ()


class QuantityError(NamedTuple):
    start: int
    end: int
    message: str


class Classification(NamedTuple):
    part: QuantityPart
    """The classified quantity."""

    errors: List[QuantityError]
    """Any problems with numeric-looking literals. Empty if well formed."""


class QuantityTransformer(peggie.ParseTreeTransformer):
    """
    Transforms a quantity parse tree into a :py:class:`QuantityPart`,
    offsetting all positions by ``offset``.
    """

    def __init__(self, offset: int) -> None:
        self.offset = offset
        self.errors: List[QuantityError] = []

    def _transform_regex(self, regex: peggie.Regex) -> peggie.Regex:
        return regex

    def _part(
        self,
        kind: NodeKind,
        start: int,
        end: int,
        children: Sequence[QuantityPart] = (),
    ) -> QuantityPart:
        return QuantityPart(
            kind, start + self.offset, end + self.offset, None, children
        )

    def integer(self, _pt: peggie.ParseTree, regex: peggie.Regex) -> QuantityPart:
        part = self._part(NodeKind.integer, regex.start, regex.end)
        if len(regex.string) > 1 and regex.string.startswith("0"):
            self.errors.append(
                QuantityError(
                    part.start,
                    part.end,
                    f"Number '{regex.string}' has a superfluous leading zero.",
                )
            )
        return part

    def digits(self, _pt: peggie.ParseTree, regex: peggie.Regex) -> QuantityPart:
        return self._part(NodeKind.fractional_digits, regex.start, regex.end)

    def fraction(self, _pt: peggie.ParseTree, children: Any) -> QuantityPart:
        numerator, _sp1, _slash, _sp2, denominator = cast(List[QuantityPart], children)
        return QuantityPart(
            NodeKind.fraction,
            numerator.start,
            denominator.end,
            None,
            (
                numerator._replace(field="numerator"),
                denominator._replace(field="denominator"),
            ),
        )

    def mixed_fraction(self, _pt: peggie.ParseTree, children: Any) -> QuantityPart:
        whole, _sp, fraction = cast(List[QuantityPart], children)
        return QuantityPart(
            NodeKind.mixed_fraction,
            whole.start,
            fraction.end,
            None,
            (whole._replace(field="whole"),) + tuple(fraction.children),
        )

    def decimal(self, _pt: peggie.ParseTree, children: Any) -> QuantityPart:
        integer_part, _dot, fractional_part = cast(List[QuantityPart], children)
        return QuantityPart(
            NodeKind.decimal,
            integer_part.start,
            fractional_part.end,
            None,
            (
                integer_part._replace(field="integer_part"),
                fractional_part._replace(field="fractional_part"),
            ),
        )

    def number(self, _pt: peggie.ParseTree, children: Any) -> QuantityPart:
        part, _eoi = children
        part = cast(QuantityPart, part)
        if self.errors:
            # Leading zeros: keep the literal as text
            return QuantityPart(NodeKind.text_quantity, part.start, part.end)
        else:
            return part

    def malformed_number(self, _pt: peggie.ParseTree, children: Any) -> QuantityPart:
        regex, _eoi = children
        part = self._part(NodeKind.text_quantity, regex.start, regex.end)
        self.errors.append(
            QuantityError(
                part.start,
                part.end,
                f"'{regex.string}' is not a valid number, fraction or decimal.",
            )
        )
        return part

    def text(self, _pt: peggie.ParseTree, regex: peggie.Regex) -> QuantityPart:
        return self._part(NodeKind.text_quantity, regex.start, regex.end)

    def quantity(self, _pt: peggie.ParseTree, part: QuantityPart) -> QuantityPart:
        return part._replace(field="quantity")


def classify(text: str, offset: int = 0) -> Classification:
    """
    Classify a (non-empty, whitespace-trimmed) quantity literal. The literal
    is assumed to start at ``offset`` in the recipe source and all positions
    in the result are given relative to the recipe source.

    Literals are classified, in order of priority, as a mixed fraction
    (``1 1/2``), fraction (``1/2``), decimal (``1.5``), integer (``1``) or
    otherwise free text (``a pinch``). Numeric-looking literals which match
    none of these (e.g. ``1.2.3``) or have superfluous leading zeros (e.g.
    ``007``) are classified as text and reported in
    :py:attr:`Classification.errors`.
    """
    parser = Parser(grammar)
    parse_tree = parser.parse(text)
    transformer = QuantityTransformer(offset)
    part = cast(QuantityPart, transformer.transform(parse_tree))
    return Classification(part, transformer.errors)
