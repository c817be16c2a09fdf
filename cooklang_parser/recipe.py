r"""
The :py:mod:`cooklang_parser.recipe` module defines the document model a
Cooklang recipe is assembled into.


Overview
========

A recipe document is represented by a :py:class:`Recipe` which holds an
optional block of frontmatter followed by a sequence of blocks. Blocks are
one of:

* :py:class:`Metadata` (``>> servings: 4``)
* :py:class:`Section` (``== Dough ==``)
* :py:class:`Step` (a paragraph of instructions)
* :py:class:`Note` (``> Best served warm.``)
* :py:class:`Comment` and :py:class:`BlockComment` (paragraphs consisting
  only of comments)

A :py:class:`Step` is a sequence of segments: runs of :py:class:`Text`
interleaved with :py:class:`Ingredient`, :py:class:`Cookware` and
:py:class:`Timer` references. For example::

    Add @flour{2%cups} to bowl.

Is represented as (with spans omitted)::

    Step(segments=(
        Text("Add "),
        Ingredient("flour", Amount(Integer(2), "cups")),
        Text(" to bowl."),
    ))

Quantities are never evaluated: a quantity written as ``1 1/2`` is kept as a
:py:class:`MixedFraction` and ``0.50`` as a :py:class:`Decimal` with
fractional digits ``"50"``, leaving any scaling to the caller.


Source spans
============

Every node carries a :py:class:`Span` giving the range of bytes in the UTF-8
encoded source it was produced from. Spans are excluded from equality
comparisons, so documents parsed from differently laid out sources compare
equal when their structure matches.

.. autoclass:: Span
    :members:

Data structures
===============

.. autoclass:: Recipe
    :members:

.. autoclass:: Metadata
.. autoclass:: Section
.. autoclass:: Step
.. autoclass:: Note
.. autoclass:: Comment
.. autoclass:: BlockComment

.. autoclass:: Text
.. autoclass:: Ingredient
    :members:
.. autoclass:: Cookware
    :members:
.. autoclass:: Timer

.. autoclass:: Amount

.. autoclass:: Integer
.. autoclass:: Fraction
.. autoclass:: MixedFraction
.. autoclass:: Decimal
.. autoclass:: TextQuantity
"""

from typing import Optional, Tuple, Union

from dataclasses import dataclass, field


__all__ = [
    "Span",
    "Node",
    "Quantity",
    "Integer",
    "Fraction",
    "MixedFraction",
    "Decimal",
    "TextQuantity",
    "Amount",
    "Segment",
    "Text",
    "Ingredient",
    "Cookware",
    "Timer",
    "Block",
    "Metadata",
    "Section",
    "Step",
    "Note",
    "Comment",
    "BlockComment",
    "Recipe",
]


REFERENCE_PREFIXES = ("./", ".\\")
"""Name prefixes which mark a reference to another recipe file."""


@dataclass(frozen=True)
class Span:
    """A half-open range of byte offsets into the UTF-8 encoded source."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def of(self, source: str) -> str:
        """Return the text covered by this span."""
        return source.encode("utf-8")[self.start : self.end].decode("utf-8")


@dataclass(frozen=True)
class Node:
    """Base class for all document model nodes."""

    span: Span = field(compare=False, repr=False)
    """The source span this node was produced from."""


@dataclass(frozen=True)
class Quantity(Node):
    """Base class for quantity literals."""


@dataclass(frozen=True)
class Integer(Quantity):
    """An integer literal, e.g. ``3``."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Fraction(Quantity):
    """A simple fraction, e.g. ``1/2``."""

    numerator: int
    denominator: int

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


@dataclass(frozen=True)
class MixedFraction(Quantity):
    """A whole number followed by a fraction, e.g. ``1 1/2``."""

    whole: int
    numerator: int
    denominator: int

    def __str__(self) -> str:
        return f"{self.whole} {self.numerator}/{self.denominator}"


@dataclass(frozen=True)
class Decimal(Quantity):
    """A decimal literal, e.g. ``0.25``."""

    integer_part: int

    fractional_part: str
    """
    The digits following the decimal point, verbatim (so that ``0.50`` and
    ``0.5`` remain distinguishable).
    """

    def __str__(self) -> str:
        return f"{self.integer_part}.{self.fractional_part}"


@dataclass(frozen=True)
class TextQuantity(Quantity):
    """A free-form quantity such as ``a pinch``."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Amount(Node):
    """A quantity with an optional unit, e.g. ``2%cups``."""

    quantity: Quantity

    unit: Optional[str] = None
    """The unit given after the ``%``, or None for a unitless amount."""

    def __str__(self) -> str:
        if self.unit is None:
            return str(self.quantity)
        else:
            return f"{self.quantity} {self.unit}"


@dataclass(frozen=True)
class Text(Node):
    """A run of prose within a step."""

    text: str


@dataclass(frozen=True)
class Ingredient(Node):
    """An ingredient reference, e.g. ``@flour{2%cups}(sifted)``."""

    name: str
    """
    The ingredient name. This may contain several words (e.g. ``olive oil``)
    or be a path to another recipe (e.g. ``./Components/Sauce``).
    """

    amount: Optional[Amount] = None

    note: Optional[str] = None
    """The parenthesised note following the ingredient, if any."""

    @property
    def is_reference(self) -> bool:
        """True if this names another recipe file rather than an ingredient."""
        return self.name.startswith(REFERENCE_PREFIXES)


@dataclass(frozen=True)
class Cookware(Node):
    """A cookware reference, e.g. ``#pot``."""

    name: str

    amount: Optional[Amount] = None

    note: Optional[str] = None

    @property
    def is_reference(self) -> bool:
        """True if this names another recipe file rather than cookware."""
        return self.name.startswith(REFERENCE_PREFIXES)


@dataclass(frozen=True)
class Timer(Node):
    """
    A timer, e.g. ``~rest{10%minutes}``. Timers may be anonymous, e.g.
    ``~{5%minutes}``.
    """

    name: Optional[str] = None

    amount: Optional[Amount] = None

    note: Optional[str] = None


Segment = Union[Text, Ingredient, Cookware, Timer]


@dataclass(frozen=True)
class Metadata(Node):
    """A metadata line, e.g. ``>> servings: 4``."""

    key: str
    value: str


@dataclass(frozen=True)
class Section(Node):
    """A section header, e.g. ``== Dough ==``."""

    name: Optional[str] = None
    """The section name, or None for an unnamed section divider (``=``)."""


@dataclass(frozen=True)
class Step(Node):
    """A paragraph of instructions."""

    segments: Tuple[Segment, ...]


@dataclass(frozen=True)
class Note(Node):
    """A note line, e.g. ``> Best served warm.``"""

    text: str


@dataclass(frozen=True)
class Comment(Node):
    """A line comment, e.g. ``-- check seasoning``."""

    text: str


@dataclass(frozen=True)
class BlockComment(Node):
    """A block comment, e.g. ``[- check seasoning -]``."""

    text: str


Block = Union[Metadata, Section, Step, Note, Comment, BlockComment]


@dataclass(frozen=True)
class Recipe(Node):
    """Root of a parsed recipe document."""

    frontmatter: Optional[str] = None
    """
    The verbatim text between the ``---`` delimiter lines at the start of
    the document (including its final newline), or None if the document has
    no frontmatter.
    """

    blocks: Tuple[Block, ...] = ()

    comments: Tuple[Union[Comment, BlockComment], ...] = ()
    """
    Every comment in the document, in source order. Comments found within
    steps are only listed here and are omitted from the step's segments.
    """

    @property
    def metadata(self) -> Tuple[Metadata, ...]:
        return tuple(b for b in self.blocks if isinstance(b, Metadata))

    @property
    def steps(self) -> Tuple[Step, ...]:
        return tuple(b for b in self.blocks if isinstance(b, Step))

    @property
    def ingredients(self) -> Tuple[Ingredient, ...]:
        """All ingredient references, in the order they appear."""
        return tuple(
            segment
            for step in self.steps
            for segment in step.segments
            if isinstance(segment, Ingredient)
        )

    @property
    def cookware(self) -> Tuple[Cookware, ...]:
        """All cookware references, in the order they appear."""
        return tuple(
            segment
            for step in self.steps
            for segment in step.segments
            if isinstance(segment, Cookware)
        )
