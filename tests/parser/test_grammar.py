import pytest

from typing import List, Tuple

import logging

from textwrap import dedent

from cooklang_parser.recipe import Span

from cooklang_parser.diagnostics import ErrorKind as E

from cooklang_parser.parser import parse
from cooklang_parser.parser.syntax import NodeKind as K


AMOUNT_WITH_UNIT = "(quantity_block amount: (amount quantity: (integer) unit: (units)))"


@pytest.mark.parametrize(
    "source, exp_sexp",
    [
        # Empty documents
        ("", "(recipe)"),
        ("\n  \n\n", "(recipe)"),
        # Plain steps
        ("Mix well.", "(recipe (step (plain_text)))"),
        # References
        (
            "Add @flour{2%cups} to bowl.",
            "(recipe (step (plain_text)"
            f" (ingredient name: (ingredient_text) {AMOUNT_WITH_UNIT}) (plain_text)))",
        ),
        (
            "Heat #pan.",
            "(recipe (step (plain_text) (cookware name: (cookware_text))"
            " (plain_text)))",
        ),
        (
            "~rest{10%minutes}",
            f"(recipe (step (timer name: (timer_text) {AMOUNT_WITH_UNIT})))",
        ),
        ("Wait ~", "(recipe (step (plain_text) (timer)))"),
        (
            "@./Sauce{}",
            "(recipe (step (ingredient name: (recipe_reference) (quantity_block))))",
        ),
        (
            "@flour(sifted)",
            "(recipe (step (ingredient name: (ingredient_text) note: (note_text))))",
        ),
        # Quantity forms
        (
            "@flour{1 1/2}",
            "(recipe (step (ingredient name: (ingredient_text) (quantity_block"
            " amount: (amount quantity: (mixed_fraction whole: (integer)"
            " numerator: (integer) denominator: (integer)))))))",
        ),
        (
            "@flour{1/2}",
            "(recipe (step (ingredient name: (ingredient_text) (quantity_block"
            " amount: (amount quantity: (fraction numerator: (integer)"
            " denominator: (integer)))))))",
        ),
        (
            "@flour{0.5%kg}",
            "(recipe (step (ingredient name: (ingredient_text) (quantity_block"
            " amount: (amount quantity: (decimal integer_part: (integer)"
            " fractional_part: (fractional_digits)) unit: (units))))))",
        ),
        (
            "@salt{a pinch}",
            "(recipe (step (ingredient name: (ingredient_text) (quantity_block"
            " amount: (amount quantity: (text_quantity))))))",
        ),
        # Line-level constructs
        (
            ">> servings: 4",
            "(recipe (metadata key: (metadata_key) value: (metadata_value)))",
        ),
        (">> servings:\n", "(recipe (metadata key: (metadata_key)))"),
        ("== Dough ==", "(recipe (section header: (section_header)))"),
        ("==", "(recipe (section))"),
        ("> Serve warm.", "(recipe (note content: (note_text)))"),
        (">", "(recipe (note))"),
        # Comments
        ("-- comment", "(recipe (step (comment)))"),
        ("[- comment -]", "(recipe (step (block_comment)))"),
        (
            "Salt -- to taste\nStir",
            "(recipe (step (plain_text) (comment) (line_break) (plain_text)))",
        ),
        # Frontmatter
        (
            "---\ntitle: Pie\n---\nMix.",
            "(recipe (frontmatter content: (yaml_content)) (step (plain_text)))",
        ),
        ("---\n---\nMix.", "(recipe (frontmatter) (step (plain_text)))"),
        # Steps are paragraphs
        (
            "Mix\nstir\n\nBake",
            "(recipe (step (plain_text) (line_break) (plain_text))"
            " (step (plain_text)))",
        ),
        (
            "Mix\n@salt",
            "(recipe (step (plain_text) (line_break)"
            " (ingredient name: (ingredient_text))))",
        ),
        # ...which end at line-level constructs
        (
            "Mix\n> note\nBake",
            "(recipe (step (plain_text)) (note content: (note_text))"
            " (step (plain_text)))",
        ),
        (
            "Mix\n>> key: value\n= Section\nBake",
            "(recipe (step (plain_text))"
            " (metadata key: (metadata_key) value: (metadata_value))"
            " (section header: (section_header)) (step (plain_text)))",
        ),
    ],
)
def test_tree_shape(source: str, exp_sexp: str) -> None:
    tree = parse(source)
    assert tree.sexp() == exp_sexp
    assert tree.diagnostics == ()


@pytest.mark.parametrize(
    "source, exp_diagnostics, exp_node_kind",
    [
        (
            "@flour{2%cups",
            [(E.unterminated_quantity_block, Span(6, 7))],
            K.quantity_block,
        ),
        ("@flour(sifted", [(E.unterminated_note, Span(6, 7))], K.ingredient),
        (
            "Mix [- never closed",
            [(E.unterminated_block_comment, Span(4, 6))],
            K.block_comment,
        ),
        ("---\na: b\n", [(E.unterminated_frontmatter, Span(0, 3))], K.frontmatter),
        ("@flour{007%g}", [(E.malformed_number, Span(7, 10))], K.text_quantity),
        ("@flour{1.2.3}", [(E.malformed_number, Span(7, 12))], K.text_quantity),
        ("@flour{%g}", [(E.malformed_number, Span(7, 8))], K.quantity_block),
        (">> servings:", [(E.unexpected_end_of_input, Span(11, 12))], K.metadata),
    ],
)
def test_diagnostics(
    source: str, exp_diagnostics: List[Tuple[E, Span]], exp_node_kind: K
) -> None:
    tree = parse(source)
    assert [(d.kind, d.span) for d in tree.diagnostics] == exp_diagnostics

    # Attributed to the nearest enclosing node
    for diagnostic in tree.diagnostics:
        assert diagnostic.node is not None
        node = tree[diagnostic.node]
        assert node.kind is exp_node_kind
        assert node.start <= diagnostic.span.start
        assert diagnostic.span.end <= node.end


def test_diagnostics_in_source_order() -> None:
    tree = parse("@a{1.2.3}\n\n@b(unclosed\n\n@c{00}")
    assert [d.kind for d in tree.diagnostics] == [
        E.malformed_number,
        E.unterminated_note,
        E.malformed_number,
    ]


def test_recovery_at_line_boundary() -> None:
    source = dedent(
        """
        Add @flour{2%cups

        Stir in @salt{1%tsp}.
        >> servings: 4
    """
    ).strip()
    tree = parse(source)

    assert [d.kind for d in tree.diagnostics] == [E.unterminated_quantity_block]
    assert tree.sexp() == (
        "(recipe"
        f" (step (plain_text) (ingredient name: (ingredient_text) {AMOUNT_WITH_UNIT}))"
        " (step (plain_text)"
        f" (ingredient name: (ingredient_text) {AMOUNT_WITH_UNIT}) (plain_text))"
        " (metadata key: (metadata_key) value: (metadata_value)))"
    )


def test_unterminated_frontmatter_swallows_document() -> None:
    tree = parse("---\n@flour\n\n>> a: b\n")
    assert tree.sexp() == "(recipe (frontmatter content: (yaml_content)))"
    content = tree.child_by_field(tree.children(tree.root)[0], "content")
    assert content is not None
    assert tree.text(content) == "@flour\n\n>> a: b\n"


@pytest.mark.parametrize(
    "source, field, exp_text",
    [
        ("@olive oil{2%tbsp}", "name", "olive oil"),
        ("@./Components/Sauce {2%cups}", "name", "./Components/Sauce"),
        ("~{ 5 % minutes }", "unit", "minutes"),
        ("~{ 5 % minutes }", "quantity", "5"),
        ("@flour(sifted (twice))", "note", "sifted (twice)"),
        (">>  source :  Grandma  ", "value", "Grandma"),
        (">>  source :  Grandma  ", "key", "source"),
        ("==  Dough  ==", "header", "Dough"),
        ("  >   Serve warm.  ", "content", "Serve warm."),
    ],
)
def test_field_spans(source: str, field: str, exp_text: str) -> None:
    tree = parse(source)
    matches = [index for index in tree.walk() if tree[index].field == field]
    assert len(matches) == 1
    assert tree.text(matches[0]) == exp_text


def test_root_covers_source() -> None:
    source = "Mix.\n\n\n"
    tree = parse(source)
    assert tree[tree.root].kind is K.recipe
    assert tree[tree.root].span == Span(0, len(source))
    assert tree.parent(tree.root) is None


def test_recovery_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="cooklang_parser.parser"):
        parse("@flour{2%cups\n@salt(fine")
    messages = [record.getMessage() for record in caplog.records]
    assert any("unterminated_quantity_block" in m for m in messages)
    assert any("unterminated_note" in m for m in messages)
    assert any("2 diagnostic(s)" in m for m in messages)
