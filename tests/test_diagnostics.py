import pytest

from cooklang_parser.recipe import Span

from cooklang_parser.diagnostics import Diagnostic, ErrorKind, RecipeSyntaxError


SOURCE = "Mix.\n\nAdd @flour{2%cups\nStir."


@pytest.fixture
def diagnostic() -> Diagnostic:
    return Diagnostic(
        Span(16, 17),
        ErrorKind.unterminated_quantity_block,
        "Quantity block is missing a closing '}'.",
    )


def test_format(diagnostic: Diagnostic) -> None:
    assert diagnostic.format(SOURCE) == (
        "At line 3 column 11:\n"
        "    Add @flour{2%cups\n"
        "              ^\n"
        "Quantity block is missing a closing '}'."
    )


def test_recipe_syntax_error(diagnostic: Diagnostic) -> None:
    error = RecipeSyntaxError.from_diagnostic(SOURCE, diagnostic)
    assert error.line == 3
    assert error.column == 11
    assert error.snippet == "Add @flour{2%cups"
    assert error.diagnostic is diagnostic
    assert str(error) == diagnostic.format(SOURCE)


def test_recipe_syntax_error_is_value_error(diagnostic: Diagnostic) -> None:
    with pytest.raises(ValueError):
        raise RecipeSyntaxError.from_diagnostic(SOURCE, diagnostic)


def test_end_of_input() -> None:
    source = ">> servings:"
    diagnostic = Diagnostic(
        Span(11, 12), ErrorKind.unexpected_end_of_input, "Missing value."
    )
    assert diagnostic.format(source) == (
        "At line 1 column 12:\n"
        "    >> servings:\n"
        "               ^\n"
        "Missing value."
    )


def test_format_counts_columns_in_characters() -> None:
    # The '{' is at byte 13 but character 12
    source = "Crème @flour{2"
    diagnostic = Diagnostic(
        Span(13, 14), ErrorKind.unterminated_quantity_block, "Missing '}'."
    )
    assert diagnostic.format(source) == (
        "At line 1 column 13:\n"
        "    Crème @flour{2\n"
        "                ^\n"
        "Missing '}'."
    )
    assert RecipeSyntaxError.from_diagnostic(source, diagnostic).column == 13
