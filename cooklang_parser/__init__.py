"""
A parser for the `Cooklang <https://cooklang.org/>`_ recipe markup language.

Recipes are compiled using :py:func:`cooklang_parser.assembler.compile` into
the data model defined in :py:mod:`cooklang_parser.recipe`. Problems in the
source are reported as :py:mod:`cooklang_parser.diagnostics` rather than
raised, unless :py:func:`cooklang_parser.assembler.compile_strict` is used.

Tooling which needs the concrete syntax (e.g. syntax highlighters) may use
:py:func:`cooklang_parser.parser.parse` directly.
"""
