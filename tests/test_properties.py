"""Property-based tests for the Flux pipeline.

Uses hypothesis to verify invariants that must hold for *all* inputs:

- Plain text round-trips through tokenization and rendering unchanged
- Arbitrary input either compiles or raises TemplateSyntaxError
- Compilation is deterministic
- ``{{ }}`` output equals html_escape of the value
- Expressions and loops agree with Python
"""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from flux import Environment, TemplateSyntaxError
from flux._types import TokenType
from flux.lexer import tokenize
from flux.utils.html import html_escape

from .strategies import (
    arbitrary_template_source,
    flux_comment,
    flux_echo,
    html_text,
    int_list,
    markup_heavy_source,
    plain_text,
    safe_identifier,
    safe_integer,
    template_fragment,
)


class TestLexerProperties:
    """Tokenization invariants."""

    @given(source=plain_text)
    @settings(max_examples=200)
    def test_plain_text_single_data_token(self, source: str) -> None:
        (token,) = tokenize(source)
        assert token.type is TokenType.DATA
        assert token.value == source

    @given(source=template_fragment)
    @settings(max_examples=200)
    def test_fragments_tokenize(self, source: str) -> None:
        tokens = tokenize(source)
        assert all(t.type in (TokenType.DATA, TokenType.ECHO) for t in tokens)
        assert all(t.lineno >= 1 for t in tokens)


class TestCompileProperties:
    """Compilation never fails with anything but TemplateSyntaxError."""

    @given(source=arbitrary_template_source)
    @settings(max_examples=300)
    def test_arbitrary_source(self, source: str) -> None:
        try:
            Environment().from_string(source)
        except TemplateSyntaxError:
            pass

    @given(source=markup_heavy_source)
    @settings(max_examples=500)
    def test_markup_heavy_source(self, source: str) -> None:
        try:
            Environment().from_string(source)
        except TemplateSyntaxError:
            pass

    @given(source=template_fragment)
    @settings(max_examples=100)
    def test_deterministic(self, source: str) -> None:
        first = Environment().from_string(source)
        second = Environment().from_string(source)
        assert first.python_source == second.python_source


class TestRenderProperties:
    """Rendered output agrees with the data and with Python."""

    @given(source=plain_text)
    @settings(max_examples=200)
    def test_plain_text_renders_unchanged(self, source: str) -> None:
        assert Environment().render_string(source) == source

    @given(pieces=st.lists(st.one_of(plain_text, flux_echo, flux_comment), min_size=1, max_size=6))
    @settings(max_examples=200)
    def test_missing_values_render_empty(self, pieces: list[str]) -> None:
        expected = "".join(p for p in pieces if not p.startswith("{{"))
        assert Environment().render_string("".join(pieces)) == expected

    @given(value=html_text)
    @settings(max_examples=200)
    def test_escaped_output(self, value: str) -> None:
        env = Environment()
        assert env.render_string("{{ v }}", v=value) == html_escape(value)
        assert env.render_string("{!! v !!}", v=value) == value

    @given(name=safe_identifier, value=safe_integer)
    def test_variable_lookup(self, name: str, value: int) -> None:
        assert Environment().render_string(f"{{{{ {name} }}}}", **{name: value}) == str(value)

    @given(a=safe_integer, b=safe_integer)
    def test_arithmetic(self, a: int, b: int) -> None:
        env = Environment()
        assert env.render_string("{{ a + b }}|{{ a * b - a }}", a=a, b=b) == f"{a + b}|{a * b - a}"
        assert env.render_string("@if(a < b)lt@else ge@endif", a=a, b=b) == (
            "lt" if a < b else "ge"
        )

    @given(items=int_list)
    def test_foreach(self, items: list[int]) -> None:
        source = "@foreach(items as item){{ item }},@endforeach"
        assert Environment().render_string(source, items=items) == "".join(f"{i}," for i in items)

    @given(items=int_list)
    def test_loop_metadata(self, items: list[int]) -> None:
        source = "@foreach(items as item){{ loop.iteration }}/{{ loop.count }} @endforeach"
        expected = "".join(f"{n}/{len(items)} " for n in range(1, len(items) + 1))
        assert Environment().render_string(source, items=items) == expected

    @given(stop=st.integers(min_value=0, max_value=50))
    def test_for_matches_range(self, stop: int) -> None:
        source = "@for(i = 0; i < stop; i++){{ i }} @endfor"
        assert Environment().render_string(source, stop=stop) == "".join(
            f"{i} " for i in range(stop)
        )
