"""Tests for the Flux parser: block matching, layout rules and tree shape."""

from __future__ import annotations

import pytest

from flux import Environment, ErrorCode, TemplateSyntaxError
from flux.lexer import tokenize
from flux.nodes import Component, Foreach, If, Section, Statements, Template
from flux.parser import Parser, parse


def syntax_error(source: str, name: str | None = None) -> TemplateSyntaxError:
    with pytest.raises(TemplateSyntaxError) as exc_info:
        Environment().from_string(source, name=name)
    return exc_info.value


class TestTreeShape:
    """Parsed trees reflect the template structure."""

    def test_if_node(self) -> None:
        tree = Parser(tokenize("@if(x)yes@elseif(y)maybe@else no@endif")).parse()
        (node,) = tree.body
        assert isinstance(node, If)
        assert node.test.source == "x"
        assert len(node.elif_) == 1
        assert node.elif_[0][0].source == "y"
        assert node.else_[0].value == "no"

    def test_foreach_with_key(self) -> None:
        (node,) = parse(tokenize("@foreach(prices as name => price)x@endforeach")).body
        assert isinstance(node, Foreach)
        assert node.iter.source == "prices"
        assert node.key_target == "name"
        assert node.target == "price"

    def test_layout_and_sections_recorded(self) -> None:
        tree = parse(
            tokenize("@extends('layouts.app')@section('a')x@endsection@section('b')y@endsection")
        )
        assert isinstance(tree, Template)
        assert tree.extends == "layouts.app"
        assert tree.sections == ("a", "b")
        assert all(isinstance(node, Section) for node in tree.body)

    def test_repeated_section_name_recorded_once(self) -> None:
        tree = parse(tokenize("@section('a')1@endsection@section('a')2@endsection"))
        assert tree.sections == ("a",)

    def test_component_attributes_deduplicated(self) -> None:
        (node,) = parse(tokenize('<x-card a="1" a="2" b>slot</x-card>')).body
        assert isinstance(node, Component)
        assert node.attributes == (("a", "2"), ("b", ""))
        assert not node.self_closing
        assert node.body[0].value == "slot"

    def test_php_block_statements(self) -> None:
        (node,) = parse(tokenize("@php a = 1; b += 2\nc++ @endphp")).body
        assert isinstance(node, Statements)
        assert [a.target for a in node.body] == ["a", "b", "c"]


class TestBlockMatching:
    """Unbalanced templates fail at compile time."""

    def test_unclosed_if(self) -> None:
        error = syntax_error("@if(x)A")
        assert "Unclosed '@if' (opened at line 1)" in error.message
        assert error.directive == "@if"
        assert error.code is ErrorCode.UNCLOSED_BLOCK

    def test_unclosed_reports_opener_line(self) -> None:
        error = syntax_error("one\ntwo\n@foreach(items as item)\nbody")
        assert error.lineno == 3
        assert "opened at line 3" in error.message

    def test_stray_closer(self) -> None:
        error = syntax_error("text@endif")
        assert "Unexpected '@endif' with no open block" in error.message
        assert error.code is ErrorCode.UNEXPECTED_DIRECTIVE

    def test_wrong_closer(self) -> None:
        error = syntax_error("@if(x)@foreach(a as b)@endif")
        assert "'@endif' does not close '@foreach' opened at line 1" in error.message

    def test_else_outside_if(self) -> None:
        error = syntax_error("@else")
        assert "'@else'" in error.message

    def test_stray_endphp(self) -> None:
        error = syntax_error("@endphp")
        assert "Unexpected '@endphp'" in error.message

    def test_unclosed_component(self) -> None:
        error = syntax_error("<x-card>body")
        assert "Unclosed '<x-card>'" in error.message

    def test_mismatched_component_close(self) -> None:
        error = syntax_error("<x-card>body</x-panel>")
        assert "'</x-panel>' does not close '<x-card>'" in error.message

    def test_stray_component_close(self) -> None:
        error = syntax_error("</x-card>")
        assert "Unexpected '</x-card>' with no open block" in error.message

    def test_break_outside_loop(self) -> None:
        error = syntax_error("@if(x)@break@endif")
        assert "'@break' used outside of a loop" in error.message

    def test_continue_outside_loop(self) -> None:
        error = syntax_error("@continue")
        assert "'@continue' used outside of a loop" in error.message


class TestLayoutRules:
    """@extends and @section placement rules."""

    def test_nested_sections_rejected(self) -> None:
        error = syntax_error("@section('a')@section('a')x@endsection@endsection")
        assert "Cannot open section 'a' while section 'a'" in error.message
        assert error.code is ErrorCode.NESTED_SECTION

    def test_nested_different_sections_rejected(self) -> None:
        error = syntax_error("@section('outer')\n@section('inner')x@endsection@endsection")
        assert "while section 'outer' (opened at line 1)" in error.message
        assert error.lineno == 2

    def test_extends_only_once(self) -> None:
        error = syntax_error("@extends('a')@extends('b')")
        assert "may appear only once" in error.message
        assert error.code is ErrorCode.INVALID_LAYOUT

    def test_extends_at_top_level(self) -> None:
        error = syntax_error("@if(x)@extends('a')@endif")
        assert "top level" in error.message

    def test_extends_before_endsection(self) -> None:
        error = syntax_error("@section('a')x@endsection@extends('layout')")
        assert "before any '@endsection'" in error.message

    def test_section_name_must_be_literal(self) -> None:
        error = syntax_error("@section(name)x@endsection")
        assert "expects a quoted section name" in error.message

    def test_empty_layout_name(self) -> None:
        error = syntax_error("@extends('')")
        assert "cannot be empty" in error.message


class TestDirectiveArguments:
    """Argument validation for directives."""

    def test_foreach_syntax(self) -> None:
        error = syntax_error("@foreach(items)x@endforeach")
        assert "Expected '@foreach(items as item)'" in error.message

    def test_foreach_key_equals_value(self) -> None:
        error = syntax_error("@foreach(items as a => a)x@endforeach")
        assert "must differ" in error.message

    def test_for_needs_three_parts(self) -> None:
        error = syntax_error("@for(i = 0; i < 3)x@endfor")
        assert "Expected '@for(init; condition; step)'" in error.message

    def test_for_needs_condition(self) -> None:
        error = syntax_error("@for(i = 0; ; i++)x@endfor")
        assert "requires a loop condition" in error.message

    def test_include_argument_count(self) -> None:
        error = syntax_error("@include('a', b, c)")
        assert "expects 1 to 2 argument(s), got 3" in error.message

    def test_include_needs_argument(self) -> None:
        error = syntax_error("@include()")
        assert "expects at least one argument" in error.message

    def test_unknown_http_method(self) -> None:
        error = syntax_error("@method('FETCH')")
        assert "Unknown HTTP method 'FETCH'" in error.message


class TestErrorReporting:
    """Syntax errors name the template, line and column."""

    def test_message_includes_location_and_snippet(self) -> None:
        error = syntax_error("<p>\n  @if(x)\n</p>", name="pages.broken")
        text = str(error)
        assert "pages.broken:2:2" in text
        assert "  @if(x)" in text

    def test_loader_filename_used_in_location(self, tmp_path) -> None:
        from flux import FileSystemLoader

        (tmp_path / "broken.flux").write_text("@if(x)")
        env = Environment(loader=FileSystemLoader(tmp_path))
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.get_template("broken")
        assert exc_info.value.filename == str(tmp_path / "broken.flux")
        assert str(tmp_path / "broken.flux") in str(exc_info.value)

    def test_format_compact_has_code(self) -> None:
        error = syntax_error("@endif")
        assert "F-PAR-001" in error.format_compact()

    def test_format_compact_is_code_and_message(self) -> None:
        error = syntax_error("@endif")
        assert error.format_compact() == f"F-PAR-001: {error}"
