"""Tests for @extends, @section and @yield."""

from __future__ import annotations

import pytest

from flux import (
    DictLoader,
    Environment,
    Markup,
    NestedLayoutError,
    RecursionLimitExceededError,
    TemplateNotFoundError,
)


def make_env(**templates: str) -> Environment:
    return Environment(loader=DictLoader(templates))


class TestSectionSplicing:
    """Child sections fill the layout's @yield slots."""

    def test_page_in_layout(self, env_with_loader: Environment) -> None:
        result = env_with_loader.render("pages.home", name="Ada")
        assert result == (
            "<html><head><title>Home</title></head>"
            "<body><h1>Hello Ada</h1></body></html>"
        )

    def test_child_text_outside_sections_discarded(self) -> None:
        env = make_env(
            layout="[@yield('body')]",
            page="@extends('layout')ignored@section('body')kept@endsection trailing",
        )
        assert env.render("page") == "[kept]"

    def test_section_content_not_escaped_twice(self) -> None:
        env = make_env(
            layout="@yield('body')",
            page="@extends('layout')@section('body'){{ v }}<br>@endsection",
        )
        assert env.render("page", v="<i>") == "&lt;i&gt;<br>"

    def test_yield_default(self) -> None:
        env = make_env(layout="<title>@yield('title', 'Flux')</title>", page="@extends('layout')")
        assert env.render("page") == "<title>Flux</title>"

    def test_yield_default_escaped(self) -> None:
        env = make_env(layout="@yield('title', fallback)", page="@extends('layout')")
        assert env.render("page", fallback="<Home>") == "&lt;Home&gt;"

    def test_yield_unknown_section_empty(self) -> None:
        env = make_env(layout="[@yield('missing')]", page="@extends('layout')")
        assert env.render("page") == "[]"

    def test_empty_section_overrides_default(self) -> None:
        env = make_env(
            layout="[@yield('title', 'Default')]",
            page="@extends('layout')@section('title')@endsection",
        )
        assert env.render("page") == "[]"

    def test_same_name_section_replaced(self) -> None:
        env = make_env(
            layout="@yield('body')",
            page="@extends('layout')@section('body')one@endsection@section('body')two@endsection",
        )
        assert env.render("page") == "two"

    def test_yield_twice(self) -> None:
        env = make_env(
            layout="@yield('x')|@yield('x')",
            page="@extends('layout')@section('x')X@endsection",
        )
        assert env.render("page") == "X|X"

    def test_sections_with_loops(self) -> None:
        env = make_env(
            layout="<ul>@yield('items')</ul>",
            page=(
                "@extends('layout')@section('items')"
                "@foreach(items as item)<li>{{ item }}</li>@endforeach"
                "@endsection"
            ),
        )
        assert env.render("page", items=[1, 2]) == "<ul><li>1</li><li>2</li></ul>"


class TestLayoutSections:
    """@section inside a template without a layout."""

    def test_emitted_in_place(self, env: Environment) -> None:
        assert env.render_string("a@section('s')B@endsection  c") == "aB  c"

    def test_layout_default_overridden_by_child(self) -> None:
        env = make_env(
            layout="<aside>@section('sidebar')default@endsection</aside>@yield('body')",
            page="@extends('layout')@section('sidebar')custom@endsection",
            bare="@extends('layout')",
        )
        assert env.render("page") == "<aside>custom</aside>"
        assert env.render("bare") == "<aside>default</aside>"


class TestLayoutContext:
    """The layout renders with the data the child was given."""

    def test_layout_sees_child_data(self) -> None:
        env = make_env(
            layout="{{ title }}:@yield('body')",
            page="@extends('layout')@section('body')x@endsection",
        )
        assert env.render("page", title="T") == "T:x"

    def test_child_assignments_do_not_reach_layout(self) -> None:
        env = make_env(
            layout="[{{ flag }}]@yield('body')",
            page="@extends('layout')@section('body')@php(flag = 'set'){{ flag }}@endsection",
        )
        assert env.render("page", flag="orig") == "[orig]set"

    def test_caller_data_untouched(self) -> None:
        env = make_env(
            layout="@yield('b')",
            page="@extends('layout')@section('b')@php(x = 2)@endsection",
        )
        data = {"x": 1}
        env.render("page", data)
        assert data == {"x": 1}


class TestLayoutErrors:
    def test_missing_layout(self) -> None:
        env = make_env(page="@extends('layouts.nope')")
        with pytest.raises(TemplateNotFoundError, match="layouts.nope"):
            env.render("page")

    def test_layout_with_layout_rejected(self) -> None:
        env = make_env(
            base="@yield('body')",
            middle="@extends('base')@section('body')m@endsection",
            page="@extends('middle')@section('body')p@endsection",
        )
        with pytest.raises(NestedLayoutError) as exc_info:
            env.render("page")
        error = exc_info.value
        assert (error.layout, error.parent, error.child) == ("middle", "base", "page")
        assert "'middle'" in str(error)

    def test_middle_template_still_renders(self) -> None:
        env = make_env(
            base="<@yield('body')>",
            middle="@extends('base')@section('body')m@endsection",
        )
        assert env.render("middle") == "<m>"

    def test_layout_hop_counts_toward_depth(self) -> None:
        env = Environment(
            loader=DictLoader({"l": "@include('p')", "p": "partial", "c": "@extends('l')"}),
            max_depth=1,
        )
        assert env.render("l") == "partial"
        with pytest.raises(RecursionLimitExceededError):
            env.render("c")


class TestRenderSections:
    """Template.render_sections returns the section table without the layout hop."""

    def test_section_table(self, env_with_loader: Environment) -> None:
        sections = env_with_loader.get_template("pages.home").render_sections(name="<Ada>")
        assert sections == {"title": "Home", "content": "<h1>Hello &lt;Ada&gt;</h1>"}
        assert all(isinstance(value, Markup) for value in sections.values())

    def test_layout_not_loaded(self) -> None:
        env = make_env(page="@extends('missing')@section('a')A@endsection")
        assert env.get_template("page").render_sections() == {"a": "A"}

    def test_declared_metadata(self, env_with_loader: Environment) -> None:
        template = env_with_loader.get_template("pages.home")
        assert template.layout == "layouts.app"
        assert template.sections == ("title", "content")
