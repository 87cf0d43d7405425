"""Tests for RenderContext isolation and depth tracking."""

from __future__ import annotations

import threading

import pytest

from flux import (
    Environment,
    RecursionLimitExceededError,
    RenderContext,
    TemplateRuntimeError,
    get_render_context,
    get_render_context_required,
    render_context,
)


class TestRenderContext:
    def test_child_context(self) -> None:
        parent = RenderContext(template_name="pages.home", line=7, depth=1, max_depth=5)
        child = parent.child_context("partials.nav")
        assert child.template_name == "partials.nav"
        assert child.depth == 2
        assert child.max_depth == 5
        assert child.line == 0
        assert child.template_stack == [("pages.home", 7)]
        assert parent.template_stack == []

    def test_child_skips_unknown_line(self) -> None:
        child = RenderContext(template_name="a").child_context("b")
        assert child.template_stack == []

    def test_check_depth(self) -> None:
        RenderContext(depth=1, max_depth=2).check_depth("x")
        with pytest.raises(RecursionLimitExceededError, match="'x'"):
            RenderContext(depth=2, max_depth=2).check_depth("x")

    def test_context_manager_restores(self) -> None:
        assert get_render_context() is None
        with render_context(template_name="outer") as outer:
            assert get_render_context() is outer
            with render_context(template_name="inner") as inner:
                assert get_render_context() is inner
            assert get_render_context() is outer
        assert get_render_context() is None

    def test_required_outside_render(self) -> None:
        with pytest.raises(RuntimeError, match="Not in a render context"):
            get_render_context_required()


class TestDuringRender:
    """Callbacks observe the render in progress."""

    def test_callback_sees_template_and_line(self, env: Environment) -> None:
        seen = []

        def probe(attributes, slot):
            ctx = get_render_context()
            seen.append((ctx.template_name, ctx.line, ctx.depth))
            return ""

        env.components["probe"] = probe
        env.from_string("a\n\n<x-probe/>", name="pages.probe").render()
        assert seen == [("pages.probe", 3, 0)]
        assert get_render_context() is None

    def test_context_reset_after_error(self, env: Environment) -> None:
        with pytest.raises(TemplateRuntimeError):
            env.render_string("{{ 1 / 0 }}")
        assert get_render_context() is None

    def test_threads_isolated(self, env: Environment) -> None:
        template = env.from_string(
            "@foreach(items as item){{ tag(item) }}@endforeach", name="pages.threaded"
        )
        env.functions["tag"] = lambda item: f"{get_render_context().template_name}:{item};"
        results: dict[int, str] = {}

        def work(n: int) -> None:
            results[n] = template.render(items=range(n))

        threads = [threading.Thread(target=work, args=(n,)) for n in range(1, 6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        for n, result in results.items():
            assert result == "".join(f"pages.threaded:{i};" for i in range(n))
