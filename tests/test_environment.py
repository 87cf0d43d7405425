"""Tests for the Environment: configuration, caching and template loading."""

from __future__ import annotations

import gc
import logging

import pytest

from flux import DictLoader, Environment, TemplateNotFoundError, TemplateSyntaxError
from flux.compiler import compile_template
from flux.environment import TemplateCache


class TestConfiguration:
    def test_defaults(self) -> None:
        env = Environment()
        assert env.loader is None
        assert env.strict is False
        assert env.max_depth == 50
        assert env.max_loop_iterations == 10_000
        assert env.component_prefix == "components"
        assert env.auto_reload is True

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_depth": 0}, {"max_loop_iterations": 0}, {"cache_size": 0}],
    )
    def test_invalid_bounds(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            Environment(**kwargs)

    def test_default_functions_present(self, env: Environment) -> None:
        for name in ("upper", "lower", "len", "count", "join", "default", "number_format", "e"):
            assert name in env.functions


class TestCompiledCache:
    """Compiled templates are cached by source content."""

    def test_same_source_compiled_once(self, env: Environment) -> None:
        first = env.compile("Hello {{ name }}")
        second = env.compile("Hello {{ name }}")
        assert first is second
        assert env.cache.info() == {"size": 1, "maxsize": None, "hits": 1, "misses": 1}

    def test_shared_across_names(self, env: Environment) -> None:
        a = env.from_string("same", name="a")
        b = env.from_string("same", name="b")
        assert a is not b
        assert a.compiled is b.compiled
        assert (a.name, b.name) == ("a", "b")

    def test_different_source_different_entry(self, env: Environment) -> None:
        assert env.compile("a") is not env.compile("b")
        assert len(env.cache) == 2

    def test_syntax_errors_not_cached(self, env: Environment) -> None:
        for _ in range(2):
            with pytest.raises(TemplateSyntaxError):
                env.compile("@if(x)")
        assert env.cache.info()["size"] == 0
        assert env.cache.info()["misses"] == 2

    def test_eviction_oldest_first(self) -> None:
        env = Environment(cache_size=2)
        env.compile("a")
        env.compile("b")
        env.compile("c")
        assert len(env.cache) == 2
        assert "a" not in env.cache
        assert "b" in env.cache and "c" in env.cache

    def test_clear(self, env_with_loader: Environment) -> None:
        template = env_with_loader.get_template("partials.greeting")
        env_with_loader.clear_cache()
        assert env_with_loader.cache.info() == {"size": 0, "maxsize": None, "hits": 0, "misses": 0}
        assert env_with_loader.get_template("partials.greeting") is not template

    def test_deterministic_python_source(self) -> None:
        source = "@foreach(items as item)@if(loop.first){{ item }}@endif@endforeach"
        assert (
            Environment().from_string(source).python_source
            == Environment().from_string(source).python_source
        )

    def test_standalone_cache(self) -> None:
        cache = TemplateCache(maxsize=1)
        compiled = cache.get_or_compile("x", compile_template)
        assert cache.get("x") is compiled
        assert cache.get("y") is None


class TestGetTemplate:
    def test_returns_same_template_when_unchanged(self, env_with_loader: Environment) -> None:
        first = env_with_loader.get_template("partials.greeting")
        assert env_with_loader.get_template("partials.greeting") is first

    def test_metadata(self, env_with_loader: Environment) -> None:
        template = env_with_loader.get_template("partials.greeting")
        assert template.name == "partials.greeting"
        assert template.filename is None

    def test_no_loader(self, env: Environment) -> None:
        with pytest.raises(TemplateNotFoundError, match="no loader configured"):
            env.get_template("pages.home")

    def test_missing(self, env_with_loader: Environment) -> None:
        with pytest.raises(TemplateNotFoundError, match="partials.nope"):
            env_with_loader.get_template("partials.nope")

    def test_syntax_error_named(self) -> None:
        env = Environment(loader=DictLoader({"pages.bad": "ok\n@endif"}))
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.get_template("pages.bad")
        assert exc_info.value.name == "pages.bad"
        assert exc_info.value.lineno == 2


class TestAutoReload:
    """Changed loader source is picked up on the next get_template."""

    def test_reload(self, caplog) -> None:
        sources = {"page": "one"}
        env = Environment(loader=DictLoader(sources))
        assert env.render("page") == "one"
        sources["page"] = "two"
        with caplog.at_level(logging.DEBUG, logger="flux.environment.core"):
            assert env.render("page") == "two"
        assert any("changed, recompiling" in r.getMessage() for r in caplog.records)

    def test_reload_from_disk(self, tmp_path) -> None:
        from flux import FileSystemLoader

        path = tmp_path / "page.flux"
        path.write_text("v1")
        env = Environment(loader=FileSystemLoader(tmp_path))
        assert env.render("page") == "v1"
        path.write_text("v2")
        assert env.render("page") == "v2"

    def test_disabled(self) -> None:
        calls = []
        sources = {"page": "one"}

        def load(name):
            calls.append(name)
            return sources.get(name)

        from flux import FunctionLoader

        env = Environment(loader=FunctionLoader(load), auto_reload=False)
        assert env.render("page") == "one"
        sources["page"] = "two"
        assert env.render("page") == "one"
        assert calls == ["page"]


class TestRenderShortcuts:
    def test_render(self, env_with_loader: Environment) -> None:
        assert env_with_loader.render("partials.greeting", {"name": "Ada"}) == "Hi Ada"

    def test_render_string(self, env: Environment) -> None:
        assert env.render_string("{{ a }}{{ b }}", {"a": 1}, b=2) == "12"

    def test_context_keys_named_like_parameters(self, env_with_loader: Environment) -> None:
        """``name`` and ``source`` are ordinary context variables."""
        assert env_with_loader.render("partials.greeting", name="Ada") == "Hi Ada"
        assert (
            env_with_loader.render_string("{{ name }}/{{ source }}", name="Ada", source="db")
            == "Ada/db"
        )


class TestLifetime:
    def test_template_after_environment_collected(self) -> None:
        env = Environment()
        template = env.from_string("x")
        del env
        gc.collect()
        with pytest.raises(RuntimeError, match="garbage collected"):
            template.render()
