"""Tests for template expressions: evaluation and the sandbox."""

from __future__ import annotations

import ast
from types import SimpleNamespace

import pytest

from flux import Environment, ErrorCode, ExpressionEvaluationError, TemplateSyntaxError
from flux.parser import parse_assignments, parse_expression
from flux.parser.expressions import split_top_level


class TestEvaluation:
    """Expressions evaluate with Python semantics over the data context."""

    @pytest.mark.parametrize(
        ("source", "context", "expected"),
        [
            ("{{ 1 + 2 * 3 }}", {}, "7"),
            ("{{ 7 // 2 }}-{{ 7 % 2 }}", {}, "3-1"),
            ("{{ -n }}", {"n": 4}, "-4"),
            ("{{ 'yes' if flag else 'no' }}", {"flag": True}, "yes"),
            ("{{ 'yes' if flag else 'no' }}", {"flag": False}, "no"),
            ("{{ a and b }}", {"a": 1, "b": 2}, "2"),
            ("{{ a or b }}", {"a": 0, "b": "fallback"}, "fallback"),
            ("{{ not a }}", {"a": []}, "True"),
            ("{{ 'x' in names }}", {"names": ["x"]}, "True"),
            ("{{ 1 < n <= 3 }}", {"n": 3}, "True"),
        ],
    )
    def test_operators(self, env: Environment, source: str, context: dict, expected: str) -> None:
        assert env.render_string(source, **context) == expected

    def test_true_false_null(self, env: Environment) -> None:
        assert env.render_string("{{ true }}|{{ false }}|{{ null }}") == "True|False|"

    def test_null_comparison(self, env: Environment) -> None:
        assert env.render_string("@if(user == null)none@endif", user=None) == "none"

    def test_mapping_key_access(self, env: Environment) -> None:
        assert env.render_string("{{ user.name }}", user={"name": "Ada"}) == "Ada"

    def test_object_attribute_access(self, env: Environment) -> None:
        user = SimpleNamespace(name="Ada")
        assert env.render_string("{{ user.name }}", user=user) == "Ada"

    def test_mapping_keys_win_over_attributes(self, env: Environment) -> None:
        assert env.render_string("{{ data.items }}", data={"items": [1]}) == "[1]"

    def test_subscripts_and_slices(self, env: Environment) -> None:
        ctx = {"items": [1, 2, 3], "user": {"first name": "Ada"}}
        assert env.render_string("{{ items[0] }}", **ctx) == "1"
        assert env.render_string("{{ items[-1] }}", **ctx) == "3"
        assert env.render_string("{{ items[1:] }}", **ctx) == "[2, 3]"
        assert env.render_string("{{ items[::2] }}", **ctx) == "[1, 3]"
        assert env.render_string("{{ user['first name'] }}", **ctx) == "Ada"

    def test_displays(self, env: Environment) -> None:
        assert env.render_string("{{ [1, 2][1] }}") == "2"
        assert env.render_string("{{ {'a': 5}['a'] }}") == "5"
        assert env.render_string("{{ len((1, 2, 3)) }}") == "3"

    def test_lenient_missing_values_render_empty(self, env: Environment) -> None:
        assert env.render_string("[{{ missing }}]") == "[]"
        assert env.render_string("[{{ missing.deep.chain }}]") == "[]"
        assert env.render_string("[{{ user.email }}]", user={"name": "Ada"}) == "[]"
        assert env.render_string("[{{ items[10] }}]", items=[1]) == "[]"
        assert env.render_string("[{{ none.attr }}]", none=None) == "[]"


class TestFunctionCalls:
    """Only registered functions are callable."""

    def test_builtin_function(self, env: Environment) -> None:
        assert env.render_string("{{ upper(name) }}", name="ada") == "ADA"
        assert env.render_string("{{ len(items) }}", items=[1, 2, 3]) == "3"

    def test_keyword_arguments(self, env: Environment) -> None:
        assert env.render_string("{{ join(items, separator=', ') }}", items=[1, 2]) == "1, 2"

    def test_registered_function(self, env: Environment) -> None:
        env.functions["money"] = lambda value: f"${value:.2f}"
        assert env.render_string("{{ money(3) }}") == "$3.00"

    def test_function_registered_after_compile(self, env: Environment) -> None:
        template = env.from_string("{{ shout(word) }}")
        env.functions["shout"] = lambda s: s.upper() + "!"
        assert template.render(word="hey") == "HEY!"

    def test_unknown_function_raises(self, env: Environment) -> None:
        with pytest.raises(ExpressionEvaluationError) as exc_info:
            env.render_string("{{ uper(name) }}", name="x")
        error = exc_info.value
        assert error.name == "uper"
        assert "Unknown function 'uper'" in str(error)
        assert "Did you mean 'upper'?" in str(error)

    def test_context_callable_is_not_callable(self, env: Environment) -> None:
        with pytest.raises(ExpressionEvaluationError):
            env.render_string("{{ hook() }}", hook=lambda: "ran")


class TestSandbox:
    """Anything outside the whitelist is a TemplateSyntaxError."""

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ("{{ lambda: 1 }}", "Lambda expressions are not allowed"),
            ("{{ [x for x in items] }}", "Comprehensions are not allowed"),
            ("{{ (x for x in items) }}", "Generator expressions are not allowed"),
            ('{{ f"{x}" }}', "F-strings are not allowed"),
            ("{{ (y := 1) }}", "Assignment expressions are not allowed"),
            ("{{ 2 ** 10 }}", r"\*\* operator"),
            ("{{ user.__class__ }}", "private attribute '__class__'"),
            ("{{ user._secret }}", "private attribute '_secret'"),
            ("{{ __import__('os') }}", "private name '__import__'"),
            ("{{ name.upper() }}", "Only registered functions can be called"),
            ("{{ items[0]() }}", "Only registered functions can be called"),
            ("{{ len(*items) }}", "Starred arguments are not allowed"),
            ("{{ f(**kw) }}", r"'\*\*' arguments"),
            ("{{ {**a} }}", r"'\*\*' unpacking"),
            ("{{ x + }}", "Invalid expression"),
            ("@if(x = 1)y@endif", "Invalid expression"),
        ],
    )
    def test_rejected(self, env: Environment, source: str, message: str) -> None:
        with pytest.raises(TemplateSyntaxError, match=message) as exc_info:
            env.from_string(source)
        assert exc_info.value.code is ErrorCode.INVALID_EXPRESSION

    def test_rejection_names_directive(self, env: Environment) -> None:
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.from_string("@if(user.__dict__)x@endif")
        assert exc_info.value.directive == "@if"

    def test_generated_names_are_not_reachable(self, env: Environment) -> None:
        # Single-underscore names resolve against the data context only.
        assert env.render_string("[{{ _append }}|{{ ctx }}|{{ buf }}]") == "[||]"

    @pytest.mark.parametrize(
        "source",
        [
            "{{ max(items, key=store.wipe) }}",
            "{{ min(items, key=store.wipe) }}",
            "{{ max(store.wipe, items) }}",
            "{{ sorted(items, reverse=store.wipe) }}",
        ],
    )
    def test_methods_never_reach_functions(self, env: Environment, source: str) -> None:
        calls = []
        store = {"wipe": lambda *args: calls.append(args)}
        with pytest.raises(ExpressionEvaluationError, match="cannot be passed a callable"):
            env.render_string(source, items=[1, 2], store=store)
        with pytest.raises(ExpressionEvaluationError, match="cannot be passed a callable"):
            env.render_string(source, items=[1, 2], store=SimpleNamespace(**store))
        assert calls == []

    def test_subscripted_method_refused(self, env: Environment) -> None:
        with pytest.raises(ExpressionEvaluationError, match="cannot be passed a callable"):
            env.render_string("{{ count(hooks[0]) }}", hooks=[print])

    def test_plain_data_still_passes(self, env: Environment) -> None:
        assert env.render_string("{{ max(items) }}|{{ min(3, 1) }}", items=[1, 5]) == "5|1"


class TestParseExpression:
    """Direct use of the expression parser."""

    def test_returns_expr_with_source(self) -> None:
        expr = parse_expression("  a + 1  ", 3, 4)
        assert expr.source == "a + 1"
        assert isinstance(expr.tree, ast.BinOp)
        assert (expr.lineno, expr.col_offset) == (3, 4)

    def test_empty(self) -> None:
        with pytest.raises(TemplateSyntaxError, match="Empty expression"):
            parse_expression("   ", 1, 0)


class TestParseAssignments:
    """Sandboxed @php statements."""

    def test_plain_and_augmented(self) -> None:
        first, second = parse_assignments("a = 1; b += 2", 1, 0)
        assert (first.target, first.op, first.value.source) == ("a", None, "1")
        assert second.target == "b"
        assert isinstance(second.op, ast.Add)

    @pytest.mark.parametrize(
        ("source", "op_type"),
        [("i++", ast.Add), ("i--", ast.Sub), ("++i", ast.Add), ("--i", ast.Sub)],
    )
    def test_increment_shorthand(self, source: str, op_type: type) -> None:
        (assign,) = parse_assignments(source, 1, 0)
        assert assign.target == "i"
        assert isinstance(assign.op, op_type)
        assert assign.value.source == "1"

    def test_newline_separated(self) -> None:
        assigns = parse_assignments("a = 1\nb = 'x;y'\n", 1, 0)
        assert [a.target for a in assigns] == ["a", "b"]
        assert assigns[1].value.source == "'x;y'"

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ("a.b = 1", "single name"),
            ("a[0] = 1", "single name"),
            ("a = b = 1", "single name"),
            ("a **= 2", "Unsupported assignment operator"),
            ("print(1)", "Only assignments are allowed"),
            ("_x = 1", "reserved name '_x'"),
            ("loop = 1", "reserved name 'loop'"),
            ("a = (1", "Invalid statement"),
            ("a = lambda: 1", "Lambda expressions are not allowed"),
        ],
    )
    def test_rejected(self, source: str, message: str) -> None:
        with pytest.raises(TemplateSyntaxError, match=message):
            parse_assignments(source, 1, 0)


class TestSplitTopLevel:
    def test_respects_strings_and_brackets(self) -> None:
        assert split_top_level("'a,b', f(1, 2), c", ",") == ["'a,b'", " f(1, 2)", " c"]

    def test_escaped_quote(self) -> None:
        assert split_top_level(r"'it\'s', x", ",") == [r"'it\'s'", " x"]
