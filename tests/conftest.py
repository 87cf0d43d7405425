"""Pytest configuration and fixtures for Flux tests."""

import pytest

from flux import DictLoader, Environment


@pytest.fixture
def env():
    """Create a basic lenient Flux Environment."""
    return Environment()


@pytest.fixture
def strict_env():
    """Create a Flux Environment in strict mode."""
    return Environment(strict=True)


@pytest.fixture
def templates():
    """Template sources shared by the loader-backed fixtures."""
    return {
        "layouts.app": (
            "<html><head><title>@yield('title', 'Flux')</title></head>"
            "<body>@yield('content')</body></html>"
        ),
        "pages.home": (
            "@extends('layouts.app')"
            "@section('title')Home@endsection"
            "@section('content')<h1>Hello {{ name }}</h1>@endsection"
        ),
        "partials.greeting": "Hi {{ name }}",
        "components.card": '<div class="card"><h2>{{ title }}</h2>{{ slot }}</div>',
        "components.badge": '<span class="badge">{{ label }}</span>',
    }


@pytest.fixture
def env_with_loader(templates):
    """Create a Flux Environment with DictLoader and test templates."""
    return Environment(loader=DictLoader(templates))


@pytest.fixture
def render(env):
    """Render template source with the lenient environment."""

    def _render(source: str, **context):
        return env.render_string(source, **context)

    return _render
