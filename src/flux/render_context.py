"""Flux RenderContext: per-render state isolated from the data context.

The template name, current line and nesting depth of the render in progress
live in a ContextVar rather than in the user's data mapping, so templates
can freely use any variable name and nested renders (includes, components,
the layout hop) each see their own position for error messages.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field


@dataclass
class RenderContext:
    """Per-render state isolated from user context.

    Thread Safety:
        ContextVars are thread-local by design. Each thread has its own
        RenderContext instance.

    Attributes:
        template_name: Current template name for error messages
        filename: Source file path for error messages
        source: Template source for runtime error snippets
        line: Current line number (updated during render by generated code)
        depth: Include/component/layout nesting depth
        max_depth: Maximum allowed nesting depth
        template_stack: Stack of (template_name, line) for error traces
    """

    template_name: str | None = None
    filename: str | None = None
    source: str | None = None

    # Current source position (updated during render by generated code)
    line: int = 0

    depth: int = 0
    max_depth: int = 50

    # (template_name, line) for every enclosing render, outermost first
    template_stack: list[tuple[str, int]] = field(default_factory=list)

    def check_depth(self, template_name: str) -> None:
        """Check that one more nested render stays within ``max_depth``.

        Raises:
            RecursionLimitExceededError: If depth >= max_depth
        """
        if self.depth >= self.max_depth:
            from flux.environment.exceptions import RecursionLimitExceededError

            raise RecursionLimitExceededError(
                template_name,
                self.max_depth,
                template_stack=self.template_stack,
            )

    def child_context(
        self,
        template_name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
    ) -> RenderContext:
        """Create child context for a nested render with incremented depth.

        Appends the current location to template_stack for error traces.
        """
        new_stack = self.template_stack.copy()
        if self.template_name and self.line > 0:
            new_stack.append((self.template_name, self.line))

        return RenderContext(
            template_name=template_name or self.template_name,
            filename=filename,
            source=source,
            line=0,
            depth=self.depth + 1,
            max_depth=self.max_depth,
            template_stack=new_stack,
        )


# Module-level ContextVar
_render_context: ContextVar[RenderContext | None] = ContextVar(
    "flux_render_context",
    default=None,
)


def get_render_context() -> RenderContext | None:
    """Get current render context (None if not in render)."""
    return _render_context.get()


def get_render_context_required() -> RenderContext:
    """Get current render context, raise if not in render.

    Used by generated code for line tracking.

    Raises:
        RuntimeError: If not in a render context
    """
    ctx = _render_context.get()
    if ctx is None:
        raise RuntimeError("Not in a render context")
    return ctx


@contextmanager
def render_context(
    template_name: str | None = None,
    filename: str | None = None,
    source: str | None = None,
    max_depth: int = 50,
) -> Iterator[RenderContext]:
    """Context manager for render-scoped state.

    Creates a new top-level RenderContext and sets it as the current context
    for the duration of the with block, restoring the previous one on exit.

    Example:
        with render_context(template_name="pages.home") as ctx:
            html = render_func(data, {})
            # ctx.line updated during render for error tracking
    """
    ctx = RenderContext(
        template_name=template_name,
        filename=filename,
        source=source,
        max_depth=max_depth,
    )
    token = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)


def set_render_context(ctx: RenderContext) -> Token[RenderContext | None]:
    """Set a RenderContext and return the reset token.

    Low-level function for nested renders that restore context manually.
    """
    return _render_context.set(ctx)


def reset_render_context(token: Token[RenderContext | None]) -> None:
    """Reset render context using a token from set_render_context."""
    _render_context.reset(token)
