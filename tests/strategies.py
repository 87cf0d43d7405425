"""Shared hypothesis strategies for Flux property-based testing.

Provides reusable strategies that generate template inputs at two levels:

- **Lexer**: Plain text and well-formed fragments with echoes and comments
- **Values**: Identifiers, integers and text for rendering properties

Individual test modules compose them into property-specific strategies.
"""

from __future__ import annotations

import keyword

from hypothesis import strategies as st

# ---------------------------------------------------------------------------
# Lexer strategies
# ---------------------------------------------------------------------------

# Plain text that cannot start any Flux markup (no @, {, <)
plain_text = st.text(
    alphabet=st.characters(
        blacklist_categories=("Cs",),  # no surrogates
        blacklist_characters="@{<\x00",
    ),
    min_size=1,
    max_size=200,
)

_identifier = st.from_regex(r"[a-z][a-z0-9_]{0,12}", fullmatch=True).filter(
    lambda s: s not in {"true", "false", "null", "loop"} and not keyword.iskeyword(s)
)

# Valid echoes: {{ identifier }}
flux_echo = _identifier.map(lambda name: f"{{{{ {name} }}}}")

# Valid comments: {{-- text --}}
_comment_body = st.from_regex(r"[a-zA-Z0-9_ ]{0,30}", fullmatch=True)
flux_comment = _comment_body.map(lambda body: f"{{{{-- {body} --}}}}")

# Fragments: plain text interleaved with echoes and comments
template_fragment = st.lists(
    st.one_of(plain_text, flux_echo, flux_comment),
    min_size=1,
    max_size=5,
).map("".join)

# Arbitrary text that might stress the lexer (fuzz-like)
arbitrary_template_source = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=0,
    max_size=300,
)

# Source biased toward Flux markup characters
markup_heavy_source = st.lists(
    st.sampled_from(
        [
            "@",
            "@if(",
            "@endif",
            "@foreach(",
            "@else",
            "@section('a')",
            "@endsection",
            "{{",
            "}}",
            "{!!",
            "!!}",
            "{{--",
            "--}}",
            "<x-",
            "</x-a>",
            "/>",
            ">",
            "(",
            ")",
            "'",
            "x",
            " ",
            "\n",
        ]
    ),
    min_size=0,
    max_size=40,
).map("".join)

# ---------------------------------------------------------------------------
# Value strategies
# ---------------------------------------------------------------------------

safe_identifier = st.sampled_from(
    ["x", "y", "a", "b", "val", "item", "name", "data", "foo", "bar", "num", "text", "total"]
)

safe_integer = st.integers(min_value=-10_000, max_value=10_000)

# Text including HTML special characters
html_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",), blacklist_characters="\x00"),
    min_size=0,
    max_size=80,
)

int_list = st.lists(st.integers(min_value=-1000, max_value=1000), min_size=0, max_size=20)
