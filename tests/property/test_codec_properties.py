from __future__ import annotations

from hypothesis import given, settings, strategies as st

from mostpy.omc.codec import moescape, mounescape

_SPECIAL = "\\\"?\a\b\f\n\r\t\v"

# bias generated text towards the escaped characters
_text = st.text(alphabet=st.one_of(st.sampled_from(_SPECIAL), st.characters()), max_size=60)
_plain = st.text(alphabet=st.characters(exclude_characters=_SPECIAL), max_size=60)


@settings(max_examples=200, database=None)
@given(_text)
def test_unescape_inverts_escape(s: str) -> None:
    assert mounescape(moescape(s)) == s


@settings(max_examples=100, database=None)
@given(_plain)
def test_escape_leaves_other_characters_unchanged(s: str) -> None:
    assert moescape(s) == s


@settings(max_examples=100, database=None)
@given(st.text(alphabet=st.characters(exclude_characters="\\"), max_size=60))
def test_unescape_leaves_text_without_backslash_unchanged(s: str) -> None:
    assert mounescape(s) == s


@settings(max_examples=100, database=None)
@given(_text)
def test_escaped_text_has_no_raw_control_characters(s: str) -> None:
    escaped = moescape(s)
    assert not any(c in escaped for c in "\a\b\f\n\r\t\v")
    # every quote in the escaped form is preceded by a backslash
    assert all(escaped[i - 1] == "\\" for i, c in enumerate(escaped) if c == '"')
