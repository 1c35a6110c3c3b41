import re

_DISPLAY_OPEN = re.compile(r"\\\[")
_DISPLAY_CLOSE = re.compile(r"\\\]")
_INLINE_OPEN = re.compile(r"\\\(")
_INLINE_CLOSE = re.compile(r"\\\)")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_delimiters(text: str) -> str:
    """Rewrite \\[ \\] as $$ and \\( \\) as $."""
    text = _DISPLAY_OPEN.sub("$$", text)
    text = _DISPLAY_CLOSE.sub("$$", text)
    text = _INLINE_OPEN.sub("$", text)
    return _INLINE_CLOSE.sub("$", text)


def collapse_blank_lines(text: str) -> str:
    return _BLANK_RUNS.sub("\n\n", text)


def normalize_markup(text: str | None) -> str:
    """Canonical dollar-delimited markup, trimmed. Empty input gives ""."""
    if not text:
        return ""
    return collapse_blank_lines(normalize_delimiters(text)).strip()
