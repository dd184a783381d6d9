import re

# Whitespace as browsers and Node see it (ECMAScript WhiteSpace and LineTerminator):
# includes U+FEFF, excludes the U+001C..U+001F separators and U+0085.
JS_WHITESPACE = r"\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
_WHITESPACE_RUN_RE = re.compile(f"[{JS_WHITESPACE}]+")
_EDGE_WHITESPACE_RE = re.compile(f"\\A[{JS_WHITESPACE}]+|[{JS_WHITESPACE}]+\\Z")


def trim(text: str) -> str:
    return _EDGE_WHITESPACE_RE.sub("", text)


def count_words(text: str) -> int:
    trimmed = trim(text)
    if not trimmed:
        return 0
    return len(_WHITESPACE_RUN_RE.split(trimmed))
