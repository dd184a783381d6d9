from __future__ import annotations

from dataclasses import dataclass

from humanivio.core.errors import InvalidInputError
from humanivio.utils.text import count_words, trim

DEFAULT_MAX_WORDS = 1000


@dataclass
class ValidatedText:
    text: str
    word_count: int


def validate_text(raw: object, *, max_words: int = DEFAULT_MAX_WORDS) -> ValidatedText:
    """Accept non-blank text of at most ``max_words`` whitespace-delimited words.

    The returned text is the caller's input unchanged; only the word count is
    taken from the trimmed value.
    """
    if not isinstance(raw, str) or not trim(raw):
        raise InvalidInputError("Please provide text to humanize")

    word_count = count_words(raw)
    if word_count > max_words:
        raise InvalidInputError(f"Text exceeds {max_words} words limit")

    return ValidatedText(text=raw, word_count=word_count)
