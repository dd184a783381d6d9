from humanivio.schemas.humanize import HumanizeResponse
from humanivio.utils.text import count_words, trim


def shape_response(original_text: str, rewritten_text: str | None) -> HumanizeResponse:
    rewritten = trim(rewritten_text or "")
    return HumanizeResponse(
        humanized_text=rewritten,
        original_word_count=count_words(original_text),
        humanized_word_count=count_words(rewritten),
    )
