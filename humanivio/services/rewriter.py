from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from humanivio.core.config import Settings, get_settings
from humanivio.core.errors import UpstreamErrorKind, UpstreamServiceError, classify_upstream_code
from humanivio.core.logging import get_logger

SYSTEM_PROMPT = """
You are Humanivio, an advanced AI humanizer built to convert AI-generated or robotic text into natural, human-sounding, plagiarism-free writing. Rewrite the given input text so that it:
- Sounds 100% written by a real human.
- Retains the original meaning and tone.
- Uses natural vocabulary and sentence structure.
- Avoids repetitive patterns common in AI writing.
- Flows naturally like human conversation.
Output ONLY the rewritten text without any additional explanations or notes.
""".strip()

# Sampling is tuned towards varied phrasing rather than deterministic output.
MAX_TOKENS = 2000
TEMPERATURE = 0.8
PRESENCE_PENALTY = 0.2
FREQUENCY_PENALTY = 0.3


class RewriteService:
    def __init__(self, settings: Settings | None = None, *, client: Any = None, logger: Any = None) -> None:
        self.settings = settings or get_settings()
        self.model_name = self.settings.openai_model
        self.logger = logger or get_logger(__name__)
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self.settings.openai_api_key:
            self.logger.error("rewrite_credential_missing")
            raise UpstreamServiceError(UpstreamErrorKind.INVALID_CREDENTIAL)

        # No retries: a failed call is reported to the caller straight away.
        self._client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            base_url=self.settings.openai_base_url or None,
            timeout=self.settings.openai_timeout_seconds,
            max_retries=0,
        )
        return self._client

    @staticmethod
    def build_messages(text: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ]

    @staticmethod
    def _extract_content(completion: Any) -> str:
        choices = getattr(completion, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        return content if isinstance(content, str) else ""

    async def rewrite(self, text: str) -> str:
        client = self._get_client()
        try:
            completion = await client.chat.completions.create(
                model=self.model_name,
                messages=self.build_messages(text),
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                presence_penalty=PRESENCE_PENALTY,
                frequency_penalty=FREQUENCY_PENALTY,
            )
        except Exception as exc:
            kind = classify_upstream_code(getattr(exc, "code", None))
            self.logger.exception(
                "rewrite_upstream_failed",
                model=self.model_name,
                kind=kind.value,
                error_type=type(exc).__name__,
            )
            raise UpstreamServiceError(kind) from exc

        return self._extract_content(completion)
