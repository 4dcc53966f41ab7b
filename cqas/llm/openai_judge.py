"""OpenAI-backed behavior judge."""

import logging

from openai import AsyncOpenAI

from cqas.config import Settings
from cqas.engine.prompts import build_evaluation_prompt
from cqas.errors import ConfigurationError

logger = logging.getLogger(__name__)


class OpenAIJudge:
    """Asks a chat completion model whether a transcript complies with one behavior."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None):
        self.settings = settings
        self._client = client

    def check_configured(self) -> None:
        """Raise ConfigurationError when no client can be built."""
        if self._client is None and not self.settings.openai_api_key:
            raise ConfigurationError("OpenAI API key is not configured")

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-load OpenAI client. Retries are handled by the evaluator."""
        if self._client is None:
            self.check_configured()
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def evaluate(
        self,
        system_instructions: str,
        rubric_name: str,
        description: str | None,
        criteria_text: str | None,
        transcript_text: str,
    ) -> str:
        """Return the model's raw answer text."""
        prompt = build_evaluation_prompt(rubric_name, description, criteria_text, transcript_text)
        response = await self.client.chat.completions.create(
            model=self.settings.openai_model,
            messages=[
                {"role": "system", "content": system_instructions},
                {"role": "user", "content": prompt},
            ],
            temperature=self.settings.openai_temperature,
        )
        content = response.choices[0].message.content or ""
        logger.debug("Raw model result for %s: %s", rubric_name, content)
        return content
