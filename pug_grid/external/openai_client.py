"""OpenAI chat completion callable for language-model backends.

:class:`OpenAIChat` satisfies :data:`pug_grid.external.backends.CompleteFn`,
so it can be handed to any of the text-based backends::

    chat = OpenAIChat(model_name="gpt-4o-mini")
    backends = {"navigator": TextDirectionBackend(chat)}
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class OpenAIChat:
    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        max_tokens: int = 512,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model_name = model_name
        self.max_tokens = max_tokens

    async def __call__(self, system_prompt: str, user_prompt: str) -> str:
        """Return the completion text ("" when the model sends no content)."""
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=self.max_tokens,
        )
        content = response.choices[0].message.content or ""
        if response.usage:
            logger.debug(
                "Tokens: prompt=%d completion=%d",
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
            )
        return content
