from __future__ import annotations

import logging
import os

from quizsmith.providers.base import LLMProvider

log = logging.getLogger("quizsmith.llm")


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions, or any server speaking the same API via *base_url*."""

    def __init__(self, model: str = "gpt-4o-mini", base_url: str | None = None, timeout: float = 45.0):
        import openai
        # No SDK retries: the caller bounds the whole call and falls back on failure
        self.client = openai.AsyncOpenAI(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            base_url=base_url or None,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

    async def generate(self, prompt: str, temperature: float = 0.4, system: str | None = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        log.info("── PROMPT (%s, %d chars) ──", self.model, len(prompt))
        resp = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=messages,
        )
        content = resp.choices[0].message.content or ""
        log.debug("%.2000s", content)
        return content

    def name(self) -> str:
        return f"openai/{self.model}"
