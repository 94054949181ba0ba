from __future__ import annotations

import logging
import os

from quizsmith.providers.base import LLMProvider

log = logging.getLogger("quizsmith.llm")


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514", timeout: float = 45.0, max_tokens: int = 4096):
        import anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
            timeout=timeout,
            max_retries=0,
        )
        self.model = model
        self.max_tokens = max_tokens

    async def generate(self, prompt: str, temperature: float = 0.4, system: str | None = None) -> str:
        kwargs = {}
        if system:
            kwargs["system"] = system
        log.info("── PROMPT (%s, %d chars) ──", self.model, len(prompt))
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        if message.stop_reason == "max_tokens":
            log.warning("Response truncated at %d tokens", self.max_tokens)
        # Replies may interleave non-text blocks; keep only the text
        return "".join(block.text for block in message.content if block.type == "text")

    def name(self) -> str:
        return f"anthropic/{self.model}"
