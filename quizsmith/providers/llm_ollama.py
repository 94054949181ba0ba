from __future__ import annotations

import logging
import re
import time

import httpx

from quizsmith.providers.base import LLMProvider

log = logging.getLogger("quizsmith.llm")


class OllamaProvider(LLMProvider):
    def __init__(self, base_url: str = "http://localhost:11434", model: str = "qwen3:8b", timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def generate(self, prompt: str, temperature: float = 0.4, system: str | None = None) -> str:
        log.info("── PROMPT (%s, %d chars) ──", self.model, len(prompt))
        log.debug("%s", prompt)
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "think": False,
            "options": {"temperature": temperature},
        }
        if system:
            body["system"] = system

        t0 = time.monotonic()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/api/generate", json=body)
            resp.raise_for_status()
            data = resp.json()
        elapsed = time.monotonic() - t0
        # Some Qwen3 builds still emit reasoning despite think=False
        response = re.sub(r"<think>.*?</think>", "", data["response"], flags=re.DOTALL).strip()
        log.info("── RESPONSE (%.1fs, %s tokens) ──", elapsed, data.get("eval_count", "?"))
        log.debug("%.2000s", response)
        return response

    def name(self) -> str:
        return f"ollama/{self.model}"
