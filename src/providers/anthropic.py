"""Anthropic Claude adapter (messages API)."""

import anthropic as anthropic_sdk

from src.providers.base import SDKProvider


class AnthropicProvider(SDKProvider):
    def _make_client(self, api_key: str) -> anthropic_sdk.AsyncAnthropic:
        return anthropic_sdk.AsyncAnthropic(api_key=api_key)

    async def _complete(self, prompt: str) -> tuple[str | None, int | None]:
        response = await self._client.messages.create(
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        # Only text blocks count; anything else is dropped.
        text = "\n".join(b.text for b in (response.content or []) if b.type == "text")
        tokens = None
        if response.usage:
            tokens = response.usage.input_tokens + response.usage.output_tokens
        return text, tokens
