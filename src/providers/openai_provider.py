"""OpenAI chat completions adapter."""

from openai import AsyncOpenAI

from src.providers.base import SDKProvider


class OpenAIProvider(SDKProvider):
    def _make_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key)

    async def _complete(self, prompt: str) -> tuple[str | None, int | None]:
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )
        text = response.choices[0].message.content if response.choices else None
        tokens = response.usage.total_tokens if response.usage else None
        return text, tokens
