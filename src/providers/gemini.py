"""Google Gemini adapter via google-genai's async client."""

from google import genai
from google.genai import types as genai_types

from src.providers.base import SDKProvider


class GeminiProvider(SDKProvider):
    def _make_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    async def _complete(self, prompt: str) -> tuple[str | None, int | None]:
        response = await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                max_output_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
            ),
        )
        meta = response.usage_metadata
        return response.text, meta.total_token_count if meta else None
