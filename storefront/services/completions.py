import httpx

from storefront.errors import CompletionError


class CompletionClient:
    """Chat-completion endpoint, treated as an opaque text generator."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        max_tokens: int = 150,
        base_url: str = "https://api.openai.com/v1",
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self._client = client or httpx.AsyncClient(timeout=15.0)

    async def complete(self, messages: list[dict]) -> str:
        """Send ``[{role, content}, ...]`` and return the first choice's text."""
        if not self.api_key:
            raise CompletionError("OpenAI API key is missing. Please check your .env file.")
        try:
            response = await self._client.post(
                self.url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json={
                    "model": self.model,
                    "messages": messages,
                    "max_tokens": self.max_tokens,
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CompletionError(f"Completion request failed: {exc}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError("Malformed completion response") from exc
        if not isinstance(content, str):
            raise CompletionError("Malformed completion response")
        return content

    async def close(self):
        await self._client.aclose()
