"""
OpenAI client wrapper for the deal analysis pipeline.

Handles:
- Chat completions returning raw text (optionally in JSON-object mode)
- Retry logic with exponential backoff
- Wrapping SDK failures into UpstreamModelError subclasses
"""

from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from ..errors import wrap_model_error


class OpenAIClient:
    """
    Async OpenAI chat client.

    Credentials and model are injected; nothing is read from the environment.
    """

    def __init__(
        self,
        api_key: str,
        chat_model: str = 'gpt-4.1-mini',
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key
            chat_model: Model for chat completions
        """
        if not api_key:
            raise ValueError('OpenAI api_key is required')

        self.chat_model = chat_model
        self._client = AsyncOpenAI(api_key=api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _create_completion(
        self,
        messages: list[dict[str, str]],
        model: str,
        temperature: float,
        json_mode: bool,
        max_tokens: int | None,
    ) -> str:
        kwargs = {}
        if json_mode:
            kwargs['response_format'] = {'type': 'json_object'}

        response = await self._client.chat.completions.create(
            model=model,
            messages=messages,  # type: ignore
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ''

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.0,
        json_mode: bool = False,
        max_tokens: int | None = None,
    ) -> str:
        """
        Get a chat completion response.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Override the default chat model
            temperature: Sampling temperature
            json_mode: Ask the API for a JSON object response
            max_tokens: Maximum tokens in response

        Returns:
            The assistant's response text

        Raises:
            UpstreamModelError: After retries are exhausted
        """
        try:
            return await self._create_completion(
                messages,
                model or self.chat_model,
                temperature,
                json_mode,
                max_tokens,
            )
        except Exception as e:
            raise wrap_model_error(e, context={'model': model or self.chat_model}) from e

    async def health_check(self) -> dict[str, bool | str]:
        """
        Verify API connectivity by looking up the configured model.

        Returns:
            Dict with 'healthy' bool and optional 'error' message
        """
        try:
            await self._client.models.retrieve(self.chat_model)
            return {'healthy': True, 'chat_model': self.chat_model}
        except Exception as e:
            return {'healthy': False, 'error': str(e)}

    async def close(self):
        """Close the client connection."""
        await self._client.close()
