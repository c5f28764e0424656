"""
Tests for the OpenAI client wrapper.

The SDK client is replaced with mocks; no network access is needed.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from deal_analysis.clients.openai_client import OpenAIClient
from deal_analysis.errors import ModelRateLimitError, UpstreamModelError


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


@pytest.fixture
def client() -> OpenAIClient:
    c = OpenAIClient(api_key='sk-test', chat_model='gpt-test')
    c._client = MagicMock()
    c._client.chat.completions.create = AsyncMock(return_value=_completion('{"score": 70}'))
    c._client.models.retrieve = AsyncMock(return_value=SimpleNamespace(id='gpt-test'))
    c._client.close = AsyncMock()
    return c


class TestConstruction:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            OpenAIClient(api_key='')

    def test_default_model(self):
        assert OpenAIClient(api_key='sk-test').chat_model == 'gpt-4.1-mini'


class TestChatCompletion:

    @pytest.mark.asyncio
    async def test_json_mode_sets_response_format(self, client):
        text = await client.chat_completion(
            messages=[{'role': 'user', 'content': 'hi'}],
            temperature=0.3,
            json_mode=True,
        )

        assert text == '{"score": 70}'
        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert kwargs['model'] == 'gpt-test'
        assert kwargs['temperature'] == 0.3
        assert kwargs['response_format'] == {'type': 'json_object'}

    @pytest.mark.asyncio
    async def test_plain_mode_omits_response_format(self, client):
        await client.chat_completion(messages=[{'role': 'user', 'content': 'hi'}])

        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert 'response_format' not in kwargs

    @pytest.mark.asyncio
    async def test_model_override(self, client):
        await client.chat_completion(messages=[], model='gpt-other')

        assert client._client.chat.completions.create.call_args.kwargs['model'] == 'gpt-other'

    @pytest.mark.asyncio
    async def test_empty_content_is_empty_string(self, client):
        client._client.chat.completions.create.return_value = _completion(None)

        assert await client.chat_completion(messages=[]) == ''

    @pytest.mark.asyncio
    async def test_failures_are_wrapped(self, client):
        with patch.object(
            client, '_create_completion',
            AsyncMock(side_effect=RuntimeError('rate limit reached')),
        ):
            with pytest.raises(ModelRateLimitError) as exc_info:
                await client.chat_completion(messages=[])

        assert exc_info.value.context['model'] == 'gpt-test'
        assert exc_info.value.context['error_type'] == 'RuntimeError'

    @pytest.mark.asyncio
    async def test_unknown_failure_is_upstream_error(self, client):
        with patch.object(
            client, '_create_completion',
            AsyncMock(side_effect=ConnectionError('connection reset')),
        ):
            with pytest.raises(UpstreamModelError):
                await client.chat_completion(messages=[])


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_healthy(self, client):
        result = await client.health_check()

        assert result == {'healthy': True, 'chat_model': 'gpt-test'}
        client._client.models.retrieve.assert_awaited_once_with('gpt-test')

    @pytest.mark.asyncio
    async def test_unhealthy(self, client):
        client._client.models.retrieve.side_effect = RuntimeError('invalid key')

        result = await client.health_check()

        assert result['healthy'] is False
        assert 'invalid key' in result['error']

    @pytest.mark.asyncio
    async def test_close(self, client):
        await client.close()

        client._client.close.assert_awaited_once()
