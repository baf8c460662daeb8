"""
AI provider client tests
"""

import json
import httpx
import pytest

from aimarker.utils.ai_clients import (
    GeminiClient, GitHubModelsClient, OpenRouterClient, extract_completion_text, preview_messages
)
from aimarker.utils.errors import UpstreamError


class TestExtractCompletionText:
    def test_choices(self):
        assert extract_completion_text({"choices": [{"message": {"content": "Answer"}}]}) == "Answer"

    def test_fallbacks(self):
        assert extract_completion_text({"completion": "Plain"}) == "Plain"
        assert extract_completion_text({"content": "Text"}) == "Text"
        assert extract_completion_text({"choices": [{"message": {"content": ""}}], "completion": "C"}) == "C"

    def test_missing(self):
        assert extract_completion_text({"choices": []}) is None
        assert extract_completion_text({"content": ["not", "a", "string"]}) is None
        assert extract_completion_text("oops") is None


def test_preview_truncates_content():
    preview = preview_messages([{"role": "user", "content": "x" * 100}])
    assert preview == [{"role": "user", "content": "x" * 20 + "..."}]


class TestGitHubModelsClient:
    @pytest.mark.asyncio
    async def test_complete_sends_payload(self):
        seen = {}

        def handler(request):
            seen['headers'] = request.headers
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "4"}}]})

        client = GitHubModelsClient(api_key="gh-key", transport=httpx.MockTransport(handler))
        data = await client.complete([{"role": "user", "content": "2+2"}], "openai/gpt-4.1")

        assert data["choices"][0]["message"]["content"] == "4"
        assert seen['headers']["Authorization"] == "Bearer gh-key"
        assert seen['body'] == {
            "messages": [{"role": "user", "content": "2+2"}],
            "temperature": 0.7,
            "top_p": 1.0,
            "model": "openai/gpt-4.1"
        }

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = GitHubModelsClient(
            api_key="gh-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(429, text="slow down"))
        )
        with pytest.raises(UpstreamError) as exc_info:
            await client.complete([], "xai/grok-3")
        assert exc_info.value.status_code == 429
        assert str(exc_info.value) == "GitHub API Error (429): slow down"


class TestOpenRouterClient:
    @pytest.mark.asyncio
    async def test_stream_passes_bytes_through(self):
        upstream = b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\ndata: [DONE]\n\n'
        seen = {}

        def handler(request):
            seen['headers'] = request.headers
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, content=upstream, headers={"Content-Type": "text/event-stream"})

        client = OpenRouterClient(api_key="or-key", transport=httpx.MockTransport(handler))
        chunks = [chunk async for chunk in client.stream_chat("openai/gpt-4o", [], referer="https://aimarker.tech")]

        assert b"".join(chunks) == upstream
        assert seen['headers']["HTTP-Referer"] == "https://aimarker.tech"
        assert seen['headers']["X-Title"] == "GCSE AI Marker"
        assert seen['body'] == {"model": "openai/gpt-4o", "messages": [], "stream": True}

    @pytest.mark.asyncio
    async def test_error_before_streaming(self):
        client = OpenRouterClient(
            api_key="or-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="No auth"))
        )
        with pytest.raises(UpstreamError, match=r"OpenRouter API Error \(401\): No auth"):
            async for _ in client.stream_chat("m", []):
                pass


class TestGeminiClient:
    def test_default_generation_config(self):
        body = GeminiClient.build_request_body([{"parts": [{"text": "hi"}]}])
        assert body["generationConfig"] == {"temperature": 0.7, "topP": 1.0}
        assert "system_instruction" not in body

        body = GeminiClient.build_request_body([], {"temperature": 0.1}, {"parts": [{"text": "sys"}]})
        assert body["generationConfig"] == {"temperature": 0.1}
        assert body["system_instruction"] == {"parts": [{"text": "sys"}]}

    def test_parse_error(self):
        assert GeminiClient.parse_error(400, '{"error": {"message": "API key not valid"}}') == "API key not valid"
        assert GeminiClient.parse_error(502, "<html>bad gateway</html>") == "Gemini API Error (502)"

    @pytest.mark.asyncio
    async def test_generate_url_and_key(self):
        seen = {}

        def handler(request):
            seen['url'] = request.url
            return httpx.Response(200, json={"candidates": []})

        client = GeminiClient(
            api_key="gem-key",
            base_url="https://gemini.test/v1beta/models/",
            transport=httpx.MockTransport(handler)
        )
        assert await client.generate("gemini-pro", {"contents": []}) == {"candidates": []}
        assert seen['url'].path == "/v1beta/models/gemini-pro:generateContent"
        assert seen['url'].params["key"] == "gem-key"
