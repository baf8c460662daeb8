"""
LlamaGuard moderation tests
"""

import json
import httpx
import pytest
from unittest.mock import AsyncMock, patch

from aimarker.utils.ai_clients import GeminiClient
from aimarker.utils.moderation import LlamaGuard, classify, extract_user_text


def guard_answering(text=None, status_code=200, raise_error=None, body=None):
    """LlamaGuard whose Cloudflare endpoint is a mock"""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if raise_error:
            raise raise_error
        if body is not None:
            return httpx.Response(status_code, content=body)
        return httpx.Response(status_code, json={"result": {"response": text}, "success": True})

    guard = LlamaGuard(
        account_id="acct",
        api_token="cf-token",
        model="@cf/meta/llama-guard-7b",
        transport=httpx.MockTransport(handler)
    )
    return guard, requests


class TestClassify:
    def test_safe(self):
        assert classify("SAFE - academic question") == (True, "content_approved")
        assert classify("The content is fine") == (True, "content_approved")

    def test_reason_mapping(self):
        assert classify("UNSAFE: violence") == (False, "violence_detected")
        assert classify("unsafe, harassment and violence") == (False, "violence_detected")
        assert classify("UNSAFE harassment") == (False, "harassment_detected")
        assert classify("unsafe: inappropriate") == (False, "inappropriate_content")
        assert classify("UNSAFE spam") == (False, "spam_detected")
        assert classify("policy violation") == (False, "content_flagged")


class TestLlamaGuard:
    @pytest.mark.asyncio
    async def test_not_configured_passes(self):
        guard = LlamaGuard(account_id="", api_token="")
        result = await guard.moderate_content("anything")
        assert result.safe is True
        assert result.reason == "moderation_disabled"

    @pytest.mark.asyncio
    async def test_empty_content_passes(self):
        guard, requests = guard_answering("UNSAFE")
        result = await guard.moderate_content("   ")
        assert result.safe is True
        assert result.reason == "empty_content"
        assert requests == []

    @pytest.mark.asyncio
    async def test_flags_unsafe_content(self):
        guard, requests = guard_answering("UNSAFE: violence")
        result = await guard.moderate_content("how do I hurt someone")

        assert result.safe is False
        assert result.reason == "violence_detected"
        assert result.flagged_for == "user_input"
        assert result.service == "cloudflare_workers_ai"
        assert result.classification == "UNSAFE: violence"

        request = requests[0]
        assert request.url.path == "/client/v4/accounts/acct/ai/run/@cf/meta/llama-guard-7b"
        assert request.headers["Authorization"] == "Bearer cf-token"
        payload = json.loads(request.content)
        assert payload["max_tokens"] == 100
        assert payload["temperature"] == 0.1
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]
        assert "student/teacher input" in payload["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_approves_safe_content(self):
        guard, _ = guard_answering("safe")
        result = await guard.moderate_ai_response("Photosynthesis converts light into chemical energy.")
        assert result.safe is True
        assert result.reason == "content_approved"
        assert result.flagged_for == "ai_response"

    @pytest.mark.asyncio
    async def test_fails_open_on_server_error(self):
        guard, _ = guard_answering(status_code=503, body=b"unavailable")
        result = await guard.moderate_content("question")
        assert result.safe is True
        assert result.reason == "moderation_service_error"
        assert "503" in result.error

    @pytest.mark.asyncio
    async def test_fails_open_on_network_error(self):
        guard, _ = guard_answering(raise_error=httpx.ConnectError("refused"))
        result = await guard.moderate_content("question")
        assert result.safe is True
        assert result.reason == "moderation_error"

    @pytest.mark.asyncio
    async def test_fails_open_on_malformed_json(self):
        guard, _ = guard_answering(body=b"not json")
        result = await guard.moderate_content("question")
        assert result.safe is True
        assert result.reason == "moderation_error"

    @pytest.mark.asyncio
    async def test_fails_open_on_unexpected_error(self):
        guard, _ = guard_answering(raise_error=RuntimeError("boom"))
        result = await guard.moderate_content("question")
        assert result.safe is True
        assert result.reason == "moderation_error"
        assert result.error == "boom"

    def test_prompt_labels_content(self):
        guard = LlamaGuard(account_id="a", api_token="t")
        prompt = guard.create_moderation_prompt("2+2?", is_user_input=False)
        assert "AI response" in prompt
        assert '"2+2?"' in prompt
        assert prompt.endswith("Classification:")

    def test_stats(self):
        stats = LlamaGuard(account_id="a", api_token="t", model="m").get_moderation_stats()
        assert stats == {
            "service": "cloudflare_workers_ai",
            "model": "m",
            "configured": True,
            "daily_limit": "10,000 neurons",
            "cost_per_request": "Free tier"
        }


class TestExtractUserText:
    def test_last_user_message(self):
        body = {"messages": [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "reply"},
            {"role": "user", "content": "second"},
        ]}
        assert extract_user_text(body) == "second"

    def test_multipart_content(self):
        body = {"messages": [{"role": "user", "content": [
            {"type": "text", "text": "Mark this"},
            {"type": "image_url", "image_url": {"url": "data:..."}},
            {"type": "text", "text": "answer"},
        ]}]}
        assert extract_user_text(body) == "Mark this\nanswer"

    def test_gemini_contents(self):
        body = {"contents": [
            {"role": "user", "parts": [{"text": "old"}]},
            {"role": "model", "parts": [{"text": "reply"}]},
            {"role": "user", "parts": [{"text": "Explain"}, {"text": "osmosis"}]},
        ]}
        assert extract_user_text(body) == "Explain\nosmosis"

    def test_gemini_contents_without_role_are_skipped(self):
        body = {"contents": [{"parts": [{"text": "no role"}]}]}
        assert extract_user_text(body) is None

    def test_nothing_to_check(self):
        assert extract_user_text({"messages": [{"role": "system", "content": "x"}]}) is None
        assert extract_user_text([]) is None


class TestModerationDependency:
    def test_blocks_unsafe_input(self, client):
        guard, _ = guard_answering("UNSAFE: harassment")
        with patch("aimarker.utils.moderation.llama_guard", guard):
            response = client.post("/api/chat/completions", json={
                "model": "openai/gpt-4o",
                "messages": [{"role": "user", "content": "you are stupid"}]
            })

        assert response.status_code == 400
        assert response.json() == {
            "error": "Content Policy Violation",
            "message": "Please maintain respectful language in your educational queries.",
            "code": "CONTENT_MODERATION_FAILED",
            "details": {
                "reason": "harassment_detected",
                "flagged_for": "user_input",
                "service": "cloudflare_workers_ai"
            }
        }

    def test_moderation_outage_lets_request_through(self, client):
        guard, requests = guard_answering(status_code=500, body=b"boom")
        unconfigured = GeminiClient(api_key="")
        with patch("aimarker.utils.moderation.llama_guard", guard), \
                patch("aimarker.routes.ai.gemini_client", unconfigured):
            response = client.post("/api/gemini/generate", json={
                "contents": [{"role": "user", "parts": [{"text": "What is osmosis?"}]}]
            })

        # Moderation was consulted, then the route itself answered
        assert len(requests) == 1
        assert response.status_code == 500
        assert response.json() == {"error": "Gemini API key not configured on the server."}

    def test_classifier_crash_lets_request_through(self, client):
        guard, requests = guard_answering(raise_error=RuntimeError("boom"))
        with patch("aimarker.utils.moderation.llama_guard", guard):
            response = client.post("/api/chat/completions", json={
                "messages": [{"role": "user", "content": "What is osmosis?"}]
            })

        assert len(requests) == 1
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request: model and messages are required."}

    def test_guard_raising_lets_request_through(self, client):
        guard = AsyncMock()
        guard.moderate_content.side_effect = RuntimeError("guard down")
        with patch("aimarker.utils.moderation.llama_guard", guard):
            response = client.post("/api/chat/completions", json={
                "messages": [{"role": "user", "content": "What is osmosis?"}]
            })

        guard.moderate_content.assert_awaited_once()
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request: model and messages are required."}
