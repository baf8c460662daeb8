"""
AI Provider HTTP Clients
Clients for GitHub Models, OpenRouter and the Gemini API
"""

import json
import httpx
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from aimarker.config import settings
from aimarker.utils.errors import UpstreamError
from aimarker.utils.http_client import PooledHTTPClient

logger = logging.getLogger(__name__)


def preview_messages(messages: List[Dict[str, Any]], length: int = 20) -> List[Dict[str, Any]]:
    """Shorten message contents for logging"""
    preview = []
    for message in messages:
        content = message.get("content") if isinstance(message, dict) else message
        text = content if isinstance(content, str) else str(content)
        role = message.get("role") if isinstance(message, dict) else None
        preview.append({"role": role, "content": f"{text[:length]}..."})
    return preview


def extract_completion_text(data: Any) -> Optional[str]:
    """
    Pull the completion text out of a chat completion response

    Checks choices[0].message.content, then "completion", then a string "content".
    """
    if not isinstance(data, dict):
        return None

    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if content:
            return content

    if data.get("completion"):
        return data["completion"]

    if isinstance(data.get("content"), str):
        return data["content"]

    return None


class GitHubModelsClient(PooledHTTPClient):
    """Chat completions through the GitHub Models inference API"""

    name = "GitHub Models"

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(read_timeout=settings.upstream_timeout_seconds, transport=transport)
        self.api_key = api_key if api_key is not None else settings.github_api_key
        self.url = url or settings.github_models_url

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, messages: List[Dict[str, Any]], model: str) -> Dict[str, Any]:
        """
        Request a (non-streamed) chat completion

        Raises:
            UpstreamError: non-2xx response
            httpx.HTTPError: transport failure
        """
        logger.info(f"GitHub AI request: model={model}, messages={preview_messages(messages)}")

        async with self.client() as client:
            response = await client.post(
                self.url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json"
                },
                json={
                    "messages": messages,
                    "temperature": 0.7,
                    "top_p": 1.0,
                    "model": model
                }
            )

        if response.is_error:
            logger.error(f"GitHub API error: {response.status_code} {response.text}")
            raise UpstreamError("GitHub", response.status_code, response.text)

        return response.json()


class OpenRouterClient(PooledHTTPClient):
    """Streaming chat completions through OpenRouter"""

    name = "OpenRouter"

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(read_timeout=settings.upstream_timeout_seconds, transport=transport)
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.url = url or settings.openrouter_url

    async def stream_chat(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        stream: bool = True,
        referer: Optional[str] = None
    ) -> AsyncIterator[bytes]:
        """
        Yield the upstream response body as it arrives, unmodified

        Raises:
            UpstreamError: non-2xx response, before anything is yielded
        """
        logger.info(f"OpenRouter request: model={model}, stream={stream}")

        async with self.client() as client:
            async with client.stream(
                "POST",
                self.url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                    "HTTP-Referer": referer or settings.openrouter_referer,
                    "X-Title": "GCSE AI Marker"
                },
                json={"model": model, "messages": messages, "stream": stream}
            ) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error(f"OpenRouter API error: {response.status_code} {body}")
                    raise UpstreamError("OpenRouter", response.status_code, body)

                async for chunk in response.aiter_bytes():
                    yield chunk


class GeminiClient(PooledHTTPClient):
    """Direct calls to the Gemini generateContent endpoint"""

    name = "Gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(read_timeout=settings.upstream_timeout_seconds, transport=transport)
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @staticmethod
    def build_request_body(
        contents: List[Any],
        generation_config: Optional[Dict[str, Any]] = None,
        system_instruction: Optional[Any] = None
    ) -> Dict[str, Any]:
        body = {
            "contents": contents,
            "generationConfig": generation_config or {"temperature": 0.7, "topP": 1.0},
        }
        if system_instruction:
            body["system_instruction"] = system_instruction
        return body

    @staticmethod
    def parse_error(status_code: int, text: str) -> str:
        """Upstream error.message, or a generic message when the body has none"""
        try:
            error = json.loads(text).get("error")
        except (ValueError, AttributeError):
            error = None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return f"Gemini API Error ({status_code})"

    async def generate(self, model: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call models/{model}:generateContent

        Raises:
            UpstreamError: non-2xx response; body holds the upstream error message
        """
        url = f"{self.base_url}/{model}:generateContent"
        logger.info(f"Sending request to Gemini API: model={model}")

        async with self.client() as client:
            response = await client.post(
                url,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=body
            )

        if response.is_error:
            logger.error(f"Gemini API error: {response.status_code} {response.text}")
            raise UpstreamError("Gemini", response.status_code, self.parse_error(response.status_code, response.text))

        logger.info("Gemini API response received successfully")
        return response.json()


github_client = GitHubModelsClient()
openrouter_client = OpenRouterClient()
gemini_client = GeminiClient()
