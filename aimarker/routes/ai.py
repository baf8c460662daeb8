"""
AI Proxy Routes
Forward chat requests to GitHub Models, OpenRouter and Gemini

Every route runs the AI rate limiter, the per-model daily quota and
LlamaGuard moderation, in that order, before contacting a provider.
"""

import httpx
import logging
from typing import Any, AsyncIterator, Dict, List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from aimarker.config import settings
from aimarker.utils.ai_clients import (
    extract_completion_text, gemini_client, github_client, openrouter_client
)
from aimarker.utils.errors import UpstreamError
from aimarker.utils.moderation import moderate_user_input
from aimarker.utils.rate_limit import ai_rate_limit
from aimarker.utils.sse import SSE_HEADERS, sse_delta, sse_done, sse_error

logger = logging.getLogger(__name__)

router = APIRouter()


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _event_stream(events: AsyncIterator) -> StreamingResponse:
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


async def github_events(messages: List[Dict[str, Any]], model: str) -> AsyncIterator[str]:
    """SSE frames for one GitHub Models completion"""
    if not github_client.is_configured():
        logger.error("GitHub API key not configured")
        yield sse_error(
            "GitHub API Error: API key not configured in backend. Please try a different model.",
            status.HTTP_401_UNAUTHORIZED
        )
        return

    try:
        data = await github_client.complete(messages, model)
    except UpstreamError as e:
        yield sse_error(e.message, e.status_code)
        return
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Streaming API error in /github/completions: {e}")
        yield sse_error(str(e))
        return

    completion_text = extract_completion_text(data)
    if not completion_text:
        logger.error(f"Unexpected GitHub API response structure or empty content: {data}")
        yield sse_error("Unexpected GitHub API response structure or empty content")
        return

    # Whole completion as a single delta
    yield sse_delta(completion_text)
    yield sse_done()


async def openrouter_events(
    model: str,
    messages: List[Dict[str, Any]],
    stream: bool,
    referer: str
) -> AsyncIterator[bytes]:
    """Upstream OpenRouter bytes, or one error frame"""
    try:
        async for chunk in openrouter_client.stream_chat(model, messages, stream=stream, referer=referer):
            yield chunk
    except UpstreamError as e:
        yield sse_error(e.message, e.status_code).encode("utf-8")
    except httpx.HTTPError as e:
        logger.error(f"OpenRouter API error in /chat/completions: {e}")
        yield sse_error(str(e) or type(e).__name__).encode("utf-8")


@router.post(
    "/github/completions",
    dependencies=[Depends(ai_rate_limit(settings.github_default_model)), Depends(moderate_user_input)]
)
async def github_completions(request: Request):
    """
    Chat completion through GitHub Models, delivered as SSE

    The upstream answer is not streamed; it is re-emitted as a single
    OpenAI-style delta frame followed by [DONE].
    """
    try:
        body = await _json_body(request)
        messages = body.get("messages")
        if not isinstance(messages, list):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid request format"}
            )

        model = body.get("model")
        if not isinstance(model, str) or not model:
            model = settings.github_default_model
        return _event_stream(github_events(messages, model))

    except Exception as e:
        logger.error(f"Streaming API error in /github/completions: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)}
        )


@router.post(
    "/chat/completions",
    dependencies=[Depends(ai_rate_limit()), Depends(moderate_user_input)]
)
async def chat_completions(request: Request):
    """Stream an OpenRouter chat completion back verbatim"""
    try:
        body = await _json_body(request)
        model = body.get("model")
        messages = body.get("messages")
        if not isinstance(model, str) or not model or not isinstance(messages, list):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid request: model and messages are required."}
            )

        stream = body.get("stream")
        referer = request.headers.get("origin") or settings.openrouter_referer
        return _event_stream(
            openrouter_events(model, messages, True if stream is None else stream, referer)
        )

    except Exception as e:
        logger.error(f"OpenRouter API error in /chat/completions: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)}
        )


@router.post(
    "/gemini/generate",
    dependencies=[Depends(ai_rate_limit(settings.gemini_default_model)), Depends(moderate_user_input)]
)
async def gemini_generate(request: Request):
    """Generate content with the Gemini API and return its JSON answer"""
    try:
        body = await _json_body(request)
        contents = body.get("contents")
        if not isinstance(contents, list):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Invalid request: contents array is required."}
            )

        if not gemini_client.is_configured():
            logger.error("Gemini API key not configured")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Gemini API key not configured on the server."}
            )

        model = body.get("model") or settings.gemini_default_model
        request_body = gemini_client.build_request_body(
            contents,
            body.get("generationConfig"),
            body.get("system_instruction")
        )
        return await gemini_client.generate(model, request_body)

    except UpstreamError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.body})
    except Exception as e:
        logger.error(f"Error in /api/gemini/generate: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)}
        )
