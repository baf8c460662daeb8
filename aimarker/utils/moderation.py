"""
LlamaGuard content moderation via Cloudflare Workers AI

Safety gate for educational content in the GCSE AI Marker.
Every failure path fails open: content is allowed when the classifier
is unconfigured, unreachable or answers with an error.
"""

import httpx
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, status

from aimarker.config import settings
from aimarker.utils.http_client import PooledHTTPClient
from aimarker.utils.logger import get_audit_logger

logger = logging.getLogger(__name__)

SERVICE_NAME = "cloudflare_workers_ai"

SAFETY_GUIDELINES = """
You are a content moderator for an educational AI system used by GCSE students and teachers.

SAFE content includes:
- Academic questions about GCSE subjects (Math, Science, English, History, etc.)
- Requests for homework help or explanation of concepts
- Educational discussions and constructive feedback
- Learning materials and study resources
- Appropriate questions about exam preparation

UNSAFE content includes:
- Violence, harassment, or bullying
- Inappropriate sexual content
- Hate speech or discrimination
- Self-harm or dangerous activities
- Cheating or academic dishonesty requests
- Spam or irrelevant content
- Personal attacks or offensive language

Respond with only "SAFE" or "UNSAFE" followed by a brief reason.
"""

# Checked in order; first keyword found in an unsafe classification wins
REASON_KEYWORDS = [
    ("violence", "violence_detected"),
    ("harassment", "harassment_detected"),
    ("inappropriate", "inappropriate_content"),
    ("spam", "spam_detected"),
]

REJECTION_MESSAGES = {
    "violence_detected": "Please keep your questions focused on academic topics appropriate for GCSE studies.",
    "harassment_detected": "Please maintain respectful language in your educational queries.",
    "inappropriate_content": "Please ensure your question is appropriate for a classroom setting.",
    "spam_detected": "Please ask specific, educational questions related to your GCSE studies.",
}
DEFAULT_REJECTION_MESSAGE = "Please revise your question to focus on educational content appropriate for GCSE studies."


@dataclass
class ModerationResult:
    safe: bool
    reason: str
    classification: Optional[str] = None
    flagged_for: Optional[str] = None
    service: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


def classify(text: str) -> tuple:
    """Map a raw classifier answer to (safe, reason)"""
    classification = text.strip().lower()
    is_safe = classification.startswith("safe") or (
        "unsafe" not in classification and "violation" not in classification
    )
    if is_safe:
        return True, "content_approved"

    for keyword, reason in REASON_KEYWORDS:
        if keyword in classification:
            return False, reason
    return False, "content_flagged"


class LlamaGuard(PooledHTTPClient):
    """LlamaGuard classifier client"""

    name = "LlamaGuard"
    READ_TIMEOUT = 15.0

    def __init__(
        self,
        account_id: Optional[str] = None,
        api_token: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(transport=transport)
        self.account_id = account_id if account_id is not None else settings.cloudflare_account_id
        self.api_token = api_token if api_token is not None else settings.cloudflare_api_token
        self.model = model or settings.moderation_model
        self.base_url = (
            f"https://api.cloudflare.com/client/v4/accounts/{self.account_id}/ai/run/{self.model}"
        )

    def is_configured(self) -> bool:
        """Check if Cloudflare Workers AI is configured"""
        return bool(self.account_id and self.api_token)

    def create_moderation_prompt(self, content: str, is_user_input: bool = True) -> str:
        content_type = "student/teacher input" if is_user_input else "AI response"
        return (
            f"{SAFETY_GUIDELINES}\n\n"
            f"Content to evaluate ({content_type}):\n"
            f"\"{content}\"\n\n"
            f"Classification:"
        )

    async def moderate_content(self, content: Any, is_user_input: bool = True) -> ModerationResult:
        """
        Classify content with LlamaGuard

        Args:
            content: Text to check
            is_user_input: True for user text, False for AI output

        Returns:
            ModerationResult; safe=True on any service failure
        """
        if not self.is_configured():
            logger.warning("LlamaGuard: Cloudflare Workers AI not configured, skipping moderation")
            return ModerationResult(safe=True, reason="moderation_disabled")

        if not isinstance(content, str) or not content.strip():
            return ModerationResult(safe=True, reason="empty_content")

        flagged_for = "user_input" if is_user_input else "ai_response"

        try:
            async with self.client() as client:
                response = await client.post(
                    self.base_url,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_token}"
                    },
                    json={
                        "messages": [
                            {
                                "role": "system",
                                "content": "You are a content safety classifier for educational content."
                            },
                            {
                                "role": "user",
                                "content": self.create_moderation_prompt(content, is_user_input)
                            }
                        ],
                        "max_tokens": 100,
                        "temperature": 0.1
                    }
                )

            if response.is_error:
                logger.error(f"LlamaGuard: Cloudflare Workers AI error: {response.status_code} {response.text}")
                return ModerationResult(
                    safe=True,
                    reason="moderation_service_error",
                    error=f"Cloudflare Workers AI error: {response.status_code}",
                    service=SERVICE_NAME
                )

            data = response.json()
            result = data.get("result") if isinstance(data, dict) else None
            text = (result or {}).get("response") if isinstance(result, dict) else None
            text = text or (data.get("response") if isinstance(data, dict) else None) or ""
            if not isinstance(text, str):
                text = str(text)

            is_safe, reason = classify(text)
            return ModerationResult(
                safe=is_safe,
                reason=reason,
                classification=text,
                flagged_for=flagged_for,
                service=SERVICE_NAME
            )

        except Exception as e:
            logger.error(f"LlamaGuard: Moderation error: {e}")
            return ModerationResult(
                safe=True,
                reason="moderation_error",
                error=str(e),
                service=SERVICE_NAME
            )

    async def moderate_ai_response(self, content: str) -> ModerationResult:
        """Moderate AI response before sending to user"""
        return await self.moderate_content(content, is_user_input=False)

    def get_moderation_stats(self) -> Dict[str, Any]:
        return {
            "service": SERVICE_NAME,
            "model": self.model,
            "configured": self.is_configured(),
            "daily_limit": "10,000 neurons",
            "cost_per_request": "Free tier"
        }


def _flatten_content(content: Any) -> Optional[str]:
    """Text of a message content that may be a string or a list of parts"""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "\n".join(texts) if texts else None
    return None


def extract_user_text(body: Any) -> Optional[str]:
    """
    Last user-authored text in an OpenAI-style "messages" list
    or a Gemini-style "contents" list
    """
    if not isinstance(body, dict):
        return None

    messages = body.get("messages")
    if isinstance(messages, list):
        user_messages = [m for m in messages if isinstance(m, dict) and m.get("role") == "user"]
        if user_messages:
            return _flatten_content(user_messages[-1].get("content"))
        return None

    contents = body.get("contents")
    if isinstance(contents, list):
        user_contents = [c for c in contents if isinstance(c, dict) and c.get("role") == "user"]
        if user_contents:
            return _flatten_content(user_contents[-1].get("parts"))

    return None


llama_guard = LlamaGuard()


async def moderate_user_input(request: Request) -> Optional[ModerationResult]:
    """
    Dependency gating AI routes on LlamaGuard

    Raises:
        HTTPException: 400 with a content policy body when the text is unsafe
    """
    try:
        body = await request.json()
    except ValueError:
        return None

    text = extract_user_text(body)
    if text is None:
        return None

    try:
        result = await llama_guard.moderate_content(text, is_user_input=True)
    except Exception as e:
        logger.error(f"LlamaGuard: Moderation middleware error: {e}")
        return None

    if not result.safe:
        logger.warning(
            f"LlamaGuard: Unsafe user input detected: classification={result.classification!r}, "
            f"reason={result.reason}, service={result.service}"
        )
        get_audit_logger().log_system_event(
            "content_flagged",
            "moderation",
            details={"reason": result.reason, "path": request.url.path},
            severity="warning"
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Content Policy Violation",
                "message": REJECTION_MESSAGES.get(result.reason, DEFAULT_REJECTION_MESSAGE),
                "code": "CONTENT_MODERATION_FAILED",
                "details": {
                    "reason": result.reason,
                    "flagged_for": result.flagged_for,
                    "service": result.service
                }
            }
        )

    request.state.moderation_result = result
    return result
