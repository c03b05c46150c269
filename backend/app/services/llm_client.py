"""
LLM Client Abstraction
Single entry point for generative-model calls in the HR backend.
Primary: Gemini Pro (AI_PRIMARY_MODEL)
Fallback: Gemini Flash (AI_FALLBACK_MODEL) on rate limit or error
"""
import logging
from typing import Optional
import litellm

from app.config import AI_PRIMARY_MODEL, AI_FALLBACK_MODEL, AI_MAX_TOKENS, ai_api_key

logger = logging.getLogger("hr-api.llm")

# Suppress litellm verbose logging
litellm.set_verbose = False


def _json_only(messages: list) -> list:
    """Copy of messages with a JSON-only instruction on the system turn."""
    messages = [dict(m) for m in messages]
    if messages and messages[0]["role"] == "system":
        messages[0]["content"] += "\n\nIMPORTANT: Respond with valid JSON only."
    else:
        messages.insert(0, {"role": "system", "content": "You must respond with valid JSON only."})
    return messages


async def complete(
    messages: list,
    temperature: float = 0.1,
    json_mode: bool = False,
    max_tokens: int = AI_MAX_TOKENS,
    api_key: Optional[str] = None,
) -> str:
    """
    Call the primary model; fall back to the secondary model on any error.
    Returns the response content string. Raises RuntimeError when both fail.
    """
    kwargs = {
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "api_key": api_key or ai_api_key() or None,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = await litellm.acompletion(model=AI_PRIMARY_MODEL, **kwargs)
        return response.choices[0].message.content
    except litellm.RateLimitError:
        logger.warning(f"{AI_PRIMARY_MODEL} rate limit hit — falling back to {AI_FALLBACK_MODEL}")
    except litellm.AuthenticationError:
        logger.warning(f"{AI_PRIMARY_MODEL} auth error — falling back to {AI_FALLBACK_MODEL}")
    except Exception as e:
        logger.warning(f"{AI_PRIMARY_MODEL} error ({type(e).__name__}: {e}) — falling back")

    try:
        fallback_kwargs = {k: v for k, v in kwargs.items() if k != "response_format"}
        if json_mode:
            fallback_kwargs["messages"] = _json_only(messages)
        response = await litellm.acompletion(model=AI_FALLBACK_MODEL, **fallback_kwargs)
        return response.choices[0].message.content
    except Exception as e:
        logger.error(f"Both LLMs failed. Fallback error: {e}")
        raise RuntimeError(f"All LLM providers failed. Last error: {e}")


class LLMClient:
    """Class-based wrapper around complete(), injectable into the workforce analyzer."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key

    async def chat(
        self,
        messages: list,
        temperature: float = 0.1,
        json_mode: bool = False,
        max_tokens: int = AI_MAX_TOKENS,
    ) -> str:
        return await complete(
            messages, temperature=temperature, json_mode=json_mode,
            max_tokens=max_tokens, api_key=self.api_key,
        )


def get_system_prompt(role: str) -> str:
    """Standard system prompts for the AI roles used by the backend."""
    prompts = {
        "hr_analyst": (
            "بصفتك خبير في تحليل الموارد البشرية لقسم التسويق والعمليات، "
            "تقوم بتصنيف الموظفين بناءً على مؤشرات الأداء والالتزام والحالة المزاجية. "
            "You are an HR analytics expert for a marketing & operations department. "
            "Classify each employee strictly from the metrics provided; never invent data."
        ),
    }
    return prompts.get(role, prompts["hr_analyst"])
