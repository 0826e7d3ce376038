"""Completion service client factory."""

from typing import Annotated

from fastapi import Depends
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from riskchat.configs.config import get_llm_config
from riskchat.configs.system import LLMConfig

# ChatOpenAI refuses to construct without a key; an unset key surfaces as
# an authentication error on the call instead.
_PLACEHOLDER_API_KEY = "unset"


def get_llm(
    config: Annotated[LLMConfig, Depends(get_llm_config)],
) -> BaseChatModel:
    """Create a ChatOpenAI client for the configured endpoint.

    One completion per chat turn, no streaming; the token ceiling and
    temperature come from ``LLMConfig``.
    """
    return ChatOpenAI(
        base_url=config.endpoint,
        api_key=config.api_key or _PLACEHOLDER_API_KEY,
        model=config.model_name,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.model_timeout.total_seconds(),
        max_retries=config.max_retries,
    )
