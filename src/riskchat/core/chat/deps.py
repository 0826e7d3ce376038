"""FastAPI dependency factories for the chat service.

The session store is process-wide (built in lifespan, read from
``app.state``); everything else is assembled per request with an
explicit ``Depends`` chain.
"""

from typing import Annotated

from fastapi import Depends
from langchain_core.language_models import BaseChatModel

from riskchat.configs.config import AppConfig, get_app_config
from riskchat.core.llm import get_llm
from riskchat.infra.db import RiskRepository, get_risk_repository

from .context import ContextAssembler
from .service import ChatService
from .session_store import SessionStore, get_session_store


def get_context_assembler(
    repository: Annotated[RiskRepository, Depends(get_risk_repository)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> ContextAssembler:
    return ContextAssembler(
        repository,
        top_risks_count=config.context.top_risks_count,
        trend_months=config.context.trend_months,
    )


def get_chat_service(
    llm: Annotated[BaseChatModel, Depends(get_llm)],
    session_store: Annotated[SessionStore, Depends(get_session_store)],
    assembler: Annotated[ContextAssembler, Depends(get_context_assembler)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> ChatService:
    """Create a configured chat service per request."""
    return ChatService(llm, session_store, assembler, config)
