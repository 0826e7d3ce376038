"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of manually
writing ``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias
corresponds to a single ``get_*`` factory and can be overridden in
tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from riskchat.configs.config import AppConfig, get_app_config
from riskchat.core.chat import ChatService, SessionStore, get_chat_service
from riskchat.core.chat.session_store import get_session_store
from riskchat.infra.db import RiskRepository, get_risk_repository

AppConfigDep = Annotated[AppConfig, Depends(get_app_config)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
RiskRepositoryDep = Annotated[RiskRepository, Depends(get_risk_repository)]
