"""Shared fixtures: a recording chat model and an in-memory risk repository."""

from datetime import date
from typing import Any

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from riskchat.configs.config import AppConfig
from riskchat.configs.system import PromptConfig
from riskchat.core.chat import ChatService, ContextAssembler, SessionStore
from riskchat.infra.db import DashboardSummary

TEST_SYSTEM_PROMPT = "You are a risk analyst assistant."
TEST_TODAY = date(2025, 3, 14)


class RecordingChatModel(BaseChatModel):
    """Replays canned replies and keeps every prompt it was sent."""

    replies: list[str] = Field(default_factory=list)
    error: Any = None
    calls: list[list[BaseMessage]] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "recording"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0) if self.replies else ""
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=reply))])


class FakeRiskRepository:
    """Answers every context read from ``data``; names in ``failing`` raise."""

    def __init__(self, failing: tuple[str, ...] = (), **data: Any) -> None:
        self.failing = set(failing)
        self.data = data
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _answer(self, method: str, default: Any, **kwargs: Any) -> Any:
        self.calls.append((method, kwargs))
        if method in self.failing:
            raise RuntimeError(f"{method} is down")
        return self.data.get(method, default)

    async def get_dashboard_summary(self, site_id=None, service_id=None):
        return self._answer(
            "get_dashboard_summary",
            DashboardSummary(),
            site_id=site_id,
            service_id=service_id,
        )

    async def get_top_risks(self, count=10, site_id=None, service_id=None):
        return self._answer(
            "get_top_risks", [], count=count, site_id=site_id, service_id=service_id
        )

    async def get_site_summary(self, service_id=None):
        return self._answer("get_site_summary", [], service_id=service_id)

    async def get_category_summary(self, site_id=None, service_id=None):
        return self._answer(
            "get_category_summary", [], site_id=site_id, service_id=service_id
        )

    async def get_owner_summary(self, site_id=None, service_id=None):
        return self._answer(
            "get_owner_summary", [], site_id=site_id, service_id=service_id
        )

    async def get_risk_trend(self, months=6, site_id=None, service_id=None):
        return self._answer(
            "get_risk_trend", [], months=months, site_id=site_id, service_id=service_id
        )

    async def get_watchlist(self, site_id=None, service_id=None):
        return self._answer("get_watchlist", [], site_id=site_id, service_id=service_id)

    async def get_sites(self):
        return self._answer("get_sites", [])

    async def get_services(self):
        return self._answer("get_services", [])

    async def get_categories(self, service_id=None):
        return self._answer("get_categories", [], service_id=service_id)

    async def get_users(self):
        return self._answer("get_users", [])


@pytest.fixture
def app_config() -> AppConfig:
    config = AppConfig()
    config.prompt = PromptConfig(system_prompt=TEST_SYSTEM_PROMPT)
    config.chat.max_history_messages = 10
    return config


@pytest.fixture
def llm() -> RecordingChatModel:
    return RecordingChatModel()


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def fake_repository() -> FakeRiskRepository:
    return FakeRiskRepository()


@pytest.fixture
def chat_service(llm, session_store, fake_repository, app_config) -> ChatService:
    return ChatService(
        llm,
        session_store,
        ContextAssembler(fake_repository),
        app_config,
        today=lambda: TEST_TODAY,
    )


@pytest.fixture
def make_repository():
    return FakeRiskRepository
