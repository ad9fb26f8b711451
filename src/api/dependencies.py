"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

import importlib
import logging
from functools import lru_cache

from fastapi import Depends

from config.settings import Settings, get_settings
from prompts.loader import ONBOARDING_PROMPT, PHONE_SESSION_PROMPT, load_prompt
from relay.connections import TokenProvider, UpstreamConnection, open_upstream
from relay.schemas import SessionConfig, ToolResultDirection
from tools.ai_companion import AICompanionTool
from tools.base import ToolRegistry
from tools.knowledge_base import KnowledgeBaseTool, Retriever
from tools.medical_database import MedicalDatabaseTool

LOGGER = logging.getLogger(__name__)

COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


def load_retriever(path: str) -> Retriever:
    """Resolve a ``module:function`` import path to a retriever callable."""

    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Retriever path must look like 'module:function', got {path!r}")
    retriever = getattr(importlib.import_module(module_name), attribute, None)
    if not callable(retriever):
        raise ValueError(f"{path} does not name a callable")
    return retriever


@lru_cache(maxsize=1)
def get_retriever() -> Retriever | None:
    path = get_settings().knowledge_base_retriever
    if not path:
        return None
    LOGGER.info("Knowledge base retriever: %s", path)
    return load_retriever(path)


def build_tool_registry(settings: Settings, *, retriever: Retriever | None = None) -> ToolRegistry:
    registry = ToolRegistry([MedicalDatabaseTool()])
    if settings.ai_companion_url:
        registry.register(
            AICompanionTool(settings.ai_companion_url, timeout=settings.ai_companion_timeout_seconds)
        )
    if retriever is not None:
        registry.register(KnowledgeBaseTool(retriever))
    return registry


def get_tool_registry(retriever: Retriever | None = Depends(get_retriever)) -> ToolRegistry:
    return build_tool_registry(get_settings(), retriever=retriever)


def build_session_config(
    settings: Settings,
    registry: ToolRegistry,
    *,
    voice: str | None = None,
    instructions: str | None = None,
) -> SessionConfig:
    if not settings.azure_openai_service_endpoint or not settings.azure_openai_deployment_model_name:
        raise ValueError("AZURE_OPENAI_SERVICE_ENDPOINT and AZURE_OPENAI_DEPLOYMENT_MODEL_NAME are required")

    return SessionConfig(
        endpoint=settings.azure_openai_service_endpoint,
        deployment=settings.azure_openai_deployment_model_name,
        tools=registry.snapshot(),
        api_version=settings.azure_openai_api_version,
        voice=voice or settings.voice_choice,
        system_message=settings.system_message,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        disable_audio=settings.disable_audio,
        model=settings.model,
        onboarding_instructions=instructions if instructions is not None else load_prompt(ONBOARDING_PROMPT),
    )


def get_session_config(registry: ToolRegistry = Depends(get_tool_registry)) -> SessionConfig:
    return build_session_config(get_settings(), registry)


def get_phone_session_config(registry: ToolRegistry = Depends(get_tool_registry)) -> SessionConfig:
    # Client-only results have nowhere to go on a phone line.
    phone_tools = registry.routed_to(ToolResultDirection.TO_SERVER)
    LOGGER.debug("Phone session tools: %s (of %s)", phone_tools.names(), registry.names())
    settings = get_settings()
    return build_session_config(
        settings,
        phone_tools,
        voice=settings.phone_voice_choice,
        instructions=load_prompt(PHONE_SESSION_PROMPT),
    )


@lru_cache(maxsize=1)
def _token_provider_factory() -> TokenProvider:
    # Lazy import; only needed when no API key is configured.
    from azure.identity import DefaultAzureCredential, get_bearer_token_provider

    return get_bearer_token_provider(DefaultAzureCredential(), COGNITIVE_SERVICES_SCOPE)


async def connect_upstream(config: SessionConfig) -> UpstreamConnection:
    settings = get_settings()
    token_provider = None if settings.azure_openai_service_key else _token_provider_factory()
    return await open_upstream(
        config,
        api_key=settings.azure_openai_service_key,
        token_provider=token_provider,
        timeout=settings.upstream_connect_timeout_seconds,
    )


def get_upstream_connector():
    return connect_upstream
