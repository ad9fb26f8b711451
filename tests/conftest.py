from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from relay.schemas import SessionConfig  # noqa: E402
from tools.base import ToolRegistry  # noqa: E402
from tools.medical_database import MedicalDatabaseTool  # noqa: E402


@pytest.fixture()
def registry() -> ToolRegistry:
    return ToolRegistry([MedicalDatabaseTool()])


@pytest.fixture()
def session_config(registry: ToolRegistry) -> SessionConfig:
    return SessionConfig(
        endpoint="https://example.openai.azure.com",
        deployment="gpt-4o-realtime-preview",
        tools=registry,
        voice="alloy",
        onboarding_instructions="Say hello and ask for the caller's name.",
    )


@pytest.fixture(scope="session")
def app():
    # Must be set before importing modules that read settings.
    os.environ["AZURE_OPENAI_SERVICE_ENDPOINT"] = "https://example.openai.azure.com"
    os.environ["AZURE_OPENAI_DEPLOYMENT_MODEL_NAME"] = "gpt-4o-realtime-preview"
    os.environ["AZURE_OPENAI_SERVICE_KEY"] = "test-key"
    os.environ["AUDIO_SEND_RETRY_DELAY_SECONDS"] = "0"

    import importlib

    for module_name in [
        "config.settings",
        "api.dependencies",
        "api.routes",
        "api.realtime_routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app
