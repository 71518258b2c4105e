"""Shared pytest configuration and fixtures."""

from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest

from src.config import Settings, get_settings


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit a real Qdrant (requires .env with valid settings)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e flag to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Block .env loading so a developer's local config never leaks into tests.

    Sets Settings.model_config['env_file'] = None before each test (except e2e).
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


@pytest.fixture
def mock_settings() -> Generator[Any]:
    """Provide fake settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = type(
        "FakeSettings",
        (),
        {
            "qdrant_url": "http://qdrant.test:6333",
            "qdrant_collection": "test-collection",
            "qdrant_api_key": "",
            "openai_api_key": "sk-proj-test-fake",
            "openai_base_url": "",
            "openai_embedding_model": "text-embedding-3-small",
            "agents": "",
            "min_score": 0.2,
            "refresh_interval": 60,
            "page_size": 50,
            "dashboard_port": 8765,
            "request_timeout_seconds": 5.0,
        },
    )()
    with (
        patch("src.config.get_settings", return_value=fake_settings),
        patch("src.memory.store.get_settings", return_value=fake_settings),
        patch("src.memory.agents.get_settings", return_value=fake_settings),
        patch("src.memory.embeddings.get_settings", return_value=fake_settings),
        patch("src.analytics.settings_view.get_settings", return_value=fake_settings),
        patch("src.api.main.get_settings", return_value=fake_settings),
        patch("src.cli.get_settings", return_value=fake_settings),
    ):
        yield fake_settings
