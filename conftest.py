import pytest

from owaat.config import Settings

ENV_VARS = (
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "OWAAT_END_MARKER",
    "OWAAT_VERBOSE",
    "OWAAT_HUMAN",
    "OWAAT_SHUFFLE",
    "OWAAT_INITIAL_TEXT",
    "OWAAT_DELAY_MS",
    "OWAAT_MAX_WORDS",
    "OWAAT_MODELS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell and .env out of every test."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("owaat.config.load_dotenv", lambda *a, **kw: False)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key", delay_ms=0)


@pytest.fixture
def end_settings() -> Settings:
    return Settings(api_key="test-key", delay_ms=0, end_marker=True)
