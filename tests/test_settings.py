import pytest

from srg_market_history.base import get_subgraph_settings, get_cors_origins, get_api_bind, get_logging_settings

SETTINGS_ENV = (
    "SUBGRAPH_URL", "SUBGRAPH_TIMEOUT_SECONDS", "TRANSFERS_PAGE_SIZE", "SUBGRAPH_MAX_WORKERS",
    "TICKER_QUERY_MODE", "VOLUME_MISSING_PREVIOUS_POLICY", "CORS_ORIGINS", "API_HOST", "API_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = get_subgraph_settings()

    assert settings.url == "http://localhost:8000/subgraphs/name/srg20"
    assert settings.timeout_seconds == 30.0
    assert settings.page_size == 1000
    assert settings.max_workers == 4
    assert settings.ticker_query_mode == "scoped"
    assert settings.volume_missing_previous_policy == "skip"


def test_overrides(monkeypatch):
    monkeypatch.setenv("SUBGRAPH_URL", "https://graph.example.org/subgraphs/name/srg")
    monkeypatch.setenv("SUBGRAPH_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("TRANSFERS_PAGE_SIZE", "250")
    monkeypatch.setenv("SUBGRAPH_MAX_WORKERS", "8")
    monkeypatch.setenv("TICKER_QUERY_MODE", "UNSCOPED")
    monkeypatch.setenv("VOLUME_MISSING_PREVIOUS_POLICY", "zero")

    settings = get_subgraph_settings()

    assert settings.url == "https://graph.example.org/subgraphs/name/srg"
    assert settings.timeout_seconds == 12.5
    assert settings.page_size == 250
    assert settings.max_workers == 8
    assert settings.ticker_query_mode == "unscoped"
    assert settings.volume_missing_previous_policy == "zero"


@pytest.mark.parametrize("name, value", [
    ("TRANSFERS_PAGE_SIZE", "0"),
    ("TRANSFERS_PAGE_SIZE", "1001"),
    ("TRANSFERS_PAGE_SIZE", "lots"),
    ("SUBGRAPH_TIMEOUT_SECONDS", "0"),
    ("SUBGRAPH_MAX_WORKERS", "0"),
    ("TICKER_QUERY_MODE", "global"),
    ("VOLUME_MISSING_PREVIOUS_POLICY", "interpolate"),
])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        get_subgraph_settings()


def test_cors_origins(monkeypatch):
    assert get_cors_origins() == ["*"]

    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example ,")

    assert get_cors_origins() == ["https://a.example", "https://b.example"]


def test_api_bind(monkeypatch):
    assert get_api_bind() == ("0.0.0.0", 3000)

    monkeypatch.setenv("API_PORT", "8080")

    assert get_api_bind() == ("0.0.0.0", 8080)


def test_logging_settings(monkeypatch):
    monkeypatch.delenv("LOGS_DIR", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert get_logging_settings() == (None, "DEBUG")
