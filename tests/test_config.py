from academy.core.config import Settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://academy.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://academy.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_settings_read_ledger_knobs_from_env(monkeypatch):
    monkeypatch.setenv("LEDGER_RETRY_COUNT", "5")
    monkeypatch.setenv("DEFAULT_LESSON_DURATION_MINUTES", "60")
    settings = Settings()
    assert settings.ledger_retry_count == 5
    assert settings.default_lesson_duration_minutes == 60
    assert settings.api_v1_prefix == "/api/v1"


def test_app_cors_allow_list_comes_from_cors_origins():
    from academy.core.config import get_settings
    from academy.main import allow_origins

    assert allow_origins == parse_cors_origins(get_settings().cors_origins)
    assert not hasattr(get_settings(), "frontend_base_url")
