from stampcard.core.settings import Settings


def test_settings_defaults_match_sync_constants() -> None:
    settings = Settings(_env_file=None)

    assert settings.sync_interval_seconds == 30
    assert settings.sync_max_retries == 3
    assert settings.transaction_log_limit == 300
    assert settings.dead_letter_limit == 50
    assert settings.business_placeholder_ids == ["default"]
    assert settings.uses_memory_store is False


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("STAMPCARD_API_BASE_URL", "https://api.example.com/")
    monkeypatch.setenv("STAMPCARD_LOCAL_STORE_URL", "memory://")
    monkeypatch.setenv("STAMPCARD_REMOTE_BACKEND", "redis")
    monkeypatch.setenv("STAMPCARD_BUSINESS_PLACEHOLDER_IDS", '["default", "demo"]')

    settings = Settings(_env_file=None)

    assert settings.api_base_url == "https://api.example.com"
    assert settings.uses_memory_store is True
    assert settings.remote_backend == "redis"
    assert settings.business_placeholder_ids == ["default", "demo"]


def test_placeholder_ids_accept_comma_separated_values() -> None:
    settings = Settings(_env_file=None, business_placeholder_ids="default, demo,,")

    assert settings.business_placeholder_ids == ["default", "demo"]
