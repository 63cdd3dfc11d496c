from app.config import DEFAULT_ALLOWED_ORIGINS, Settings


def test_defaults(monkeypatch):
    for name in ("ALLOWED_ORIGINS", "PORT", "PREVIEW_TIMEOUT", "FETCH_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.port == 5465
    assert settings.preview_timeout == 15.0
    assert settings.fetch_timeout == 10.0
    assert settings.max_body_bytes == 1024 * 1024
    assert settings.origins == list(DEFAULT_ALLOWED_ORIGINS)


def test_origins_are_split_and_trimmed():
    settings = Settings(allowed_origins=" https://a.example , ,https://b.example ")

    assert settings.origins == ["https://a.example", "https://b.example"]
    assert not settings.allows_any_origin


def test_blank_origins_fall_back_to_defaults():
    assert Settings(allowed_origins=" , ").origins == list(DEFAULT_ALLOWED_ORIGINS)


def test_wildcard_origin():
    settings = Settings(allowed_origins="*")

    assert settings.allows_any_origin


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PORT", ":8080")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://app.example")
    monkeypatch.setenv("PREVIEW_TIMEOUT", "5")

    settings = Settings(_env_file=None)

    assert settings.port == 8080
    assert settings.origins == ["https://app.example"]
    assert settings.preview_timeout == 5.0


def test_importing_config_does_not_build_settings():
    import app.config

    assert not hasattr(app.config, "settings")
