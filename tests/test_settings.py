from cachedao.settings import Settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.cache_ttl == 0
    assert settings.search_url == ""
    assert settings.read_only_database_url == settings.database_url


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DAO_DATABASE_URL", "postgresql://db/app")
    monkeypatch.setenv("DAO_DATABASE_RO_URL", "postgresql://replica/app")
    monkeypatch.setenv("DAO_CACHE_TTL", "300")
    monkeypatch.setenv("ELASTICSEARCH_URL", "http://search:9200/")

    settings = Settings(_env_file=None)

    assert settings.database_url == "postgresql://db/app"
    assert settings.read_only_database_url == "postgresql://replica/app"
    assert settings.cache_ttl == 300
    assert settings.search_url == "http://search:9200"
