"""
Tests de configuración (URLs efectivas y CORS).
"""
from sankhya_mirror.core.config import Settings, get_cors_origins, normalize_sqlalchemy_url


def test_normalize_postgres_urls_to_psycopg():
    assert normalize_sqlalchemy_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_sqlalchemy_url("postgresql+asyncpg://u:p@h/db") == "postgresql+psycopg://u:p@h/db"


def test_normalize_keeps_other_schemes():
    assert normalize_sqlalchemy_url("sqlite:///mirror.db") == "sqlite:///mirror.db"


def test_effective_url_from_components():
    settings = Settings(
        _env_file=None,
        DATABASE_URL="",
        DATABASE_USER="u",
        DATABASE_PASSWORD="p",
        DATABASE_HOST="db",
        DATABASE_PORT=5433,
        DATABASE_NAME="espelho",
    )
    assert settings.effective_database_url == "postgresql+psycopg://u:p@db:5433/espelho"


def test_gateway_urls():
    settings = Settings(_env_file=None, SANKHYA_BASE_URL="https://api.sankhya.com.br/")
    assert settings.login_url == "https://api.sankhya.com.br/login"
    assert settings.load_records_url == (
        "https://api.sankhya.com.br/gateway/v1/mge/service.sbr"
        "?serviceName=CRUDServiceProvider.loadRecords&outputType=json"
    )


def test_cors_origins_parsing():
    assert get_cors_origins("*") == ["*"]
    assert get_cors_origins('["http://a", "http://b"]') == ["http://a", "http://b"]
    assert get_cors_origins("http://a, http://b") == ["http://a", "http://b"]
