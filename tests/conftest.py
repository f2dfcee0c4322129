"""
Pytest configuration and fixtures for tunnelgate tests.
"""

import pytest
from fastapi.testclient import TestClient

from tunnelgate.acl import TokenInfo, TokenStore
from tunnelgate.core.config import Settings
from tunnelgate.main import create_app
from tunnelgate.plugin import PluginDispatcher, PolicyEvaluator


@pytest.fixture
def tokens_file(tmp_path):
    return tmp_path / "tokens.ini"


@pytest.fixture
def store(tokens_file) -> TokenStore:
    """Empty store backed by a temporary file."""
    return TokenStore.load(tokens_file)


@pytest.fixture
def seeded_store(store) -> TokenStore:
    """Store with alice (ports), bob (domains) and carol (disabled)."""
    store.add(TokenInfo(user="alice", token="tok123", comment="first user", ports="8080, 8081"))
    store.add(TokenInfo(
        user="bob",
        token="bobtoken",
        domains="bob.example.com,www.bob.example.com",
        subdomains="bob"
    ))
    store.add(TokenInfo(user="carol", token="caroltoken", ports="7000-7010"))
    store.set_enabled(["carol"], False)
    return store


@pytest.fixture
def evaluator(seeded_store) -> PolicyEvaluator:
    return PolicyEvaluator(seeded_store)


@pytest.fixture
def dispatcher(evaluator) -> PluginDispatcher:
    return PluginDispatcher(evaluator)


@pytest.fixture
def settings(tokens_file) -> Settings:
    return Settings(TOKENS_FILE=str(tokens_file), LOG_FORMAT="console")


@pytest.fixture
def client(settings, seeded_store) -> TestClient:
    """Test client over the seeded store, admin auth disabled."""
    app = create_app(settings=settings, store=seeded_store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def secured_client(tokens_file, seeded_store) -> TestClient:
    """Test client with admin Basic auth enabled (admin / s3cret)."""
    settings = Settings(
        TOKENS_FILE=str(tokens_file),
        ADMIN_USER="admin",
        ADMIN_PASSWORD="s3cret",
        LOG_FORMAT="console"
    )
    app = create_app(settings=settings, store=seeded_store)
    with TestClient(app) as test_client:
        yield test_client
