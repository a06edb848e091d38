"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import uuid
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# Test environment must be in place before settings are first loaded
os.environ["AWS_ACCESS_KEY_ID"] = "test_key"
os.environ["AWS_SECRET_ACCESS_KEY"] = "test_secret"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["NETLIFY_ACCESS_TOKEN"] = ""
os.environ["DEPLOY_POLL_DELAY_SECONDS"] = "0"
os.environ["LOG_LEVEL"] = "ERROR"

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sitegen import create_app
from sitegen.models.base import build_engine, create_tables, get_db_dependency
from sitegen.models.conversation import Conversation
from sitegen.models.generation import Generation, DeploymentStatus, GenerationStatus
from sitegen.models.user import User, AuthSession
from sitegen.routes.dependencies import get_claude_service, get_netlify_service, get_session_factory
from sitegen.services.claude_service import ClaudeService
from sitegen.services.netlify_service import NetlifyService, NetlifySite, NetlifyDeploy
from sitegen.services.prompts import CLASSIFICATION_PROMPT

SAMPLE_HTML = "<!DOCTYPE html><html><body><h1>Bakery</h1></body></html>"


def fenced(html: str) -> str:
    return f"```html\n{html}\n```"


@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = build_engine("sqlite:///:memory:")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a test database session for each test."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def _create_user(db, email: str, token: str) -> User:
    user = User(id=str(uuid.uuid4()), name=email.split("@")[0], email=email)
    db.add(user)
    db.add(AuthSession(
        id=str(uuid.uuid4()),
        token=token,
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(days=1)
    ))
    db.commit()
    return user


@pytest.fixture
def user(test_db):
    return _create_user(test_db, "owner@example.com", "owner-token")


@pytest.fixture
def other_user(test_db):
    return _create_user(test_db, "intruder@example.com", "intruder-token")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": "Bearer owner-token"}


@pytest.fixture
def other_auth_headers(other_user):
    return {"Authorization": "Bearer intruder-token"}


@pytest.fixture
def make_conversation(test_db):
    """
    Factory seeding a conversation with `versions` generations, the last current.
    """
    def _make(user_id, versions=1, deployment_status=DeploymentStatus.NOT_DEPLOYED, title="Bakery site"):
        now = datetime.utcnow()
        conversation = Conversation(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            description="Build a bakery site",
            created_at=now,
            updated_at=now
        )
        test_db.add(conversation)

        generation = None
        for n in range(1, versions + 1):
            is_last = n == versions
            generation = Generation(
                id=str(uuid.uuid4()),
                conversation_id=conversation.id,
                user_id=user_id,
                version=n,
                user_prompt=f"prompt {n}",
                ai_response=fenced(f"<html><body>v{n}</body></html>"),
                model="test-model",
                status=GenerationStatus.COMPLETED,
                is_current_version=is_last,
                deployment_status=deployment_status if is_last else DeploymentStatus.NOT_DEPLOYED,
                created_at=now + timedelta(seconds=n),
                updated_at=now + timedelta(seconds=n)
            )
            if is_last and deployment_status in (DeploymentStatus.DEPLOYED, DeploymentStatus.DEPLOYING):
                generation.deployment_id = "site-existing"
                generation.deployment_url = "https://existing.netlify.app"
            test_db.add(generation)

        if generation is not None:
            conversation.current_generation_id = generation.id
        test_db.commit()
        return conversation

    return _make


@pytest.fixture
def mock_claude(mocker):
    """
    ClaudeService double.

    Classification calls answer with `mock_claude.intention`; generation
    calls answer with `mock_claude.site_html` wrapped in an html fence.
    """
    mock = mocker.MagicMock(spec=ClaudeService)
    mock.intention = "generate"
    mock.site_html = SAMPLE_HTML

    def generate_text(system_prompt, prompt=None, messages=None, temperature=None, max_tokens=None):
        if system_prompt == CLASSIFICATION_PROMPT:
            return mock.intention
        return fenced(mock.site_html)

    mock.generate_text.side_effect = generate_text
    mock.stream_text.side_effect = lambda *args, **kwargs: iter(["<html>", "<body>Streamed</body>", "</html>"])
    return mock


@pytest.fixture
def mock_netlify(mocker):
    """Configured NetlifyService double whose deploys go live immediately."""
    mock = mocker.MagicMock(spec=NetlifyService)
    mock.configured = True
    mock.create_site.return_value = NetlifySite(
        id="site-123",
        name="my-bakery",
        url="http://my-bakery.netlify.app",
        ssl_url="https://my-bakery.netlify.app"
    )
    mock.deploy_files.return_value = NetlifyDeploy(id="deploy-456", state="uploaded", required=[])
    mock.get_site.return_value = NetlifySite(
        id="site-123",
        name="my-bakery",
        url="http://my-bakery.netlify.app",
        ssl_url="https://my-bakery.netlify.app",
        published_state="ready"
    )
    return mock


@pytest.fixture(scope="function")
def client(test_db, session_factory, mock_claude, mock_netlify):
    """Create test client with overridden dependencies."""
    app = create_app()

    # Override database dependency
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db_dependency] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_claude_service] = lambda: mock_claude
    app.dependency_overrides[get_netlify_service] = lambda: mock_netlify

    with TestClient(app) as test_client:
        yield test_client
