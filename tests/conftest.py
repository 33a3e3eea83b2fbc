"""Pytest configuration and shared fixtures."""

import pytest


@pytest.fixture(scope="function")
def app():
    """Create test Flask app with proper context handling."""
    from ai_agent.app import create_app
    from ai_agent.config import TestingConfig

    app = create_app(TestingConfig)
    app.config["TESTING"] = True

    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def mock_adapter(app):
    """The MockAdapter registered by the testing config."""
    from ai_agent.llm import get_gateway

    return get_gateway().registry.get_adapter("mock")


@pytest.fixture
def skill_factory():
    """Build in-memory skills with sensible defaults."""
    from ai_agent.skills import Skill

    def make(skill_id, **overrides):
        fields = {
            "id": skill_id,
            "name": skill_id,
            "description": f"{skill_id} description",
            "content": f"# {skill_id}\n\nInstructions for {skill_id}.",
        }
        fields.update(overrides)
        return Skill(**fields)

    return make
