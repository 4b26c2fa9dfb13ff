"""Pytest configuration for phased testing.

Tests are organized by phase (f1, f2, ..., f6).
Only tests for the current phase and completed phases should run.
Future phase tests are automatically skipped.
"""

from unittest.mock import MagicMock

import pytest

from skillforge.config.app_config import clear_config_cache
from skillforge.db.database import init_db
from skillforge.db.users_repository import create_profile

# Current implementation phase
CURRENT_PHASE = 6


def pytest_collection_modifyitems(config, items):
    """Skip tests from phases that haven't been implemented yet."""
    for item in items:
        # Extract phase from path (tests/f2/... -> 2)
        parts = item.fspath.strpath.split("/")
        for part in parts:
            if part.startswith("f") and part[1:].isdigit():
                test_phase = int(part[1:])
                if test_phase > CURRENT_PHASE:
                    item.add_marker(
                        pytest.mark.skip(
                            reason=f"Phase F{test_phase} not yet implemented (current: F{CURRENT_PHASE})"
                        )
                    )
                break


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh database in a temporary working directory."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    db_path = tmp_path / "db" / "test.db"
    init_db(db_path)
    yield db_path
    clear_config_cache()


@pytest.fixture
def make_user(db):
    """Factory creating user profiles."""

    def _make(uid: str, full_name: str | None = None, **fields):
        return create_profile(
            uid,
            fields.pop("email", f"{uid}@example.com"),
            full_name or f"User {uid}",
            **fields,
        )

    return _make


@pytest.fixture
def mock_llm_client():
    """Mock LLM client that returns fixed responses without calling a real LLM."""
    client = MagicMock()
    client.config = MagicMock()
    client.config.provider = "gemini"
    client.config.model = "test-model"
    client.is_available.return_value = True
    client.simple_chat.return_value = "A helpful answer."
    client.simple_json.return_value = {}
    return client


@pytest.fixture
def sample_quiz() -> list[dict]:
    """Three well-formed quiz questions."""
    return [
        {
            "question_text": "What does HTTP stand for?",
            "options": [
                "HyperText Transfer Protocol",
                "High Transfer Text Protocol",
                "Hyperlink Text Protocol",
                "Host Transfer Protocol",
            ],
            "correct_answer_index": 0,
            "explanation": "HTTP is the HyperText Transfer Protocol.",
        },
        {
            "question_text": "Which method is idempotent?",
            "options": ["POST", "PUT", "PATCH", "CONNECT"],
            "correct_answer_index": 1,
        },
        {
            "question_text": "Which status code means Not Found?",
            "options": ["200", "301", "404", "500"],
            "correct_answer_index": 2,
        },
    ]


@pytest.fixture
def sample_plan(sample_quiz) -> dict:
    """Model output for a three-milestone learning plan."""
    return {
        "skill_to_learn": "Web APIs",
        "plan_title": "Your Journey to Web APIs",
        "overview": "Learn how web APIs work, from HTTP basics to designing your own.",
        "milestones": [
            {
                "milestone_title": "HTTP Basics",
                "description": "Understand requests, responses, methods and status codes.",
                "estimated_duration": "2-3 days",
                "suggested_search_keywords": ["http", "status codes", "rest basics"],
                "quiz": sample_quiz,
            },
            {
                "milestone_title": "Designing Resources",
                "description": "Model resources and URLs for a REST API.",
                "estimated_duration": "1 week",
                "suggested_search_keywords": ["rest design", "resource modeling", "api urls"],
            },
            {
                "milestone_title": "Authentication",
                "description": "Protect endpoints with tokens and sessions.",
                "estimated_duration": "1 week",
                "suggested_search_keywords": ["api auth", "tokens", "oauth"],
                "external_resource_suggestions": ["RFC 6749 overview"],
            },
        ],
    }
