"""Tests for export and HTML rendering."""

import json

import pytest

from assistant_chat.core import Session
from assistant_chat.export import (
    message_to_html,
    session_to_json,
    session_to_markdown,
)

from conftest import assistant, user


@pytest.fixture
def sample_session():
    return Session(
        id=1736935200000,
        title="Fix the login bug in auth.ts",
        history=(
            assistant("Hello! How can I help you today?"),
            user("Fix the login bug in auth.ts"),
            assistant("Here's the change:\n\n```\nconst token = await validateToken(input);\n```"),
        ),
        last_updated=1736935230000,
    )


class TestMarkdownExport:
    def test_includes_session_title(self, sample_session):
        assert "# Fix the login bug in auth.ts" in session_to_markdown(sample_session)

    def test_includes_metadata(self, sample_session):
        result = session_to_markdown(sample_session)
        assert "**Messages:** 3" in result
        assert "**Updated:** 2025-01-15T10:00:30+00:00" in result

    def test_includes_messages_with_roles(self, sample_session):
        result = session_to_markdown(sample_session)
        assert "## User" in result
        assert "## Assistant" in result
        assert "validateToken" in result

    def test_preserves_code_fences(self, sample_session):
        result = session_to_markdown(sample_session)
        assert "```\nconst token" in result


class TestJsonExport:
    def test_matches_stored_shape(self, sample_session):
        data = json.loads(session_to_json(sample_session))
        assert data["id"] == sample_session.id
        assert data["lastUpdated"] == sample_session.last_updated
        assert data["history"][1] == {"role": "user", "content": "Fix the login bug in auth.ts"}

    def test_round_trips(self, sample_session):
        assert Session.from_dict(json.loads(session_to_json(sample_session))) == sample_session

    def test_unicode_preserved(self):
        session = Session(id=1, title="Café", history=(user("naïve ☕"),), last_updated=1)
        assert "naïve ☕" in session_to_json(session)


class TestHtmlRendering:
    def test_emphasis_and_breaks(self):
        assert message_to_html("a **b** *c*\nd") == (
            "<p>a <strong>b</strong> <em>c</em><br/>d</p>"
        )

    def test_code_block(self):
        assert message_to_html("```py\nif a < b:\n    pass\n```") == (
            "<pre><code>if a &lt; b:\n    pass</code></pre>"
        )

    def test_model_markup_is_escaped(self):
        html = message_to_html('<script>alert("x")</script> **<img src=x onerror=y>**')
        assert "<script>" not in html
        assert "<img" not in html
        assert "&lt;script&gt;" in html
        assert "<strong>&lt;img src=x onerror=y&gt;</strong>" in html
