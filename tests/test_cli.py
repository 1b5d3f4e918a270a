"""Tests for the command line interface."""

import click
import pytest
from click.testing import CliRunner

from assistant_chat.cli import main, render_message
from assistant_chat.credentials import CredentialStore
from assistant_chat.session_store import SessionStore
from assistant_chat.storage import SqliteStorage

from conftest import FakeProvider, assistant, make_session, seed


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("ASSISTANT_CHAT_DATA_PATH", str(tmp_path))
    return tmp_path


@pytest.fixture
def state(data_dir):
    return SqliteStorage(data_dir / "state.db")


def test_render_message_styles_spans():
    out = render_message(assistant("**Bold** and\n```\nx = 1\n```"))
    plain = click.unstyle(out)
    assert plain.startswith("Gemini: Bold and")
    assert "  x = 1" in plain


def test_sessions_lists_newest_first(state):
    seed(state, [make_session(1, 1_000, "older chat"), make_session(2, 2_000, "newer chat")])
    result = CliRunner().invoke(main, ["sessions"])
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert "newer chat" in lines[0]
    assert "older chat" in lines[1]


def test_sessions_empty(data_dir):
    result = CliRunner().invoke(main, ["sessions"])
    assert result.exit_code == 0
    assert "No saved chats yet." in result.output


def test_export_markdown(state):
    seed(state, [make_session(7, 1_000, "Explain decorators")])
    result = CliRunner().invoke(main, ["export", "7"])
    assert result.exit_code == 0
    assert "# Explain decorators" in result.output


def test_export_missing(data_dir):
    result = CliRunner().invoke(main, ["export", "7"])
    assert result.exit_code == 1
    assert "No saved chat with id 7" in result.output


def test_login_and_logout(state):
    runner = CliRunner()
    result = runner.invoke(main, ["login"], input="AIzaSecret\n")
    assert result.exit_code == 0
    assert CredentialStore(state).get() == "AIzaSecret"

    result = runner.invoke(main, ["logout"])
    assert result.exit_code == 0
    assert CredentialStore(state).get() is None


def test_login_warns_on_unusual_key(state):
    result = CliRunner().invoke(main, ["login"], input="sk-123\n")
    assert result.exit_code == 0
    assert "AIza" in result.output


def test_chat_session(state, monkeypatch):
    CredentialStore(state).save("AIzaSecret")
    provider = FakeProvider(["Sure, **here** you go."])
    monkeypatch.setattr("assistant_chat.cli.get_default_provider", lambda credentials: provider)

    result = CliRunner().invoke(main, ["chat"], input="Tell me a joke\n/list\n/quit\n")

    assert result.exit_code == 0, result.output
    assert "Sure, here you go." in click.unstyle(result.output)
    assert "Tell me a joke" in result.output
    sessions = SessionStore(state).load()
    assert len(sessions) == 1
    assert sessions[0].title == "Tell me a joke"
