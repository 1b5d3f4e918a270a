"""CLI entry point for assistant-chat."""

import asyncio
import logging
from datetime import datetime

import click
import uvicorn

from .backends import get_default_provider
from .config import get_state_db_path
from .controller import ConversationController, SessionNotFoundError
from .core import Message, Role
from .credentials import CredentialStore, looks_like_gemini_key
from .export import session_to_json, session_to_markdown
from .parser import BoldSpan, CodeSegment, ItalicSpan, LineBreak, parse_message
from .prompts import ReplyLength
from .session_store import SessionStore
from .storage import SqliteStorage

REPL_HELP = "Commands: /new, /list, /load N, /length compact|default|verbose, /quit"


def _open_storage() -> SqliteStorage:
    return SqliteStorage(get_state_db_path())


def _build_controller(storage) -> ConversationController:
    controller = ConversationController(
        SessionStore(storage),
        get_default_provider(CredentialStore(storage)),
    )
    controller.initialize()
    return controller


def render_message(msg: Message) -> str:
    """Render a message for the terminal using its parsed segments."""
    label = click.style("You" if msg.role == Role.USER else "Gemini", bold=True,
                        fg="cyan" if msg.role == Role.USER else "magenta")
    blocks = []
    for segment in parse_message(msg.content):
        if isinstance(segment, CodeSegment):
            code = "\n".join(f"  {line}" for line in segment.code.split("\n"))
            blocks.append(click.style(code, fg="green"))
            continue
        out = []
        for span in segment.spans:
            if isinstance(span, BoldSpan):
                out.append(click.style(span.text, bold=True))
            elif isinstance(span, ItalicSpan):
                out.append(click.style(span.text, italic=True))
            elif isinstance(span, LineBreak):
                out.append("\n")
            else:
                out.append(span.text)
        blocks.append("".join(out))
    return f"{label}: " + "\n".join(blocks)


def _print_sessions(controller: ConversationController) -> None:
    sessions = controller.sessions
    if not sessions:
        click.echo("No saved chats yet.")
        return
    for n, session in enumerate(sessions, 1):
        marker = "*" if session.id == controller.active_id else " "
        updated = datetime.fromtimestamp(session.last_updated / 1000).strftime("%Y-%m-%d %H:%M")
        click.echo(f"{marker}{n:>2}. {session.title}  ({updated}, id={session.id})")


def _print_transcript(controller: ConversationController) -> None:
    for msg in controller.transcript:
        click.echo(render_message(msg))
        click.echo()


def _prompt_credential(credentials: CredentialStore) -> None:
    key = click.prompt("Gemini API key", hide_input=True)
    if not looks_like_gemini_key(key):
        click.echo('Gemini API keys typically start with "AIza". Double-check your key.', err=True)
    try:
        credentials.save(key)
    except ValueError as e:
        raise click.ClickException(str(e))


def _ensure_credential(credentials: CredentialStore) -> None:
    if not credentials.get():
        _prompt_credential(credentials)


@click.group()
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging verbosity.")
def main(log_level: str):
    """Chat with Gemini from the terminal or a local web API."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@main.command()
def chat():
    """Start an interactive chat."""
    storage = _open_storage()
    _ensure_credential(CredentialStore(storage))
    controller = _build_controller(storage)

    click.echo(REPL_HELP)
    click.echo()
    _print_transcript(controller)

    while True:
        try:
            text = click.prompt("You", prompt_suffix="> ")
        except click.Abort:
            click.echo()
            break

        command, _, arg = text.strip().partition(" ")
        if command == "/quit":
            break
        elif command == "/new":
            controller.start_new_chat()
            _print_transcript(controller)
        elif command == "/list":
            _print_sessions(controller)
        elif command == "/load":
            sessions = controller.sessions
            if not arg.isdigit() or not 1 <= int(arg) <= len(sessions):
                click.echo("Usage: /load N (see /list)", err=True)
                continue
            try:
                controller.load_session(sessions[int(arg) - 1].id)
            except SessionNotFoundError:
                click.echo("That chat is no longer stored.", err=True)
                continue
            _print_transcript(controller)
        elif command == "/length":
            try:
                controller.reply_length = ReplyLength(arg)
            except ValueError:
                click.echo(REPL_HELP, err=True)
                continue
            click.echo(f"Reply length: {controller.reply_length.value}")
        elif command.startswith("/"):
            click.echo(REPL_HELP, err=True)
        elif text.strip():
            click.echo(click.style("Generating...", italic=True))
            reply = asyncio.run(controller.record_turn(text))
            if reply is not None:
                click.echo(render_message(reply))
                click.echo()


@main.command()
def sessions():
    """List saved chats, newest first."""
    controller = _build_controller(_open_storage())
    _print_sessions(controller)


@main.command()
@click.argument("session_id", type=int)
@click.option("--format", "fmt", default="md", type=click.Choice(["md", "json"]),
              help="Export format.")
def export(session_id: int, fmt: str):
    """Print a saved chat as Markdown or JSON."""
    controller = _build_controller(_open_storage())
    session = controller.get_session(session_id)
    if session is None:
        raise click.ClickException(f"No saved chat with id {session_id}")
    click.echo(session_to_json(session) if fmt == "json" else session_to_markdown(session))


@main.command()
def login():
    """Store a Gemini API key."""
    _prompt_credential(CredentialStore(_open_storage()))
    click.echo("API key saved.")


@main.command()
def logout():
    """Forget the stored API key."""
    CredentialStore(_open_storage()).clear()
    click.echo("API key cleared.")


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web API."""
    click.echo(f"Starting assistant-chat on http://{host}:{port}")
    uvicorn.run("assistant_chat.server:app", host=host, port=port, reload=False)
