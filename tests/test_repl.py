"""Tests for the interactive REPL.

Covers command dispatch, session management commands, exit handling,
and streaming a message into the active session.
"""

from __future__ import annotations

import asyncio
import io
from unittest.mock import patch

import httpx
from rich.console import Console

from hydra.catalog import load_models
from hydra.client import ChatClient
from hydra.repl import ChatREPL
from hydra.schemas.config import ClientConfig
from hydra.schemas.messages import TurnState
from hydra.transport import ChatTransport

_HELLO = (
    b'{"token":"Hello","done":false}\n'
    b'{"token":"","done":true,"model":"claude-sonnet-4-5-20250929"}\n'
)


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/health":
        return httpx.Response(200, json={
            "status": "ok", "providers": [{"name": "anthropic", "available": True}],
        })
    return httpx.Response(200, content=_HELLO)


def _make_repl(handler=_handler) -> ChatREPL:
    config = ClientConfig(base_url="http://hydra.test")
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=config.base_url)
    client = ChatClient(config, transport=ChatTransport(config, client=http))
    return ChatREPL(client, load_models())


def _capture() -> Console:
    return Console(file=io.StringIO(), width=200, no_color=True)


# ── Initial State ────────────────────────────────────────────────


class TestREPLState:
    def test_default_state(self):
        repl = _make_repl()
        assert repl.model == "claude-sonnet-4-5-20250929"
        assert not repl.connected
        assert repl.client.active_session is None


# ── Session Commands ─────────────────────────────────────────────


@patch("hydra.repl.console")
class TestSessionCommands:
    def test_new(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new Planning")
        assert repl.client.active_session.title == "Planning"

    def test_new_default_title(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new")
        assert repl.client.active_session.title == "New Chat"

    def test_rename(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new")
        repl._dispatch("/rename  Better title ")
        assert repl.client.active_session.title == "Better title"

    def test_rename_blank_keeps_title(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new Keep")
        repl._dispatch("/rename")
        assert repl.client.active_session.title == "Keep"

    def test_switch_by_prefix(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new first")
        first = repl.client.active_session
        repl._dispatch("/new second")
        repl._dispatch(f"/switch {first.id[:8]}")
        assert repl.client.active_session is first

    def test_switch_unknown(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new only")
        only = repl.client.active_session
        repl._dispatch("/switch nomatch")
        assert repl.client.active_session is only

    def test_delete(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new first")
        first = repl.client.active_session
        repl._dispatch("/new second")
        repl._dispatch("/delete")
        assert repl.client.active_session is first
        assert len(repl.client.sessions()) == 1

    def test_clear(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new")
        repl.client.active_session.timeline.append_user("hi")
        repl._dispatch("/clear")
        assert repl.client.active_session.turns == ()

    def test_sessions_table(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/new")
        repl._dispatch("/sessions")
        assert mock_console.print.called


# ── Model Commands ───────────────────────────────────────────────


@patch("hydra.repl.console")
class TestModelCommands:
    def test_select_by_key(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/model claude-opus")
        assert repl.model == "claude-opus-4-6"

    def test_select_by_id(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/model claude-haiku-4-5-20251001")
        assert repl.model == "claude-haiku-4-5-20251001"

    def test_unknown_model_keeps_current(self, mock_console):
        repl = _make_repl()
        repl._dispatch("/model gpt-nothing")
        assert repl.model == "claude-sonnet-4-5-20250929"

    def test_unavailable_model_rejected(self, mock_console):
        repl = _make_repl()
        repl.catalog["claude-opus"] = repl.catalog["claude-opus"].model_copy(
            update={"available": False},
        )
        repl._dispatch("/model claude-opus")
        assert repl.model == "claude-sonnet-4-5-20250929"


# ── Other Commands ───────────────────────────────────────────────


class TestOtherCommands:
    @patch("hydra.repl.console")
    def test_exit_raises_eof(self, mock_console):
        repl = _make_repl()
        for command in ("/exit", "/quit"):
            try:
                repl._dispatch(command)
            except EOFError:
                continue
            raise AssertionError(f"{command} did not exit")

    def test_help_lists_commands(self):
        console = _capture()
        with patch("hydra.repl.console", console):
            _make_repl()._dispatch("/help")
        output = console.file.getvalue()
        for command in ("/new", "/switch", "/model", "/exit"):
            assert command in output

    def test_unknown_command(self):
        console = _capture()
        with patch("hydra.repl.console", console):
            _make_repl()._dispatch("/bogus")
        assert "Unknown command /bogus" in console.file.getvalue()

    @patch.object(ChatREPL, "_send")
    def test_plain_text_is_sent(self, mock_send):
        repl = _make_repl()
        repl._dispatch("Hello there")
        mock_send.assert_called_once_with("Hello there")


# ── Streaming ────────────────────────────────────────────────────


class TestSend:
    def test_send_streams_into_active_session(self):
        repl = _make_repl()
        repl.connected = True
        console = _capture()
        with patch("hydra.repl.console", console), asyncio.Runner() as runner:
            repl._runner = runner
            repl._send("hi")
            runner.run(repl.client.aclose())

        session = repl.client.active_session
        user, assistant = session.turns
        assert user.text == "hi"
        assert assistant.text == "Hello"
        assert assistant.state == TurnState.COMPLETE
        assert "Hello" in console.file.getvalue()

    def test_send_error_shown_in_turn(self):
        def failing(request):
            return httpx.Response(503, json={"error": "overloaded"})

        repl = _make_repl(failing)
        console = _capture()
        with patch("hydra.repl.console", console), asyncio.Runner() as runner:
            repl._runner = runner
            repl._send("hi")
            runner.run(repl.client.aclose())

        assistant = repl.client.active_session.turns[-1]
        assert assistant.state == TurnState.ERROR
        assert "503 overloaded" in assistant.text


# ── REPL Loop ────────────────────────────────────────────────────


class TestREPLLoop:
    @patch("hydra.repl.console")
    def test_ctrl_c_exits_cleanly(self, mock_console):
        mock_console.input.side_effect = KeyboardInterrupt
        repl = _make_repl()
        repl.run()
        assert repl.connected

    @patch("hydra.repl.console")
    def test_ctrl_d_exits_cleanly(self, mock_console):
        mock_console.input.side_effect = EOFError
        _make_repl().run()

    @patch("hydra.repl.console")
    def test_empty_input_then_exit(self, mock_console):
        mock_console.input.side_effect = ["", "/new Notes", "/exit"]
        repl = _make_repl()
        repl.run()
        assert repl.client.active_session.title == "Notes"
