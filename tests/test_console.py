"""Tests for the interactive ChatConsole."""

import io
from unittest.mock import create_autospec

import pytest

from docchat import ChatConsole, ChatOrchestrator, ModelServiceError
from docchat.console import DEFAULT_PROMPT, is_exit_command

from .conftest import FakeChatModel


def _console(orchestrator, session, lines: str):
    stdout, stderr = io.StringIO(), io.StringIO()
    console = ChatConsole(
        orchestrator,
        session,
        stdin=io.StringIO(lines),
        stdout=stdout,
        stderr=stderr,
    )
    return console, stdout, stderr


@pytest.mark.parametrize("line", ["exit", "EXIT", "Exit", "  exit  "])
def test_is_exit_command(line):
    assert is_exit_command(line)


@pytest.mark.parametrize("line", ["exit now", "quit", "", "exits"])
def test_is_not_exit_command(line):
    assert not is_exit_command(line)


def test_exit_does_not_ask(session):
    orchestrator = create_autospec(ChatOrchestrator, instance=True)
    console, stdout, _ = _console(orchestrator, session, "Exit\nWhat is Spring?\n")

    assert console.run() == 0

    orchestrator.ask.assert_not_called()
    assert stdout.getvalue() == DEFAULT_PROMPT


def test_end_of_input_ends_session(session):
    orchestrator = create_autospec(ChatOrchestrator, instance=True)
    console, _, _ = _console(orchestrator, session, "")

    assert console.run() == 0
    orchestrator.ask.assert_not_called()


def test_answer_is_streamed_then_newline(orchestrator_factory, populated_index, session):
    model = FakeChatModel(chunks=["Beans ", "are objects."])
    console, stdout, stderr = _console(
        orchestrator_factory(populated_index, model), session, "What is a bean?\nexit\n"
    )

    console.run()

    assert stdout.getvalue() == (
        DEFAULT_PROMPT + "Beans are objects.\n" + DEFAULT_PROMPT
    )
    assert stderr.getvalue() == ""
    assert len(session.memory) == 2


def test_blank_lines_are_skipped(session):
    orchestrator = create_autospec(ChatOrchestrator, instance=True)
    console, _, _ = _console(orchestrator, session, "\n   \nexit\n")

    console.run()

    orchestrator.ask.assert_not_called()


def test_model_error_is_reported_and_loop_continues(
    orchestrator_factory, populated_index, session
):
    failing = FakeChatModel(error=ModelServiceError("model unavailable"), fail_after=0)
    orchestrator = orchestrator_factory(populated_index, failing)
    console, stdout, stderr = _console(orchestrator, session, "Q1\nQ2\nexit\n")

    assert console.run() == 0

    assert stderr.getvalue().count("model unavailable") == 2
    assert stdout.getvalue().count(DEFAULT_PROMPT) == 3
    assert len(failing.requests) == 2
    assert len(session.memory) == 0


def test_unexpected_error_is_reported(orchestrator_factory, populated_index, session):
    broken = FakeChatModel(error=RuntimeError("boom"), fail_after=1)
    console, stdout, stderr = _console(
        orchestrator_factory(populated_index, broken), session, "Q\nexit\n"
    )

    console.run()

    assert "An error occurred: boom" in stderr.getvalue()
    assert stdout.getvalue().startswith(DEFAULT_PROMPT + "Test ")


def test_interrupt_aborts_only_current_answer(
    orchestrator_factory, populated_index, session
):
    model = FakeChatModel(chunks=["half ", "way"], error=KeyboardInterrupt(), fail_after=1)
    orchestrator = orchestrator_factory(populated_index, model)
    console, stdout, stderr = _console(orchestrator, session, "Q1\nQ2\nexit\n")

    console.run()

    assert stderr.getvalue().count("answer interrupted") == 2
    assert "half " in stdout.getvalue()
    assert len(session.memory) == 0
