"""Interactive terminal exam: decode → answer/navigate under a deadline → score."""

from __future__ import annotations

from typing import Callable, Optional

from ..exam.session import ExamSession, format_clock
from ..models.schemas import ScoreResult
from ..models.state import SessionPhase
from ..util.console import (
    console,
    print_banner,
    print_breakdown,
    print_help,
    print_question,
    print_result_summary,
)

InputFn = Callable[[str], str]


class QuitExam(Exception):
    """The user left the exam without submitting; the deadline keeps running."""


def _handle_command(session: ExamSession, raw: str, input_fn: InputFn) -> None:
    parts = raw[1:].split()
    command = parts[0].lower() if parts else ""

    if command == "n":
        session.next()
    elif command == "p":
        session.prev()
    elif command == "j":
        try:
            session.jump_to(int(parts[1]) - 1)
        except (IndexError, ValueError):
            console.print(f"  [red]Usage: :j <1-{session.total_questions}>[/red]")
    elif command == "c":
        session.set_answer("")
    elif command == "s":
        confirm = input_fn("Submit now? [y/N] ").strip().lower()
        if confirm in {"y", "yes"}:
            session.submit()
    elif command == "q":
        raise QuitExam()
    else:
        print_help()


def run_exam(
    session: ExamSession,
    input_fn: InputFn = input,
    show_breakdown: bool = True,
) -> Optional[ScoreResult]:
    """Drive ``session`` from the terminal until it is submitted.

    The countdown is re-checked before every prompt and again after the user
    answers, so an answer typed after the deadline is not recorded.
    """
    if session.phase is SessionPhase.ERROR:
        console.print(f"[bold red]{session.error}[/bold red]")
        return None

    payload = session.payload
    if payload is None:
        return None

    print_banner(payload.chapters, session.total_questions, payload.duration_seconds)
    print_help()

    while session.phase is SessionPhase.ACTIVE:
        remaining = session.tick()
        if session.phase is not SessionPhase.ACTIVE:
            break
        question = session.current_question
        print_question(
            session.current_index,
            session.total_questions,
            question,
            format_clock(remaining),
            session.answer_for(question.id),
        )

        raw = input_fn("> ").strip()
        session.tick()
        if session.phase is not SessionPhase.ACTIVE:
            console.print("[yellow]Time is up. That answer was not recorded.[/yellow]")
            break

        if raw.startswith(":"):
            _handle_command(session, raw, input_fn)
            continue
        if raw:
            session.set_answer(raw)
            if session.current_index < session.total_questions - 1:
                session.next()

    result = session.result()
    if result is None:
        return None
    print_result_summary(result, auto=session.auto_submitted)
    if show_breakdown:
        print_breakdown(result)
    return result
