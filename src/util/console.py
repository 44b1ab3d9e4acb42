"""Rich console helpers for CLI output."""

from __future__ import annotations

import html
import re
from typing import List, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..models.schemas import MockOption, MockQuestion, ScoreResult

console = Console()

_BREAK_TAGS = re.compile(r"<\s*(br|/p|/li|/div|/tr)\b[^>]*>", re.IGNORECASE)
_TAGS = re.compile(r"<[^>]+>")
_BLANK_RUNS = re.compile(r"\n\s*\n+")

_VERDICT_STYLE = {
    "correct": "[green]correct[/green]",
    "wrong": "[red]wrong[/red]",
    "unattempted": "[dim]unattempted[/dim]",
}


def html_to_text(markup: str) -> str:
    """Flatten question markup for a terminal. Math markup is left as typed."""
    text = _BREAK_TAGS.sub("\n", markup or "")
    text = html.unescape(_TAGS.sub("", text))
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return _BLANK_RUNS.sub("\n\n", "\n".join(lines)).strip()


def print_banner(chapters: Sequence[str], total: int, duration_seconds: int) -> None:
    minutes = duration_seconds // 60
    console.print(
        Panel(
            "[bold cyan]Mock Test[/bold cyan]\n"
            f"[dim]{escape(', '.join(chapters))}[/dim]\n"
            f"{total} questions  •  {minutes} min  •  +4 correct / -1 wrong",
            border_style="bright_blue",
        )
    )


def print_question(
    index: int,
    total: int,
    question: MockQuestion,
    clock: str,
    current_answer: str = "",
) -> None:
    header = (
        f"[bold yellow]Q{index + 1}/{total}[/bold yellow]  "
        f"[dim]{escape(question.chapter)} • {question.type.upper()}[/dim]  "
        f"[bold magenta]⏱ {clock}[/bold magenta]"
    )
    body: List[str] = []
    if question.exam_html:
        body.append(f"[dim]{escape(html_to_text(question.exam_html))}[/dim]")
    body.append(escape(html_to_text(question.prompt_html)))
    console.print(Panel("\n\n".join(body), title=header, title_align="left"))
    print_options(question.options)
    if current_answer:
        console.print(f"   [cyan]Your answer:[/cyan] {escape(current_answer)}")


def print_options(options: Sequence[MockOption]) -> None:
    for option in options:
        console.print(f"   [bold]{option.key})[/bold] {escape(html_to_text(option.html))}")


def print_help() -> None:
    console.print(
        "[dim]Type an answer (option letter or value) and press Enter. "
        "Commands: :n next, :p previous, :j <n> jump, :c clear, :s submit, :q quit.[/dim]"
    )


def print_result_summary(result: ScoreResult, auto: bool = False) -> None:
    title = "Time up — auto-submitted" if auto else "Submitted"
    console.print(
        Panel(
            f"[bold]Net marks:[/bold] {result.net_marks} / {result.max_marks}\n"
            f"[bold]Score:[/bold] {result.score_percent}%   "
            f"[bold]Accuracy:[/bold] {result.accuracy_percent}%\n"
            f"Attempted {result.attempted} • Correct {result.correct} • "
            f"Wrong {result.wrong} • Unattempted {result.unattempted}",
            title=title,
            border_style="green" if result.net_marks > 0 else "yellow",
        )
    )


def print_breakdown(result: ScoreResult) -> None:
    table = Table(title="Question Breakdown", show_lines=True)
    table.add_column("Q", style="bold")
    table.add_column("Chapter")
    table.add_column("Type", justify="center")
    table.add_column("Your answer", justify="center")
    table.add_column("Correct", justify="center")
    table.add_column("Verdict", justify="center")
    table.add_column("Marks", justify="right")
    for row in result.breakdown:
        table.add_row(
            str(row.index + 1),
            escape(row.chapter),
            row.type,
            escape(row.user_answer),
            escape(row.correct_answer),
            _VERDICT_STYLE.get(row.verdict, row.verdict),
            f"{row.marks:+d}" if row.marks else "0",
        )
    console.print(table)
