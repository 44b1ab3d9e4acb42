"""Mock CLI entrypoint — ``python -m src.main``."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from .assembly.builder import assemble_mock
from .assembly.index_builder import write_index
from .assembly.resolver import split_chapter_param
from .config import load_settings
from .corpus_client import CorpusClient
from .errors import MockError
from .exam.session import ExamSession
from .observability.logging_setup import configure_logging
from .orchestration.exam_runner import QuitExam, run_exam
from .orchestration.session_store import JsonFileStore
from .token_codec import build_share_url, decode_token, encode_token, extract_token
from .util.console import console


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mock",
        description="Assemble shareable mock tests and take them in the terminal.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Level for diagnostic logs written to stderr.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Assemble a mock and print its share link.")
    create.add_argument("chapters", help="Comma-separated chapter names.")
    create.add_argument("--max", dest="max_questions", default=None)
    create.add_argument("--duration", default=None, help="Duration in seconds.")
    create.add_argument("--origin", default=None, help="Share URL origin.")

    take = sub.add_parser("take", help="Take a mock from a token or share link.")
    take.add_argument("token", help="Mock token or share URL.")
    take.add_argument("--store", type=Path, default=None, help="Session store file.")

    decode = sub.add_parser("decode", help="Print the payload carried by a token.")
    decode.add_argument("token", help="Mock token or share URL.")

    index = sub.add_parser("index", help="Write index.json for a local corpus.")
    index.add_argument("root", type=Path)
    index.add_argument("--output", type=Path, default=None)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _cmd_create(args: argparse.Namespace) -> int:
    chapters = split_chapter_param(args.chapters)
    if not chapters:
        console.print("[red]Provide comma-separated chapter names.[/red]")
        return 2
    settings = load_settings()
    assembled = assemble_mock(
        chapters,
        CorpusClient(settings),
        max_questions=args.max_questions,
        duration_seconds=args.duration,
        max_workers=settings.max_workers,
    )
    for warning in assembled.warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    token = encode_token(assembled.payload)
    origin = args.origin or settings.public_base_url or "http://127.0.0.1:8000"
    console.print(build_share_url(origin, token), soft_wrap=True)
    console.print(
        f"[dim]{len(assembled.payload.questions)} questions • token size {len(token)}[/dim]"
    )
    return 0


def _cmd_take(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.store or load_settings().session_store_path)
    session = ExamSession.open(extract_token(args.token), store)
    try:
        result = run_exam(session)
    except QuitExam:
        console.print("\n[dim]Left the exam. The timer keeps running for this link.[/dim]")
        return 0
    return 0 if result is not None else 1


def _cmd_decode(args: argparse.Namespace) -> int:
    payload = decode_token(extract_token(args.token))
    console.print_json(
        json.dumps(payload.model_dump(mode="json", by_alias=True, exclude_none=True))
    )
    return 0


def _cmd_index(args: argparse.Namespace) -> int:
    target = write_index(args.root, args.output)
    console.print(f"Wrote index: {target}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("src.api:app", host=args.host, port=args.port)
    return 0


_COMMANDS = {
    "create": _cmd_create,
    "take": _cmd_take,
    "decode": _cmd_decode,
    "index": _cmd_index,
    "serve": _cmd_serve,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command != "serve":
        configure_logging(fmt="rich", level=args.log_level)
    try:
        return _COMMANDS[args.command](args)
    except MockError as exc:
        console.print(f"[bold red]{exc.message}[/bold red]")
        details = {k: v for k, v in exc.to_dict().items() if k != "error"}
        if details:
            console.print_json(json.dumps(details, default=str))
        return 1
    except FileNotFoundError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[dim]Session cancelled.[/dim]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
