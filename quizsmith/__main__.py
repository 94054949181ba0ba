"""CLI entry point for quizsmith.

Usage:
  python -m quizsmith serve [--host HOST] [--port PORT]
  python -m quizsmith stop
  python -m quizsmith status
  python -m quizsmith generate FILE [--difficulty LEVEL] [--count N] [--kinds a,b] [--seed N] [--no-ai] [--out PATH]
  python -m quizsmith grade QUIZ.json ANSWERS.json
"""
from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "status":
        _status()
    elif command == "generate":
        _generate(args[1:])
    elif command == "grade":
        _grade(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, status, generate, grade")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _positional(args: list[str]) -> list[str]:
    """Arguments that are neither flags nor flag values."""
    valued = {"--host", "--port", "--difficulty", "--count", "--kinds", "--seed", "--out"}
    out = []
    skip = False
    for a in args:
        if skip:
            skip = False
            continue
        if a in valued:
            skip = True
            continue
        if a.startswith("--"):
            continue
        out.append(a)
    return out


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        return False
    finally:
        PID_FILE.unlink(missing_ok=True)


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8770"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting Quizsmith on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "quizsmith.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


def _generate(args: list[str]):
    from quizsmith.config import load_settings
    from quizsmith.coordinator import GenerationCoordinator
    from quizsmith.errors import GenerationImpossible, InputValidationError
    from quizsmith.models import QUESTION_KINDS, GenerationRequest

    paths = _positional(args)
    if not paths:
        print("Usage: generate FILE [--difficulty LEVEL] [--count N] [--kinds a,b] [--seed N] [--no-ai] [--out PATH]")
        sys.exit(1)
    source = Path(paths[0])
    if not source.exists():
        print(f"File not found: {source}")
        sys.exit(1)

    settings = load_settings()
    if "--no-ai" in args:
        settings.llm_provider = "none"

    kinds_flag = _parse_flag(args, "--kinds", None)
    kinds = tuple(k.strip() for k in kinds_flag.split(",") if k.strip()) if kinds_flag else QUESTION_KINDS
    seed = _parse_flag(args, "--seed", None)

    try:
        request = GenerationRequest(
            text=source.read_text(encoding="utf-8"),
            difficulty=_parse_flag(args, "--difficulty", settings.default_difficulty),
            count=int(_parse_flag(args, "--count", str(settings.default_count))),
            kinds=kinds,
        )
        result = asyncio.run(
            GenerationCoordinator.from_settings(settings).generate(
                request, rng=int(seed) if seed is not None else None,
            )
        )
    except (InputValidationError, GenerationImpossible) as e:
        print(f"Error: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"Error: invalid number ({e})")
        sys.exit(1)

    payload = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    out = _parse_flag(args, "--out", None)
    if out:
        Path(out).write_text(payload + "\n", encoding="utf-8")
        print(f"Generated {result.generated}/{result.requested} questions ({result.method}) -> {out}")
    else:
        print(payload)


def _grade(args: list[str]):
    from quizsmith.grading import grade
    from quizsmith.models import QuestionSet

    paths = _positional(args)
    if len(paths) != 2:
        print("Usage: grade QUIZ.json ANSWERS.json")
        sys.exit(1)

    try:
        quiz = json.loads(Path(paths[0]).read_text(encoding="utf-8"))
        answers = json.loads(Path(paths[1]).read_text(encoding="utf-8"))
        # Accept a full generate result as well as a bare question set
        questions = QuestionSet.from_dict(quiz.get("questions", quiz) if isinstance(quiz, dict) else quiz)
        report = grade(questions, answers)
    except (OSError, KeyError, TypeError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    for r in report.results:
        mark = "OK  " if r.correct else "MISS"
        print(f"  {mark} {r.question_id:8s} answered {r.submitted!r}, expected {r.expected!r}")
    print(f"\nScore: {report.score}% ({report.correct_count}/{report.total})")


if __name__ == "__main__":
    main()
