"""Tests for the command-line interface."""
from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from quizsmith import __main__ as cli
from quizsmith.config import Settings


def _run(monkeypatch, *argv):
    monkeypatch.setattr("sys.argv", ["quizsmith", *argv])
    cli.main()


@pytest.fixture
def settings():
    """Settings with AI disabled, so no test ever reaches a real model."""
    s = Settings(llm_provider="none")
    with patch("quizsmith.config.load_settings", return_value=s):
        yield s


class TestArgs:
    def test_parse_flag(self):
        assert cli._parse_flag(["--count", "5"], "--count", "10") == "5"
        assert cli._parse_flag(["--count"], "--count", "10") == "10"
        assert cli._parse_flag([], "--seed", None) is None

    def test_positional_skips_flag_values(self):
        args = ["--difficulty", "easy", "notes.txt", "--no-ai", "--count", "3"]
        assert cli._positional(args) == ["notes.txt"]

    def test_unknown_command(self, monkeypatch, capsys):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "bake")
        assert exc.value.code == 1
        assert "Unknown command" in capsys.readouterr().out


class TestStatus:
    def test_not_running(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setattr(cli, "PID_FILE", tmp_path / ".server.pid")
        _run(monkeypatch, "status")
        assert "not running" in capsys.readouterr().out

    def test_stale_pid_file_removed(self, monkeypatch, tmp_path, capsys):
        pid_file = tmp_path / ".server.pid"
        pid_file.write_text("not-a-pid")
        monkeypatch.setattr(cli, "PID_FILE", pid_file)
        _run(monkeypatch, "stop")
        assert "not running" in capsys.readouterr().out
        assert not pid_file.exists()


class TestGenerateAndGrade:
    def test_generate_to_file_then_grade(self, monkeypatch, tmp_path, capsys, settings, passage):
        source = tmp_path / "notes.txt"
        source.write_text(passage)
        quiz_path = tmp_path / "quiz.json"

        _run(monkeypatch, "generate", str(source), "--count", "3", "--kinds", "multiple-choice,true-false",
             "--seed", "12", "--out", str(quiz_path))
        assert "Generated 3/3 questions (rule-based)" in capsys.readouterr().out

        quiz = json.loads(quiz_path.read_text())
        answers = {item["id"]: item["correctAnswer"] for item in quiz["questions"]["multipleChoice"]}
        answers.update({item["id"]: item["answer"] for item in quiz["questions"]["trueFalse"]})
        answers_path = tmp_path / "answers.json"
        answers_path.write_text(json.dumps(answers))

        _run(monkeypatch, "grade", str(quiz_path), str(answers_path))
        assert "Score: 100% (3/3)" in capsys.readouterr().out

    def test_no_ai_flag_overrides_settings(self, monkeypatch, tmp_path, capsys, passage):
        source = tmp_path / "notes.txt"
        source.write_text(passage)
        with patch("quizsmith.config.load_settings", return_value=Settings(llm_provider="ollama")):
            _run(monkeypatch, "generate", str(source), "--no-ai", "--count", "2", "--seed", "1")
        assert json.loads(capsys.readouterr().out)["method"] == "rule-based"

    def test_generate_prints_json(self, monkeypatch, tmp_path, capsys, settings, passage):
        source = tmp_path / "notes.txt"
        source.write_text(passage)
        _run(monkeypatch, "generate", str(source), "--count", "2", "--kinds", "fill-in-blank")
        data = json.loads(capsys.readouterr().out)
        assert data["requested"] == 2
        assert data["questions"]["multipleChoice"] == []

    def test_generate_invalid_request(self, monkeypatch, tmp_path, capsys, settings):
        source = tmp_path / "notes.txt"
        source.write_text("Too short.")
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "generate", str(source))
        assert exc.value.code == 1
        assert "text: must be at least 50 characters" in capsys.readouterr().out

    def test_generate_missing_file(self, monkeypatch, tmp_path, capsys, settings):
        with pytest.raises(SystemExit):
            _run(monkeypatch, "generate", str(tmp_path / "missing.txt"))
        assert "File not found" in capsys.readouterr().out

    def test_grade_empty_quiz(self, monkeypatch, tmp_path, capsys):
        quiz_path = tmp_path / "quiz.json"
        quiz_path.write_text(json.dumps({"multipleChoice": [], "trueFalse": [], "fillInTheBlank": []}))
        answers_path = tmp_path / "answers.json"
        answers_path.write_text("{}")
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, "grade", str(quiz_path), str(answers_path))
        assert exc.value.code == 1
        assert "no questions" in capsys.readouterr().out
