"""FastAPI application: generation and grading endpoints."""
from __future__ import annotations

import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from quizsmith.config import Settings, load_settings, save_settings
from quizsmith.coordinator import GenerationCoordinator
from quizsmith.errors import GenerationImpossible, GradingInputError, InputValidationError
from quizsmith.grading import grade
from quizsmith.models import QUESTION_KINDS, GenerationRequest, QuestionSet

app = FastAPI(title="Quizsmith")

_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def _get_coordinator() -> GenerationCoordinator:
    return GenerationCoordinator.from_settings(get_settings())


async def _json_body(request: Request) -> dict:
    if not await request.body():
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(400, "Request body must be valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(400, "Request body must be a JSON object")
    return body


@app.get("/api/health")
async def api_health():
    s = get_settings()
    return {"status": "ok", "ai_enabled": s.ai_enabled, "llm_provider": s.llm_provider}


# ── API: Generate questions ───────────────────────────────────────────────

@app.post("/api/generate")
async def api_generate(request: Request):
    body = await _json_body(request)
    s = get_settings()
    kinds = body.get("kinds")
    if kinds is None:
        kinds = QUESTION_KINDS
    elif not isinstance(kinds, list):
        raise HTTPException(400, f"kinds: must be a list of question kinds (got {type(kinds).__name__})")
    try:
        req = GenerationRequest(
            text=body.get("text"),
            difficulty=body.get("difficulty", s.default_difficulty),
            count=body.get("count", s.default_count),
            kinds=tuple(kinds),
        )
    except InputValidationError as e:
        raise HTTPException(400, str(e))
    except TypeError:
        raise HTTPException(400, "kinds: must be a list of question kinds")

    seed = body.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise HTTPException(400, f"seed: must be an integer (got {seed!r})")

    try:
        result = await _get_coordinator().generate(req, rng=seed)
    except GenerationImpossible as e:
        raise HTTPException(422, str(e))

    data = result.to_dict()
    data["records"] = result.questions.to_records()
    return data


# ── API: Grade a submission ───────────────────────────────────────────────

@app.post("/api/grade")
async def api_grade(request: Request):
    body = await _json_body(request)
    answers = body.get("answers", {})
    if not isinstance(answers, dict):
        raise HTTPException(400, "answers must be an object keyed by question id")
    try:
        questions = QuestionSet.from_dict(body.get("questions", {}))
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(400, f"Malformed question set: {e}")
    try:
        report = grade(questions, answers)
    except GradingInputError as e:
        raise HTTPException(400, str(e))
    return report.to_dict()


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await _json_body(request)
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
