"""
api/routes.py — FastAPI endpoints of the local client app
"""

import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel

import api.session as session
from certifyme.models.attempt_state import AttemptPhase, SubmitReason
from certifyme.models.result import Err, ErrorKind
from certifyme.models.test_model import normalize_lang
from certifyme.services.attempt_service import AttemptSession
from certifyme.services.certificate_service import CertificateRequester
from certifyme.services.context import ClientContext
from certifyme.services.notices import NoticeBoard
from certifyme.services.test_metadata import describe

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class TokenBody(BaseModel):
    token: str


class LangBody(BaseModel):
    lang: str


class StartAttemptBody(BaseModel):
    test_id: int


class ToggleBody(BaseModel):
    question_id: int
    answer_id: int


class BatchUpdateBody(BaseModel):
    updates: List[Dict[str, Any]]


class ConfirmPaymentBody(BaseModel):
    test_id: Optional[int] = None


# ── Helpers ──────────────────────────────────────────────────────────────────

def _sid(request: Request) -> str:
    return request.state.session_id


def _ctx(request: Request) -> ClientContext:
    """Context of the calling browser: its own storage and audio gate."""
    audio = session.get(_sid(request), "audio")
    return request.app.state.context.for_browser(request.state.browser_id, audio)


def _lang(request: Request) -> str:
    return session.get(_sid(request), "lang", "ua")


def _notices(request: Request) -> NoticeBoard:
    return session.get(_sid(request), "notices")


def _attempt(request: Request) -> AttemptSession:
    attempt = session.get(_sid(request), "attempt")
    if attempt is None:
        raise HTTPException(status_code=404, detail="No active attempt.")
    return attempt


def _raise_for(err: Err, not_found: str) -> None:
    status = err.error.status_code
    if err.error.kind is ErrorKind.UNSUCCESSFUL and status in (401, 403, 404):
        raise HTTPException(status_code=status, detail=not_found)
    raise HTTPException(status_code=502, detail=f"Backend error: {err.error.message}")


# ── Client settings ──────────────────────────────────────────────────────────

@router.post("/api/token")
async def set_token(body: TokenBody, request: Request):
    token = body.token.strip()
    if not token:
        raise HTTPException(status_code=400, detail="Token is empty.")
    _ctx(request).store.set_token(token)
    return {"ok": True}


@router.delete("/api/token")
async def clear_token(request: Request):
    _ctx(request).store.set_token(None)
    return {"ok": True}


@router.post("/api/lang")
async def set_lang(body: LangBody, request: Request):
    lang = normalize_lang(body.lang)
    session.put(_sid(request), "lang", lang)
    return {"lang": lang, "ok": True}


@router.post("/api/audio-unlock")
async def audio_unlock(request: Request):
    """Called on the first user gesture; later notices may play sound."""
    _ctx(request).audio.unlock()
    return {"audio_unlocked": True}


@router.get("/api/notices")
async def drain_notices(request: Request):
    return {"notices": _notices(request).drain(_lang(request))}


# ── Catalogue ────────────────────────────────────────────────────────────────

@router.get("/api/tests")
async def list_tests(request: Request):
    ctx = _ctx(request)
    lang = _lang(request)
    tests = await ctx.client.list_tests(lang)
    if isinstance(tests, Err):
        _raise_for(tests, "Tests not found.")

    owned, passed = [], []
    if ctx.store.get_token():
        owned_result = await ctx.client.owned_test_ids()
        owned = [] if isinstance(owned_result, Err) else owned_result.value
        passed_result = await ctx.client.passed_tests()
        passed = [] if isinstance(passed_result, Err) else passed_result.value

    return {
        "tests": [
            {
                "id": t.id,
                "title": t.text("title", lang),
                "description": t.text("description", lang),
                "price": t.price,
                "owned": t.id in owned,
            }
            for t in tests.value
        ],
        "owned_ids": owned,
        "passed": passed,
    }


@router.get("/api/tests/{test_id}/details")
async def test_details(test_id: int, request: Request):
    result = await _ctx(request).client.get_test(test_id)
    if isinstance(result, Err):
        _raise_for(result, "Test not found.")
    return describe(result.value, _lang(request), _ctx(request).seconds_per_question)


@router.get("/api/tests/{test_id}/access")
async def check_access(test_id: int, request: Request):
    ctx = _ctx(request)
    if not ctx.store.get_token():
        return {"has_access": False}
    result = await ctx.client.check_access(test_id)
    if isinstance(result, Err):
        _notices(request).error("Помилка перевірки доступу", "Access check error")
        raise HTTPException(status_code=502, detail="Access check failed.")
    if not result.value:
        _notices(request).error("💳 Спочатку оплатіть тест!", "💳 Please purchase the test first!")
    return {"has_access": result.value}


@router.post("/api/tests/{test_id}/checkout")
async def start_checkout(test_id: int, request: Request):
    result = await _ctx(request).payments(_notices(request)).start(test_id)
    if isinstance(result, Err):
        _raise_for(result, "Checkout refused.")
    return {"url": result.value}


@router.post("/api/payments/confirm")
async def confirm_payment(body: ConfirmPaymentBody, request: Request):
    result = await _ctx(request).payments(_notices(request)).confirm(body.test_id)
    if isinstance(result, Err):
        if result.error.kind is ErrorKind.UNSUCCESSFUL and result.error.status_code is None:
            raise HTTPException(status_code=400, detail=result.error.message)
        _raise_for(result, "Payment not confirmed.")
    return {"ok": True, "unlocked": [a.model_dump() for a in result.value]}


@router.get("/api/results/{result_id}")
async def stored_result(result_id: int, request: Request):
    ctx = _ctx(request)
    if not ctx.store.get_token():
        _notices(request).error("Спочатку увійди в акаунт", "Please log in first")
        raise HTTPException(status_code=401, detail="Not logged in.")
    result = await ctx.client.get_result(result_id)
    if isinstance(result, Err):
        _notices(request).error("Результат не знайдено", "Result not found")
        _raise_for(result, "Result not found.")
    stored = result.value.result
    percent = round(stored.score / stored.total * 100) if stored.total else 0
    return {**stored.model_dump(), "percent": percent}


# ── Attempt ──────────────────────────────────────────────────────────────────

@router.post("/api/attempts")
async def start_attempt(body: StartAttemptBody, request: Request):
    sid = _sid(request)
    attempt = _ctx(request).new_attempt(body.test_id, _notices(request))
    session.replace_attempt(sid, attempt)

    result = await attempt.load()
    if isinstance(result, Err):
        _raise_for(result, "Test not found.")
    return attempt.snapshot(_lang(request))


@router.get("/api/attempt")
async def attempt_state(request: Request):
    return _attempt(request).snapshot(_lang(request))


@router.post("/api/attempt/toggle")
async def toggle_answer(body: ToggleBody, request: Request):
    attempt = _attempt(request)
    if attempt.state.phase is AttemptPhase.SUBMITTED:
        raise HTTPException(status_code=400, detail="The attempt is already submitted.")
    if attempt.state.phase is not AttemptPhase.IN_PROGRESS:
        raise HTTPException(status_code=400, detail="The test is not loaded yet.")
    try:
        selected = attempt.toggle(body.question_id, body.answer_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "question_id": body.question_id,
        "selected": sorted(selected),
        "answered_count": len(attempt.state.answered_ids()),
    }


@router.post("/api/attempt/submit")
async def submit_attempt(request: Request):
    attempt = _attempt(request)
    submitted = await attempt.submit(SubmitReason.MANUAL)
    if not submitted and not attempt.state.is_submitted:
        raise HTTPException(status_code=400, detail="The test is not loaded yet.")
    return {"submitted": submitted, **attempt.results()}


@router.get("/api/attempt/results")
async def attempt_results(request: Request):
    attempt = _attempt(request)
    if not attempt.state.is_submitted:
        raise HTTPException(status_code=400, detail="The attempt is not submitted yet.")
    return attempt.results()


@router.post("/api/attempt/explanation/{index}")
async def toggle_explanation(index: int, request: Request):
    attempt = _attempt(request)
    lang = _lang(request)
    try:
        result = await attempt.explain(index, lang)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(result, Err):
        raise HTTPException(status_code=502, detail="Failed to get explanation.")
    entry = result.value
    return {"index": index, "visible": entry.visible, "explanation": entry.text(lang)}


async def _generate_certificate(request: Request):
    attempt = _attempt(request)
    if not attempt.state.is_submitted:
        raise HTTPException(status_code=400, detail="The attempt is not submitted yet.")
    result = await attempt.certificate(_lang(request))
    if isinstance(result, Err):
        raise HTTPException(status_code=502, detail="Failed to generate certificate.")
    return result.value


@router.get("/api/attempt/certificate")
async def download_certificate(request: Request):
    cert = await _generate_certificate(request)
    return Response(
        content=cert.content,
        media_type=cert.media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(cert.filename)}"},
    )


@router.post("/api/attempt/certificate/save")
async def save_certificate(request: Request):
    directory = _ctx(request).download_dir
    if not directory:
        raise HTTPException(status_code=503, detail="No download directory configured.")
    cert = await _generate_certificate(request)
    try:
        path = CertificateRequester.save(cert, directory)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Could not save certificate: {e}")
    _notices(request).success("📄 Сертифікат збережено", "📄 Certificate saved")
    return {"path": path, "filename": os.path.basename(path)}


# ── Achievements & certificates ──────────────────────────────────────────────

@router.get("/api/achievements")
async def achievements(request: Request):
    notifier = _ctx(request).notifier(_notices(request))
    return {"achievements": await notifier.list_achievements()}


@router.post("/api/achievements/update-batch")
async def update_achievements(body: BatchUpdateBody, request: Request):
    notifier = _ctx(request).notifier(_notices(request))
    return {"ok": await notifier.update_batch(body.updates)}


@router.get("/api/certificates")
async def my_certificates(request: Request):
    certificates = _ctx(request).certificates(_notices(request))
    return {"certificates": [c.model_dump() for c in await certificates.list_mine()]}


@router.get("/api/certificates/{cert_id}/verify")
async def verify_certificate(cert_id: str, request: Request):
    result = await _ctx(request).client.verify_certificate(cert_id)
    if isinstance(result, Err):
        return {"success": False}
    return result.value


@router.post("/api/reset")
async def reset_session(request: Request):
    session.reset(_sid(request))
    return {"ok": True}
