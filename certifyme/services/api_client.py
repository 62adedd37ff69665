"""
services/api_client.py

HTTP client for the CertifyMe backend.

Every public method returns `Ok(value)` or `Err(ApiError)`; nothing here
raises on network or schema problems. Callers decide how to surface errors.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from certifyme.models.api_schemas import (
    AccessEnvelope,
    AchievementsEnvelope,
    CertificatesEnvelope,
    CertificateInfo,
    CheckoutEnvelope,
    Envelope,
    ExplanationEnvelope,
    OwnedTestsEnvelope,
    PassedTestsEnvelope,
    PaymentConfirmEnvelope,
    ResultEnvelope,
    TestEnvelope,
    TestListEnvelope,
    UnlockEnvelope,
    VerifyEnvelope,
)
from certifyme.models.result import ApiError, Err, ErrorKind, Ok, Result
from certifyme.models.test_model import Test

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

TokenProvider = Callable[[], Optional[str]]


class CertifyMeClient:
    """
    Thin async wrapper over the backend REST API.

    Attributes:
        base_url:       backend root, e.g. "http://localhost:5000"
        token_provider: returns the current bearer token or None
        timeout:        per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider = lambda: None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._transport = transport

    # ── plumbing ───────────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Result[httpx.Response]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, path, json=json, params=params, headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            return Err(ApiError(ErrorKind.NETWORK, str(e) or type(e).__name__))

        if response.is_error:
            logger.warning(f"{method} {path} -> HTTP {response.status_code}")
            return Err(ApiError(
                ErrorKind.UNSUCCESSFUL,
                _error_message(response),
                response.status_code,
            ))
        return Ok(response)

    async def _request(
        self,
        method: str,
        path: str,
        schema: Type[M],
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Result[M]:
        sent = await self._send(method, path, json=json, params=params)
        if isinstance(sent, Err):
            return sent
        response = sent.value

        try:
            body = response.json()
        except ValueError:
            logger.warning(f"{method} {path}: response is not JSON")
            return Err(ApiError(ErrorKind.MALFORMED, "Response is not JSON", response.status_code))

        if isinstance(body, dict) and body.get("success") is False:
            return Err(ApiError(
                ErrorKind.UNSUCCESSFUL,
                str(body.get("message") or "Request was not successful"),
                response.status_code,
            ))

        try:
            parsed = schema.model_validate(body)
        except ValidationError as e:
            logger.warning(f"{method} {path}: unexpected response shape ({e.error_count()} errors)")
            return Err(ApiError(ErrorKind.MALFORMED, str(e), response.status_code))

        if isinstance(parsed, Envelope) and not parsed.success:
            return Err(ApiError(
                ErrorKind.UNSUCCESSFUL,
                parsed.message or "Request was not successful",
                response.status_code,
            ))
        return Ok(parsed)

    # ── tests ──────────────────────────────────────────────────────────────

    async def get_test(self, test_id: int) -> Result[Test]:
        result = await self._request("GET", f"/api/tests/{test_id}", TestEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.test)

    async def list_tests(self, lang: str = "ua") -> Result[List[Test]]:
        result = await self._request("GET", "/api/tests", TestListEnvelope, params={"lang": lang})
        if isinstance(result, Err):
            return result
        return Ok(result.value.tests)

    async def owned_test_ids(self) -> Result[List[int]]:
        result = await self._request("GET", "/api/user/tests", OwnedTestsEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.testIds)

    async def check_access(self, test_id: int) -> Result[bool]:
        result = await self._request("GET", f"/api/user/tests/check/{test_id}", AccessEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.hasAccess)

    async def passed_tests(self) -> Result[List[Dict[str, Any]]]:
        result = await self._request("GET", "/api/tests/user/passed", PassedTestsEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.tests)

    async def get_result(self, result_id: int) -> Result[ResultEnvelope]:
        return await self._request("GET", f"/api/tests/result/{result_id}", ResultEnvelope)

    # ── explanations ───────────────────────────────────────────────────────

    async def request_explanation(
        self,
        question: str,
        options: List[str],
        correct: str,
        user_answer: str,
    ) -> Result[ExplanationEnvelope]:
        payload = {
            "question": question,
            "options": options,
            "correct": correct,
            "userAnswer": user_answer,
        }
        return await self._request("POST", "/api/ai/explain", ExplanationEnvelope, json=payload)

    # ── achievements ───────────────────────────────────────────────────────

    async def unlock_achievement(self, code: str) -> Result[UnlockEnvelope]:
        return await self._request(
            "POST", "/api/achievements/unlock", UnlockEnvelope, json={"code": code}
        )

    async def update_achievements_batch(self, updates: List[Dict[str, Any]]) -> Result[None]:
        sent = await self._send("POST", "/api/achievements/update-batch", json={"updates": updates})
        if isinstance(sent, Err):
            return sent
        return Ok(None)

    async def list_achievements(self) -> Result[List[Dict[str, Any]]]:
        result = await self._request("GET", "/api/achievements", AchievementsEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.achievements)

    # ── payments ───────────────────────────────────────────────────────────

    async def checkout(self, test_id: int) -> Result[str]:
        """Start a checkout session; Ok carries the payment page URL."""
        result = await self._request(
            "POST", "/api/payments/checkout", CheckoutEnvelope, json={"testId": test_id}
        )
        if isinstance(result, Err):
            return result
        if not result.value.url:
            return Err(ApiError(
                ErrorKind.UNSUCCESSFUL,
                result.value.message or "Payment initialization error",
            ))
        return Ok(result.value.url)

    async def confirm_payment(self, test_id: int) -> Result[PaymentConfirmEnvelope]:
        return await self._request(
            "POST", "/api/payments/confirm-local", PaymentConfirmEnvelope, json={"testId": test_id}
        )

    # ── certificates ───────────────────────────────────────────────────────

    async def generate_certificate(self, test_title: str, score: int, total: int) -> Result[bytes]:
        sent = await self._send(
            "POST",
            "/api/certificates/generate",
            json={"test_title": test_title, "score": score, "total": total},
        )
        if isinstance(sent, Err):
            return sent
        content = sent.value.content
        if not content:
            return Err(ApiError(ErrorKind.MALFORMED, "Empty certificate body", sent.value.status_code))
        return Ok(content)

    async def user_certificates(self) -> Result[List[CertificateInfo]]:
        result = await self._request("GET", "/api/tests/user/certificates", CertificatesEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.certificates)

    async def verify_certificate(self, cert_id: str) -> Result[Dict[str, Any]]:
        result = await self._request("GET", f"/api/tests/certificates/{cert_id}", VerifyEnvelope)
        if isinstance(result, Err):
            return result
        return Ok(result.value.model_dump())


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"
