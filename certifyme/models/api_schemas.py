"""
models/api_schemas.py

Response envelopes of the CertifyMe backend.
Validated with pydantic so a malformed body fails at the boundary.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from certifyme.models.test_model import Test


class Envelope(BaseModel):
    """Common `{success, message}` part of every JSON response."""

    model_config = {"extra": "ignore"}

    success: bool = Field(default=False)
    message: Optional[str] = Field(default=None)


class TestEnvelope(Envelope):
    test: Test


class TestListEnvelope(BaseModel):
    model_config = {"extra": "ignore"}

    tests: List[Test] = Field(default_factory=list)


class OwnedTestsEnvelope(BaseModel):
    model_config = {"extra": "ignore"}

    testIds: List[int] = Field(default_factory=list)


class AccessEnvelope(BaseModel):
    model_config = {"extra": "ignore"}

    hasAccess: bool = Field(default=False)


class PassedTestsEnvelope(Envelope):
    tests: List[Dict[str, Any]] = Field(default_factory=list)


class ExplanationEnvelope(Envelope):
    explanation_ua: str = Field(default="")
    explanation_en: str = Field(default="")


class Achievement(BaseModel):
    model_config = {"extra": "ignore"}

    id: int
    code: Optional[str] = None
    title_ua: Optional[str] = None
    title_en: Optional[str] = None


class UnlockEnvelope(Envelope):
    achievement: Optional[Achievement] = None


class AchievementsEnvelope(BaseModel):
    model_config = {"extra": "ignore"}

    achievements: List[Dict[str, Any]] = Field(default_factory=list)


class CertificateInfo(BaseModel):
    """Certificate as listed for a user or returned by verification."""

    model_config = {"extra": "allow"}

    cert_id: str
    test_title: Optional[str] = None
    percent: Optional[float] = None
    expires: Optional[str] = None


class CertificatesEnvelope(Envelope):
    certificates: List[CertificateInfo] = Field(default_factory=list)


class VerifyEnvelope(Envelope):
    model_config = {"extra": "allow"}


class TestResult(BaseModel):
    """Stored result of a past attempt."""

    model_config = {"extra": "ignore"}

    score: int
    total: int
    passed: bool = False
    title_ua: Optional[str] = None
    title_en: Optional[str] = None
    created_at: Optional[str] = None


class ResultEnvelope(Envelope):
    result: TestResult


class CheckoutEnvelope(BaseModel):
    """Checkout session: `url` is the payment page to send the user to."""

    model_config = {"extra": "ignore"}

    url: Optional[str] = None
    message: Optional[str] = None


class PaymentConfirmEnvelope(Envelope):
    unlocked: List[Achievement] = Field(default_factory=list)
