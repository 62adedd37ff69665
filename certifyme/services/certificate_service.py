"""
services/certificate_service.py

Certificate PDFs: generated by the backend, delivered to the user as a
download. No retry or polling.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import List

from certifyme.models.api_schemas import CertificateInfo
from certifyme.models.result import Err, Ok, Result
from certifyme.services.api_client import CertifyMeClient
from certifyme.services.notices import NoticeBoard

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class CertificateFile:
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE


def certificate_filename(test_title: str) -> str:
    slug = re.sub(r"[^\w-]+", "_", test_title.strip(), flags=re.UNICODE).strip("_")
    return f"certificate_{slug or 'test'}.pdf"


def _unique_path(directory: str, filename: str) -> str:
    base, ext = os.path.splitext(filename)
    candidate = os.path.join(directory, filename)
    n = 1
    while os.path.exists(candidate):
        candidate = os.path.join(directory, f"{base}_{n}{ext}")
        n += 1
    return candidate


class CertificateRequester:
    def __init__(self, client: CertifyMeClient, notices: NoticeBoard):
        self.client = client
        self.notices = notices

    async def request(self, test_title: str, score: int, total: int) -> Result[CertificateFile]:
        result = await self.client.generate_certificate(test_title, score, total)
        if isinstance(result, Err):
            logger.warning(f"Certificate generation failed: {result.error}")
            self.notices.error(
                "Не вдалося згенерувати сертифікат",
                "Failed to generate certificate",
            )
            return result
        return Ok(CertificateFile(certificate_filename(test_title), result.value))

    @staticmethod
    def save(certificate: CertificateFile, directory: str) -> str:
        """Write the PDF into `directory` without overwriting. Returns the path."""
        os.makedirs(directory, exist_ok=True)
        path = _unique_path(directory, certificate.filename)
        with open(path, "wb") as f:
            f.write(certificate.content)
        logger.info(f"Certificate saved: {path}")
        return path

    async def list_mine(self) -> List[CertificateInfo]:
        result = await self.client.user_certificates()
        if isinstance(result, Err):
            logger.warning(f"Loading certificates failed: {result.error}")
            self.notices.error("Не вдалося завантажити сертифікати", "Failed to load certificates")
            return []
        return result.value
