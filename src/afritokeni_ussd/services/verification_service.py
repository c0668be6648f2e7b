"""Registration codes: issue, deliver by SMS, check."""

from __future__ import annotations

from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import CodeCheckResult
from afritokeni_ussd.i18n import MessageKey, translate
from afritokeni_ussd.infrastructure.code_store import CODE_LENGTH
from afritokeni_ussd.logging_config import get_logger

if TYPE_CHECKING:
    from afritokeni_ussd.domain.collaborator_protocol import SmsSender
    from afritokeni_ussd.domain.enums import Language
    from afritokeni_ussd.infrastructure.code_store import VerificationCodeStore

logger = get_logger(__name__)


class VerificationService:
    def __init__(
        self,
        codes: VerificationCodeStore,
        sms: SmsSender,
        ttl_seconds: int = 600,
    ) -> None:
        self._codes = codes
        self._sms = sms
        self._ttl_minutes = max(1, ttl_seconds // 60)

    async def start(self, phone_number: str, language: Language | None = None) -> None:
        """Issue a fresh code and text it. DeliveryError propagates unretried."""
        code = await self._codes.issue(phone_number)
        message = translate(MessageKey.CODE_SMS, language, code=code, minutes=self._ttl_minutes)
        await self._sms.send(phone_number, message)
        logger.info("verification.code_sent", phone=phone_number)

    async def check(self, phone_number: str, candidate: str) -> CodeCheckResult:
        """Check a typed code. Malformed input never reaches the store."""
        candidate = candidate.strip()
        if len(candidate) != CODE_LENGTH or not (candidate.isascii() and candidate.isdigit()):
            return CodeCheckResult.MISMATCH
        result = await self._codes.check(phone_number, candidate)
        logger.info("verification.checked", phone=phone_number, result=result.value)
        return result
