"""Tests for registration code delivery and checks."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from afritokeni_ussd.domain.enums import CodeCheckResult, Language
from afritokeni_ussd.domain.exceptions import DeliveryError
from afritokeni_ussd.services.verification_service import VerificationService


class TestVerificationService:
    @pytest.mark.asyncio
    async def test_start_texts_a_code(self, codes, sms, read_code) -> None:
        svc = VerificationService(codes, sms, ttl_seconds=600)
        await svc.start("256700123456")

        recipient, message = sms.outbox[-1]
        assert recipient == "+256700123456"
        assert "10 minutes" in message
        assert await svc.check("256700123456", read_code()) is CodeCheckResult.ACCEPTED

    @pytest.mark.asyncio
    async def test_message_in_user_language(self, codes, sms) -> None:
        await VerificationService(codes, sms).start("256700123456", Language.ENGLISH)
        assert sms.outbox[-1][1].startswith("AfriTokeni Verification")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "candidate", ["", "12345", "1234567", "12a456", "¹²³⁴⁵⁶", "١٢٣٤٥٦"]
    )
    async def test_malformed_input_never_reaches_store(self, sms, candidate: str) -> None:
        store = AsyncMock()
        svc = VerificationService(store, sms)
        assert await svc.check("256700123456", candidate) is CodeCheckResult.MISMATCH
        store.check.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delivery_error_propagates(self, codes) -> None:
        sms = AsyncMock()
        sms.send.side_effect = DeliveryError("gateway down")
        with pytest.raises(DeliveryError):
            await VerificationService(codes, sms).start("256700123456")
