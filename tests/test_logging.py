"""Tests for log redaction."""

from __future__ import annotations

from afritokeni_ussd.infrastructure.redis_client import masked_url
from afritokeni_ussd.logging_config import REDACTED, redact_secrets


class TestRedactSecrets:
    def test_masks_handset_input(self) -> None:
        event = {"event": "ussd.turn", "text": "1*2*1234", "pin": "1234", "session_id": "s1"}
        out = redact_secrets(None, "info", event)
        assert out["text"] == REDACTED
        assert out["pin"] == REDACTED
        assert out["session_id"] == "s1"

    def test_leaves_error_codes_and_empty_values(self) -> None:
        event = {"event": "api.not_found", "error_code": "AGREEMENT_NOT_FOUND", "text": ""}
        out = redact_secrets(None, "warning", event)
        assert out["error_code"] == "AGREEMENT_NOT_FOUND"
        assert out["text"] == ""


class TestMaskedUrl:
    def test_hides_credentials(self) -> None:
        assert masked_url("redis://:s3cret@cache:6379/0") == "redis://***@cache:6379/0"

    def test_plain_url_unchanged(self) -> None:
        assert masked_url("redis://localhost:6379/0") == "redis://localhost:6379/0"
