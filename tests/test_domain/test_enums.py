"""Tests for domain enumerations."""

from __future__ import annotations

from afritokeni_ussd.domain.enums import (
    AssetType,
    EscrowStatus,
    EventType,
    Language,
    ResponseKind,
)


class TestEscrowStatus:
    def test_all_statuses_exist(self) -> None:
        expected = {"pending", "funded", "completed", "expired", "cancelled"}
        assert {s.value for s in EscrowStatus} == expected

    def test_status_is_str_enum(self) -> None:
        assert isinstance(EscrowStatus.FUNDED, str)
        assert EscrowStatus.FUNDED == "funded"

    def test_terminal_states(self) -> None:
        terminal = {s for s in EscrowStatus if s.is_terminal}
        assert terminal == {EscrowStatus.COMPLETED, EscrowStatus.EXPIRED, EscrowStatus.CANCELLED}


class TestAssetType:
    def test_code_prefixes(self) -> None:
        assert AssetType.CKBTC.code_prefix == "BTC"
        assert AssetType.CKUSDC.code_prefix == "USDC"


class TestEventType:
    def test_rejections_are_audited(self) -> None:
        assert EventType.VERIFICATION_REJECTED == "VERIFICATION_REJECTED"


class TestWireValues:
    def test_response_tags(self) -> None:
        assert ResponseKind.CONTINUE.value == "CON"
        assert ResponseKind.END.value == "END"

    def test_language_codes(self) -> None:
        assert [lang.value for lang in Language] == ["en", "lg", "sw"]
