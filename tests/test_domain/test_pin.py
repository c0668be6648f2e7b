"""Tests for PIN hashing."""

from __future__ import annotations

import pytest

from afritokeni_ussd.domain.pin import hash_pin, is_well_formed, verify_pin


class TestWellFormed:
    @pytest.mark.parametrize("pin", ["0000", "1234", "9999"])
    def test_four_digits(self, pin: str) -> None:
        assert is_well_formed(pin)

    @pytest.mark.parametrize("pin", ["", "123", "12345", "12a4", "0", "¹²³⁴", "١٢٣٤"])
    def test_malformed(self, pin: str) -> None:
        assert not is_well_formed(pin)


class TestHashing:
    def test_hash_never_contains_pin_digits_verbatim(self) -> None:
        stored = hash_pin("1234", salt="fixedsalt", iterations=1000)
        assert stored.startswith("pbkdf2_sha256$1000$fixedsalt$")
        assert stored.rsplit("$", 1)[-1] != "1234"

    def test_verify_roundtrip(self) -> None:
        stored = hash_pin("4321", iterations=1000)
        assert verify_pin("4321", stored)
        assert not verify_pin("1234", stored)

    def test_salts_differ(self) -> None:
        assert hash_pin("1234", iterations=1000) != hash_pin("1234", iterations=1000)

    @pytest.mark.parametrize("stored", ["", "garbage", "md5$1$salt$abc"])
    def test_unparseable_hash_rejects(self, stored: str) -> None:
        assert not verify_pin("1234", stored)
