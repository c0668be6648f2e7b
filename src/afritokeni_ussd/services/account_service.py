"""User accounts: lookup by phone, registration and profile updates."""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import KycStatus
from afritokeni_ussd.domain.exceptions import AccountNotFoundError, ValidationError
from afritokeni_ussd.domain.phone import detect_currency, identity_for
from afritokeni_ussd.domain.pin import hash_pin, is_well_formed
from afritokeni_ussd.infrastructure.database.orm_models import UserAccount
from afritokeni_ussd.infrastructure.database.repositories import AccountRepository
from afritokeni_ussd.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from afritokeni_ussd.domain.enums import Language

logger = get_logger(__name__)


def new_principal_id() -> str:
    return f"usr-{uuid.uuid4().hex[:20]}"


class AccountService:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = AccountRepository(session)

    async def find_by_phone(self, phone_number: str) -> UserAccount | None:
        return await self._repo.get_by_identity(identity_for(phone_number))

    async def get_by_phone(self, phone_number: str) -> UserAccount:
        account = await self.find_by_phone(phone_number)
        if account is None:
            raise AccountNotFoundError(identity_for(phone_number))
        return account

    async def register(
        self,
        phone_number: str,
        first_name: str,
        last_name: str,
        language: Language | None = None,
    ) -> UserAccount:
        """Create the durable account for a verified phone number.

        The preferred currency comes from the dialing code. Registering a
        number that already has an account returns that account.
        """
        existing = await self.find_by_phone(phone_number)
        if existing is not None:
            logger.warning("account.already_registered", identity=existing.phone_or_email)
            return existing

        account = await self._repo.create(
            UserAccount(
                phone_or_email=identity_for(phone_number),
                first_name=first_name,
                last_name=last_name,
                preferred_currency=detect_currency(phone_number),
                language=language.value if language else None,
                principal_id=new_principal_id(),
                kyc_status=KycStatus.NOT_STARTED.value,
            )
        )
        logger.info(
            "account.registered",
            identity=account.phone_or_email,
            currency=account.preferred_currency,
        )
        return account

    async def set_pin(self, account: UserAccount, pin: str) -> None:
        if not is_well_formed(pin):
            raise ValidationError("PIN must be exactly 4 digits")
        account.pin_hash = await asyncio.to_thread(hash_pin, pin)
        account.pin_failed_attempts = 0
        account.pin_locked_until = None
        await self._repo.save(account)
        logger.info("account.pin_set", identity=account.phone_or_email)

    async def update_currency(self, account: UserAccount, currency: str) -> None:
        """Change the preferred currency. It can be edited but never cleared."""
        currency = currency.strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"Invalid currency code: {currency!r}")
        account.preferred_currency = currency
        await self._repo.save(account)

    async def update_language(self, account: UserAccount, language: Language) -> None:
        account.language = language.value
        await self._repo.save(account)
