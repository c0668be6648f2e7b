"""Exchange-rate source backed by configured reference prices.

Rates are expressed as local currency units per one unit of an asset:
the asset's USD price times the currency's USD rate.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from afritokeni_ussd.domain.enums import AssetType
from afritokeni_ussd.domain.exceptions import CollaboratorError

if TYPE_CHECKING:
    from afritokeni_ussd.config import Settings


class StaticRateProvider:
    """Reads reference prices from settings."""

    def __init__(self, asset_usd: dict[str, Decimal], usd_fx: dict[str, Decimal]) -> None:
        self._asset_usd = asset_usd
        self._usd_fx = usd_fx

    @classmethod
    def from_settings(cls, settings: Settings) -> StaticRateProvider:
        return cls(
            asset_usd={
                AssetType.CKBTC.value: settings.btc_usd_rate,
                AssetType.CKUSDC.value: settings.usdc_usd_rate,
            },
            usd_fx=settings.usd_fx_rates,
        )

    async def local_rate(self, asset: str, currency: str) -> Decimal:
        try:
            return self._asset_usd[asset] * self._usd_fx[currency]
        except KeyError as exc:
            raise CollaboratorError(
                message=f"No rate for {asset} in {currency}",
                code="RATE_UNAVAILABLE",
            ) from exc
