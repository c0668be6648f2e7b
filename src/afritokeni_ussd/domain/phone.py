"""Phone number helpers: normalisation and currency detection by dialing code."""

from __future__ import annotations

import re

DEFAULT_CURRENCY = "UGX"
DEFAULT_DIAL_CODE = "256"

DIAL_CODE_CURRENCIES: dict[str, str] = {
    "20": "EGP",  # Egypt
    "27": "ZAR",  # South Africa
    "212": "MAD",  # Morocco
    "213": "DZD",  # Algeria
    "216": "TND",  # Tunisia
    "220": "GMD",  # Gambia
    "221": "XOF",  # Senegal
    "223": "XOF",  # Mali
    "224": "GNF",  # Guinea
    "225": "XOF",  # Cote d'Ivoire
    "226": "XOF",  # Burkina Faso
    "227": "XOF",  # Niger
    "228": "XOF",  # Togo
    "229": "XOF",  # Benin
    "230": "MUR",  # Mauritius
    "231": "LRD",  # Liberia
    "232": "SLL",  # Sierra Leone
    "233": "GHS",  # Ghana
    "234": "NGN",  # Nigeria
    "235": "XAF",  # Chad
    "236": "XAF",  # Central African Republic
    "237": "XAF",  # Cameroon
    "238": "CVE",  # Cape Verde
    "239": "STN",  # Sao Tome and Principe
    "240": "XAF",  # Equatorial Guinea
    "241": "XAF",  # Gabon
    "242": "XAF",  # Republic of Congo
    "243": "CDF",  # DR Congo
    "244": "AOA",  # Angola
    "245": "XOF",  # Guinea-Bissau
    "248": "SCR",  # Seychelles
    "249": "SDG",  # Sudan
    "250": "RWF",  # Rwanda
    "251": "ETB",  # Ethiopia
    "252": "SOS",  # Somalia
    "253": "DJF",  # Djibouti
    "254": "KES",  # Kenya
    "255": "TZS",  # Tanzania
    "256": "UGX",  # Uganda
    "257": "BIF",  # Burundi
    "258": "MZN",  # Mozambique
    "260": "ZMW",  # Zambia
    "261": "MGA",  # Madagascar
    "263": "ZWL",  # Zimbabwe
    "264": "NAD",  # Namibia
    "265": "MWK",  # Malawi
    "266": "LSL",  # Lesotho
    "267": "BWP",  # Botswana
    "268": "SZL",  # Eswatini
    "269": "KMF",  # Comoros
}

# Longest codes first so "27" never shadows a three digit code.
_CODES_BY_LENGTH = sorted(DIAL_CODE_CURRENCIES, key=len, reverse=True)

_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(phone_number: str) -> str:
    return _NON_DIGITS.sub("", phone_number)


def detect_currency(phone_number: str) -> str:
    """Return the local currency for a phone number's dialing code.

    Unknown prefixes fall back to UGX.
    """
    digits = digits_only(phone_number)
    for code in _CODES_BY_LENGTH:
        if digits.startswith(code):
            return DIAL_CODE_CURRENCIES[code]
    return DEFAULT_CURRENCY


def normalize_phone(raw: str, default_dial_code: str = DEFAULT_DIAL_CODE) -> str | None:
    """Turn user-typed phone input into international digits without '+'.

    Accepts "+256700123456", "256700123456", "0700123456" and "700123456".
    Returns None when the input cannot be a phone number.
    """
    digits = digits_only(raw)
    if not digits or len(digits) != len(raw.strip().lstrip("+")):
        return None
    if digits.startswith("0"):
        digits = default_dial_code + digits[1:]
    elif len(digits) == 9:
        digits = default_dial_code + digits
    if not 10 <= len(digits) <= 15:
        return None
    return digits


def identity_for(phone_number: str) -> str:
    """Account identity key for a phone number: '+' followed by digits."""
    return f"+{digits_only(phone_number)}"
