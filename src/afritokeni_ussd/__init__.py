"""AfriTokeni USSD session engine and agent escrow exchange."""

__version__ = "0.1.0"
