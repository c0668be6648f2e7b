"""Enum-keyed translations for every USSD prompt and SMS."""

from afritokeni_ussd.i18n.catalog import DEFAULT_LANGUAGE, translate
from afritokeni_ussd.i18n.keys import MessageKey

__all__ = ["DEFAULT_LANGUAGE", "MessageKey", "translate"]
