"""USSD conversation layer: router, handler context and per-menu handlers."""
