"""Per-menu USSD handlers.

Every handler takes the turn context and the newest token and returns either a
response or a redirect to another menu. The router owns the dispatch table.
"""
