"""Webhook inbound system.

Accepts any POST to /webhook, records headers, body and query parameters,
and persists the record through the configured storage backend.
"""
