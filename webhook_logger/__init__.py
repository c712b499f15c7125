"""Webhook logger: receive webhook payloads, store them, browse them.

Records are persisted either as JSON files (development) or as rows in
PostgreSQL (production). The active backend is chosen once at startup and
injected into the receiver and browser routes.
"""

__version__ = "1.0.0"
