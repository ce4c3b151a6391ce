"""Ingestion helpers.

Everything that turns loosely structured provider payloads into
normalized location events lives here.
"""

__all__: list[str] = []
