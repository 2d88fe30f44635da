from __future__ import annotations

import logging

SENSITIVE_ATTRS = ("request", "request_body", "data", "body")
TOKEN_ATTRS = ("access_token", "refresh_token", "code")


class StripSensitiveFieldsFilter(logging.Filter):
    """
    Drop request bodies and OAuth material from log records.

    Spotify access/refresh tokens and authorization codes travel through the
    linkage path and must never reach the log sink.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr in SENSITIVE_ATTRS:
            if hasattr(record, attr):
                setattr(record, attr, None)
        for attr in TOKEN_ATTRS:
            if hasattr(record, attr):
                setattr(record, attr, "[redacted]")
        return True
