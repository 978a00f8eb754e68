"""Exception hierarchy for url2cite.

Every error raised by the filter is fatal to the run:

    Url2CiteError (base)
    ├── FetchError              citation service returned a non-success response
    ├── ParseError              bibtex source could not be parsed
    ├── CardinalityError        bibtex source did not hold exactly one entry
    ├── UnresolvedCitekeyError  citation id is neither a URL nor a known citekey
    └── ConfigError             unsupported ``url2cite`` metadata value
"""

from __future__ import annotations

from typing import Any


class Url2CiteError(Exception):
    """Base exception; ``context`` is appended to the message in ``str()``."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class FetchError(Url2CiteError):
    def __init__(self, url: str, status: int, body: str = ""):
        message = f"could not fetch citation from {url}"
        if body:
            message += f": {body}"
        super().__init__(message, {"status": status})
        self.url = url
        self.status = status


class ParseError(Url2CiteError):
    pass


class CardinalityError(Url2CiteError):
    def __init__(self, count: int, bibtex: str):
        super().__init__(f"got {count} bibtex entries, expected 1", {"bibtex": bibtex})
        self.count = count


class UnresolvedCitekeyError(Url2CiteError):
    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f"could not find URL for @{key}")
        self.key = key


class ConfigError(Url2CiteError):
    pass
