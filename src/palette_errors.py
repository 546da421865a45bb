from __future__ import annotations

from typing import Optional


class PaletteError(Exception):
    """Base class for every failure in the extraction pipeline."""


class FetchError(PaletteError):
    def __init__(self, url: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        if status_code is not None:
            msg = f"Request to {url} failed with status {status_code}"
        else:
            msg = f"Request to {url} failed: {reason or 'transport error'}"
        super().__init__(msg)


class NotFoundError(PaletteError):
    pass


class ExtractError(PaletteError):
    pass


class ParseError(PaletteError):
    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)


class IntegrityError(PaletteError):
    def __init__(self, intent_id):
        self.intent_id = intent_id
        super().__init__(f"Missing intent definition for id {intent_id}")


class IoError(PaletteError):
    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Could not write {path}: {reason}")
