from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    """Rejected input: missing file, oversize upload, malformed message."""

    def __init__(self, detail: str = "", code: str = "invalid") -> None:
        self.code = code
        super().__init__(detail)


class PersistenceError(AppError):
    pass


class UploadError(AppError):
    pass


def describe_errors(errors: Sequence[Mapping[str, Any]]) -> str:
    """Flatten pydantic error entries into one ``loc: msg; ...`` reason string."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)
