from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class WorkbenchError(Exception):
    """Base error envelope. Raise the subclasses; the controller turns them into a Failed session."""

    code: str
    message: str
    kind: Optional[str] = None
    detail: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.kind:
            parts.append(self.kind)
        if self.detail:
            parts.append(self.detail)
        loc = ":".join(parts) if parts else "<workbench>"
        return f"{loc}: {self.code}: {self.message}"


class TransportError(WorkbenchError):
    pass


class ServiceError(WorkbenchError):
    def __init__(
        self,
        *,
        code: str,
        message: str,
        status: int,
        kind: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(code=code, message=message, kind=kind, detail=detail)
        self.status = status


class MalformedResponseError(WorkbenchError):
    pass


class SourceLoadError(WorkbenchError):
    pass


class ConfigError(WorkbenchError):
    pass
