from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from code_workbench.core.errors import SourceLoadError


# Upload types the editor accepts, with the language hint each implies.
SUPPORTED_SUFFIXES: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".txt": "text",
}


@dataclass(frozen=True)
class SourceFile:
    path: str
    text: str
    language: str


def load_source(path: str) -> SourceFile:
    """Read a local source file's full text for the code buffer.

    The language is advisory metadata derived from the suffix; content is not checked.
    """

    p = Path(path)
    if not p.exists():
        raise SourceLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            detail=str(p),
        )

    suffix = p.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise SourceLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message=f"supported formats are {', '.join(sorted(SUPPORTED_SUFFIXES))}",
            detail=str(p),
        )

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceLoadError(code="E_FILE_READ", message=str(e), detail=str(p)) from e

    return SourceFile(path=str(p), text=text, language=SUPPORTED_SUFFIXES[suffix])
