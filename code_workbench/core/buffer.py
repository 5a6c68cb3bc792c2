from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


DEFAULT_SOURCE = '''# Your LLM SDK code here

class MyLLMModel:
    def __init__(self):
        self.name = "my-custom-model"

    def generate(self, prompt: str) -> str:
        # Implement your model logic
        return f"Response to: {prompt}"
'''

ChangeOrigin = Literal["edit", "apply"]


@dataclass(frozen=True)
class BufferChange:
    version: int
    origin: ChangeOrigin


class CodeBuffer:
    """The workbench's single source text plus a strictly increasing version.

    Every operation snapshots `version` when it is issued; any later mutation
    makes results computed from that snapshot stale.
    """

    def __init__(self, content: str = DEFAULT_SOURCE) -> None:
        self._content = content
        self._version = 0
        self._history: list[BufferChange] = []

    @property
    def content(self) -> str:
        return self._content

    @property
    def version(self) -> int:
        return self._version

    @property
    def history(self) -> list[BufferChange]:
        return list(self._history)

    def edit(self, new_text: str) -> int:
        """User edit. Any text is accepted; returns the new version."""
        return self._replace(new_text, "edit")

    def apply_result(self, text: str) -> int:
        """Replace content with an externally produced result (same version bump as edit)."""
        return self._replace(text, "apply")

    def _replace(self, text: str, origin: ChangeOrigin) -> int:
        # Content and version change together; nothing awaits in between.
        self._content = text
        self._version += 1
        self._history.append(BufferChange(version=self._version, origin=origin))
        return self._version
