"""Build report: what a build wrote and what it skipped."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class SkippedFile(BaseModel):
    """A content file left out of the build context."""

    path: str
    reason: str


class BuildReport(BaseModel):
    """Outcome of one build invocation."""

    steps: list[str] = Field(default_factory=list)
    pages: list[str] = Field(default_factory=list)
    admin_pages: list[str] = Field(default_factory=list)
    media: list[str] = Field(default_factory=list)
    assets: list[str] = Field(default_factory=list)
    skipped: list[SkippedFile] = Field(default_factory=list)

    def skip(self, path: Path, reason: str) -> None:
        self.skipped.append(SkippedFile(path=str(path), reason=reason))

    @property
    def has_warnings(self) -> bool:
        return bool(self.skipped)

    def summary(self) -> str:
        parts = [
            f"{len(self.pages)} page(s)",
            f"{len(self.admin_pages)} admin page(s)",
            f"{len(self.media)} media file(s)",
            f"{len(self.assets)} asset(s)",
        ]
        if self.skipped:
            parts.append(f"{len(self.skipped)} skipped")
        return ", ".join(parts)
