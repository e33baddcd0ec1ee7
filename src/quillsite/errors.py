"""Error taxonomy shared by the build pipeline and the admin surface."""

from __future__ import annotations


class QuillsiteError(Exception):
    """Base class for every error raised by quillsite."""


class RejectedPath(QuillsiteError):
    """A path resolved outside the project root, or could not be resolved."""

    def __init__(self, path: object, reason: str = "outside project root") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Rejected path {path!s}: {reason}")


class DecodeError(QuillsiteError):
    """A content file could not be decoded (malformed JSON, bad encoding)."""


class RenderError(QuillsiteError):
    """A template failed to compile or render."""


class SaveError(QuillsiteError):
    """A content file could not be written. The original is left untouched."""


class UnsupportedOperation(QuillsiteError):
    """The requested operation is not available for this content type."""


class NestingDepthError(QuillsiteError):
    """A value tree or submitted field path nests deeper than allowed."""


class BuildStepError(QuillsiteError):
    """A build step failed; the remaining steps were not run."""

    def __init__(self, step: str, cause: BaseException) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Build step '{step}' failed: {cause}")
