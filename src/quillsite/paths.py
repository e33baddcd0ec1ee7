"""PathGuard: keep every content read and write inside the project root."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from quillsite.errors import RejectedPath

logger = logging.getLogger(__name__)


class PathGuard:
    """Validates that candidate paths resolve at or beneath a root directory.

    Relative candidates are interpreted against the root, not the process
    working directory. Symlinks are followed before the containment check,
    so a link pointing outside the root is rejected.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def validate(self, candidate: str | Path) -> Path:
        """Return the resolved absolute path, or raise RejectedPath.

        Any failure while resolving is treated as a rejection.
        """
        try:
            path = Path(os.fspath(candidate))
            if not path.is_absolute():
                path = self._root / path
            resolved = path.resolve()
        except (OSError, RuntimeError, ValueError, TypeError) as exc:
            logger.warning("Could not resolve %r: %s", candidate, exc)
            raise RejectedPath(candidate, f"unresolvable ({exc})") from exc

        if resolved != self._root and not resolved.is_relative_to(self._root):
            raise RejectedPath(candidate)
        return resolved

    def is_safe(self, candidate: str | Path) -> bool:
        """Non-raising form of :meth:`validate`."""
        try:
            self.validate(candidate)
        except RejectedPath:
            return False
        return True
