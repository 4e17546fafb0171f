# core/sandbox.py

import os
import re
from typing import List
from urllib.parse import unquote

from humanet_repo.core.errors import PathTraversalError

# Hidden directory holding version snapshots; never addressable by callers
VERSIONS_DIR = ".versions"

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


class PathSandbox:
    """
    Maps idea-relative logical paths onto the filesystem and refuses anything
    that would land outside the idea's repository root.

    Resolution is pure: nothing is created, read or stat'ed except through
    os.path.realpath, which follows existing symlinks so that a link pointing
    out of the repository is caught.
    """

    def __init__(self, storage_path: str):
        self.storage_path = os.path.realpath(storage_path)

    def repository_root(self, idea_id: str) -> str:
        """Physical root of an idea's repository."""
        if not isinstance(idea_id, str) or not idea_id or idea_id in (".", ".."):
            raise PathTraversalError("Invalid idea id", idea_id=str(idea_id))
        if any(ch in idea_id for ch in ("/", "\\", "\x00")) or _DRIVE_PREFIX.match(idea_id):
            raise PathTraversalError("Invalid idea id", idea_id=idea_id)
        return os.path.join(self.storage_path, idea_id)

    def normalize(self, idea_id: str, logical_path: str, allow_root: bool = False) -> str:
        """
        Collapse a logical path to its canonical 'a/b/c' form.

        Raises PathTraversalError for absolute paths, NUL bytes, '..' climbing
        above the root, the reserved versions directory, and (unless
        allow_root) paths that collapse to the root itself.
        """
        if logical_path is None:
            logical_path = ""
        if not isinstance(logical_path, str):
            raise PathTraversalError("Path must be a string", idea_id=idea_id, path=str(logical_path))

        segments = self._collapse(idea_id, logical_path)

        # Percent-encoded separators must not smuggle a traversal through
        decoded = unquote(logical_path)
        if decoded != logical_path:
            self._collapse(idea_id, decoded)

        if not segments:
            if allow_root:
                return ""
            raise PathTraversalError("Path resolves to the repository root", idea_id=idea_id,
                                     path=logical_path)

        if segments[0] == VERSIONS_DIR:
            raise PathTraversalError("Path is reserved", idea_id=idea_id, path=logical_path)

        return "/".join(segments)

    def _collapse(self, idea_id: str, logical_path: str) -> List[str]:
        if "\x00" in logical_path:
            raise PathTraversalError("Path contains a NUL byte", idea_id=idea_id, path=logical_path)

        unified = logical_path.replace("\\", "/")
        if unified.startswith("/") or _DRIVE_PREFIX.match(unified):
            raise PathTraversalError("Absolute paths are not allowed", idea_id=idea_id,
                                     path=logical_path)

        segments: List[str] = []
        for segment in unified.split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if not segments:
                    raise PathTraversalError("Path escapes the repository", idea_id=idea_id,
                                             path=logical_path)
                segments.pop()
                continue
            segments.append(segment)
        return segments

    def resolve(self, idea_id: str, logical_path: str, allow_root: bool = False) -> str:
        """Return the physical path for logical_path inside idea_id's repository."""
        root = self.repository_root(idea_id)
        normalized = self.normalize(idea_id, logical_path, allow_root=allow_root)
        candidate = os.path.join(root, *normalized.split("/")) if normalized else root

        canonical_root = os.path.realpath(root)
        if os.path.commonpath([self.storage_path, canonical_root]) != self.storage_path:
            raise PathTraversalError("Repository root escapes the storage area", idea_id=idea_id,
                                     path=logical_path)

        canonical = os.path.realpath(candidate)
        if canonical != canonical_root and \
                os.path.commonpath([canonical_root, canonical]) != canonical_root:
            raise PathTraversalError("Path escapes the repository", idea_id=idea_id,
                                     path=logical_path)
        return candidate

    def resolve_with_logical(self, idea_id: str, logical_path: str, allow_root: bool = False):
        """Like resolve but also returns the normalized logical path."""
        normalized = self.normalize(idea_id, logical_path, allow_root=allow_root)
        return normalized, self.resolve(idea_id, normalized, allow_root=allow_root)
