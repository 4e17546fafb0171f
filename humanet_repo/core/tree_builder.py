# core/tree_builder.py

import os
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable

from humanet_repo.core.errors import (
    FileNotFoundInRepositoryError,
    RepositoryIOError,
    RepositoryNotFoundError,
)
from humanet_repo.core.file_store import FileStore
from humanet_repo.core.sandbox import PathSandbox
from humanet_repo.models.file_entry import TYPE_DIRECTORY, FileEntry
from humanet_repo.utils.time_utils import from_epoch

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5


@dataclass
class TreeStats:
    file_count: int = 0
    directory_count: int = 0
    required_files_present: int = 0
    total_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_tree_stats(tree: FileEntry, required_paths: Iterable[str] = ()) -> TreeStats:
    """Aggregate counts over an already built tree. The root node itself is not counted."""
    required = set(required_paths)
    stats = TreeStats()
    for node in tree.walk():
        if node.is_dir:
            stats.directory_count += 1
            continue
        stats.file_count += 1
        stats.total_size += node.size or 0
        if node.path in required:
            stats.required_files_present += 1
    return stats


class TreeBuilder:
    """Recursive, depth-bounded listing of a repository."""

    def __init__(self, sandbox: PathSandbox, file_store: FileStore):
        self.sandbox = sandbox
        self.file_store = file_store

    def get_file_tree(self, idea_id: str, max_depth: int = DEFAULT_MAX_DEPTH, sub_path: str = "") -> FileEntry:
        """
        Build the tree under sub_path (the repository root by default).

        A directory at depth d (the starting node is depth 0) gets its
        children listed when d < max_depth; deeper directories appear without
        children.
        """
        if max_depth < 0:
            raise ValueError("max_depth must not be negative")

        logical_path, physical_path = self.sandbox.resolve_with_logical(idea_id, sub_path, allow_root=True)
        root = self.sandbox.repository_root(idea_id)
        if not os.path.isdir(root):
            raise RepositoryNotFoundError(idea_id=idea_id)
        if not os.path.isdir(physical_path):
            raise FileNotFoundInRepositoryError("Path not found", idea_id=idea_id, path=logical_path)

        try:
            node = FileEntry(
                name=logical_path.rsplit("/", 1)[-1] if logical_path else idea_id,
                path=logical_path,
                type=TYPE_DIRECTORY,
                last_modified=from_epoch(os.stat(physical_path).st_mtime),
            )
            self._expand(root, physical_path, node, 0, max_depth)
        except OSError as e:
            logger.error(f"Failed to build file tree for idea {idea_id}: {str(e)}")
            raise RepositoryIOError("Failed to build file tree", idea_id=idea_id, path=logical_path) from e

        return node

    def _expand(self, root: str, directory: str, node: FileEntry, depth: int, max_depth: int) -> None:
        if depth >= max_depth:
            return
        node.children = self.file_store.scan_directory(root, directory)
        for child in node.children:
            if child.is_dir:
                self._expand(root, os.path.join(directory, child.name), child, depth + 1, max_depth)
