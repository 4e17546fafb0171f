# core/file_store.py

import os
import shutil
import logging
from typing import List

from humanet_repo.core.errors import (
    FileNotFoundInRepositoryError,
    FileTooLargeError,
    FileTypeNotAllowedError,
    RepositoryIOError,
    RepositoryNotFoundError,
    RequiredFileProtectedError,
)
from humanet_repo.core.locks import IdeaLockRegistry
from humanet_repo.core.sandbox import PathSandbox, VERSIONS_DIR
from humanet_repo.core.scaffolder import read_repository_meta, read_repository_template, touch_repository_meta
from humanet_repo.core.templates import DEFAULT_TEMPLATE, METADATA_DIR, TEMPLATES, TemplateManifest
from humanet_repo.core.version_manager import VersionManager
from humanet_repo.models.file_entry import TYPE_DIRECTORY, TYPE_FILE, FileEntry
from humanet_repo.utils.file_utils import atomic_write_bytes, read_text
from humanet_repo.utils.time_utils import from_epoch
from humanet_repo.utils.type_handler import FileTypeHandler

logger = logging.getLogger(__name__)


class FileStore:
    """File and directory CRUD inside idea repositories."""

    def __init__(self, sandbox: PathSandbox, version_manager: VersionManager,
                 locks: IdeaLockRegistry, type_handler: FileTypeHandler,
                 max_file_size: int):
        self.sandbox = sandbox
        self.version_manager = version_manager
        self.locks = locks
        self.type_handler = type_handler
        self.max_file_size = max_file_size

    def repository_exists(self, idea_id: str) -> bool:
        return os.path.isdir(self.sandbox.repository_root(idea_id))

    def _require_repository(self, idea_id: str) -> str:
        root = self.sandbox.repository_root(idea_id)
        if not os.path.isdir(root):
            raise RepositoryNotFoundError(idea_id=idea_id)
        return root

    def active_template(self, idea_id: str) -> TemplateManifest:
        """
        Template the repository was scaffolded with.

        Read from the marker in version storage, which callers cannot write.
        Repositories without a marker use meta.json, then basic.
        """
        root = self.sandbox.repository_root(idea_id)
        name = read_repository_template(root)
        if name is None:
            meta = read_repository_meta(root)
            name = meta.template if meta is not None else None
        return TEMPLATES.get(name, TEMPLATES[DEFAULT_TEMPLATE])

    def required_paths(self, idea_id: str):
        return self.active_template(idea_id).required_paths

    def get_file_content(self, idea_id: str, path: str) -> str:
        logical_path, physical_path = self.sandbox.resolve_with_logical(idea_id, path)
        self._require_repository(idea_id)

        try:
            return read_text(physical_path)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise FileNotFoundInRepositoryError(idea_id=idea_id, path=logical_path) from None
        except UnicodeDecodeError as e:
            raise RepositoryIOError("File is not UTF-8 text", idea_id=idea_id, path=logical_path) from e
        except OSError as e:
            if os.path.isdir(physical_path):
                raise FileNotFoundInRepositoryError(idea_id=idea_id, path=logical_path) from None
            logger.error(f"Failed to read {logical_path} for idea {idea_id}: {str(e)}")
            raise RepositoryIOError("Failed to read file", idea_id=idea_id, path=logical_path) from e

    def update_file(self, idea_id: str, path: str, content: str) -> None:
        """
        Create or overwrite a file. Overwrites snapshot the previous content
        into the file's history first; a brand new file starts with none.
        """
        logical_path, physical_path = self.sandbox.resolve_with_logical(idea_id, path)
        data = content.encode('utf-8')

        if len(data) > self.max_file_size:
            raise FileTooLargeError(idea_id=idea_id, path=logical_path)
        if not self.type_handler.is_allowed(logical_path):
            ext = self.type_handler.get_extension(logical_path)
            raise FileTypeNotAllowedError(f"File type {ext} not allowed", idea_id=idea_id, path=logical_path)

        with self.locks.hold(idea_id):
            root = self._require_repository(idea_id)

            if os.path.isdir(physical_path):
                raise RepositoryIOError("Path is a directory", idea_id=idea_id, path=logical_path)

            try:
                existed = os.path.isfile(physical_path)
                if existed:
                    with open(physical_path, 'rb') as f:
                        prior = f.read()
                    # A failed write takes the snapshot back out of history
                    with self.version_manager.pending_snapshot(idea_id, logical_path, prior):
                        atomic_write_bytes(physical_path, data)
                else:
                    os.makedirs(os.path.dirname(physical_path), exist_ok=True)
                    atomic_write_bytes(physical_path, data)
            except OSError as e:
                logger.error(f"Failed to update {logical_path} for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to update file", idea_id=idea_id, path=logical_path) from e

            if logical_path.startswith(f"{METADATA_DIR}/"):
                touch_repository_meta(root)

        logger.info(f"{'Updated' if existed else 'Created'} {logical_path} for idea {idea_id}")

    def delete_file(self, idea_id: str, path: str) -> None:
        """
        Delete a file, or a directory with everything below it, together with
        the version history of everything removed. Template-required paths are
        refused by logical path before anything is looked at on disk.
        """
        logical_path, physical_path = self.sandbox.resolve_with_logical(idea_id, path)

        with self.locks.hold(idea_id):
            root = self._require_repository(idea_id)

            required = self.required_paths(idea_id)
            if logical_path in required or \
                    any(p.startswith(f"{logical_path}/") for p in required):
                raise RequiredFileProtectedError(idea_id=idea_id, path=logical_path)

            if not os.path.lexists(physical_path):
                raise FileNotFoundInRepositoryError(idea_id=idea_id, path=logical_path)

            try:
                if os.path.isdir(physical_path) and not os.path.islink(physical_path):
                    shutil.rmtree(physical_path)
                else:
                    os.remove(physical_path)
            except OSError as e:
                logger.error(f"Failed to delete {logical_path} for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to delete file", idea_id=idea_id, path=logical_path) from e

            self.version_manager.purge(idea_id, logical_path)
            touch_repository_meta(root)

        logger.info(f"Deleted {logical_path} for idea {idea_id}")

    def make_entry(self, root: str, physical_path: str, name: str) -> FileEntry:
        """Build a FileEntry for one path; lstat so symlinks are not followed."""
        stat = os.lstat(physical_path)
        relative = os.path.relpath(physical_path, root).replace(os.sep, "/")
        if os.path.isdir(physical_path) and not os.path.islink(physical_path):
            return FileEntry(name=name, path=relative, type=TYPE_DIRECTORY,
                             last_modified=from_epoch(stat.st_mtime))
        return FileEntry(name=name, path=relative, type=TYPE_FILE,
                         last_modified=from_epoch(stat.st_mtime), size=stat.st_size,
                         mime_type=self.type_handler.get_mime_type(name))

    def scan_directory(self, root: str, directory: str) -> List[FileEntry]:
        """One level of a directory: directories first, then files, each by name."""
        entries = []
        for name in os.listdir(directory):
            if directory == root and name == VERSIONS_DIR:
                continue
            entries.append(self.make_entry(root, os.path.join(directory, name), name))
        entries.sort(key=lambda e: (e.type != TYPE_DIRECTORY, e.name))
        return entries

    def list_files(self, idea_id: str, sub_path: str = "") -> List[FileEntry]:
        logical_path, physical_path = self.sandbox.resolve_with_logical(idea_id, sub_path, allow_root=True)
        root = self._require_repository(idea_id)

        if not os.path.isdir(physical_path):
            raise FileNotFoundInRepositoryError("Path not found", idea_id=idea_id, path=logical_path)

        try:
            return self.scan_directory(root, physical_path)
        except OSError as e:
            logger.error(f"Failed to list {logical_path or '/'} for idea {idea_id}: {str(e)}")
            raise RepositoryIOError("Failed to list files", idea_id=idea_id, path=logical_path) from e

    def delete_repository(self, idea_id: str) -> None:
        """Remove a repository with all of its history. Missing repositories are ignored."""
        root = self.sandbox.repository_root(idea_id)

        with self.locks.hold(idea_id):
            if not os.path.lexists(root):
                logger.debug(f"No repository to delete for idea {idea_id}")
                return
            try:
                if os.path.islink(root):
                    os.remove(root)
                else:
                    shutil.rmtree(root)
            except OSError as e:
                logger.error(f"Failed to delete repository for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to delete repository", idea_id=idea_id) from e

        logger.info(f"Deleted repository for idea {idea_id}")
