# core/version_manager.py

import os
import copy
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Union

from humanet_repo.core.backup_manager import BackupManager
from humanet_repo.core.errors import (
    FileNotFoundInRepositoryError,
    RepositoryIOError,
    RepositoryNotFoundError,
    VersionNotFoundError,
)
from humanet_repo.core.locks import IdeaLockRegistry
from humanet_repo.core.sandbox import PathSandbox
from humanet_repo.core.scaffolder import touch_repository_meta
from humanet_repo.core.templates import METADATA_DIR
from humanet_repo.models.file_version import (
    DEFAULT_MAX_VERSIONS,
    OPERATION_RESTORED,
    OPERATION_UPDATED,
    FileVersion,
    VersionHistory,
)
from humanet_repo.utils.file_utils import atomic_write_bytes, atomic_write_text, calculate_content_hash
from humanet_repo.utils.time_utils import iso_now

logger = logging.getLogger(__name__)

INDEX_FILE = "versions.json"


class VersionManager:
    """
    Manages per-file version history.

    History lives in ``.versions/versions.json`` inside each repository,
    keyed by logical path; snapshot content is kept by the BackupManager.
    """

    def __init__(self, sandbox: PathSandbox, backup_manager: BackupManager,
                 locks: IdeaLockRegistry, max_versions: int = DEFAULT_MAX_VERSIONS):
        self.sandbox = sandbox
        self.backup_manager = backup_manager
        self.locks = locks
        self.max_versions = max_versions

    def _index_path(self, idea_id: str) -> str:
        return os.path.join(self.backup_manager.versions_root(idea_id), INDEX_FILE)

    def load_index(self, idea_id: str) -> Dict[str, Any]:
        """Load the version index of a repository."""
        index_path = self._index_path(idea_id)
        try:
            with open(index_path, "r", encoding='utf-8') as f:
                index = json.load(f)
        except FileNotFoundError:
            return {"files": {}}
        except json.JSONDecodeError:
            logger.error(f"Version index for idea {idea_id} is corrupted, starting a fresh one")
            return {"files": {}}
        except OSError as e:
            logger.error(f"Failed to read version index for idea {idea_id}: {str(e)}")
            raise RepositoryIOError("Failed to read version history", idea_id=idea_id) from e

        if not isinstance(index.get("files"), dict):
            index["files"] = {}
        return index

    def save_index(self, idea_id: str, index: Dict[str, Any]) -> None:
        index_path = self._index_path(idea_id)
        os.makedirs(os.path.dirname(index_path), exist_ok=True)
        index["lastUpdated"] = iso_now()
        atomic_write_text(index_path, json.dumps(index, indent=2, ensure_ascii=False))

    def _history(self, index: Dict[str, Any], logical_path: str) -> VersionHistory:
        return VersionHistory.from_dict(index["files"].get(logical_path, {}), max_versions=self.max_versions)

    def _require_live_file(self, idea_id: str, path: str):
        """Resolve path and make sure both the repository and the live file exist."""
        logical_path, physical_path = self.sandbox.resolve_with_logical(idea_id, path)
        if not os.path.isdir(self.sandbox.repository_root(idea_id)):
            raise RepositoryNotFoundError(idea_id=idea_id)
        if not os.path.isfile(physical_path):
            raise FileNotFoundInRepositoryError(idea_id=idea_id, path=logical_path)
        return logical_path, physical_path

    @contextmanager
    def pending_snapshot(self, idea_id: str, logical_path: str,
                         prior_content: Union[str, bytes],
                         operation: str = OPERATION_UPDATED) -> Iterator[FileVersion]:
        """
        Persist the content a file had right before an overwrite and push it
        onto the head of that file's history, for the duration of the block.

        The block performs the overwrite. If it raises, the index is put back
        the way it was and the new backup removed. Records evicted past the
        cap only lose their backups once the block has succeeded.
        """
        if isinstance(prior_content, str):
            prior_content = prior_content.encode('utf-8')

        with self.locks.hold(idea_id):
            try:
                index = self.load_index(idea_id)
                previous = copy.deepcopy(index["files"].get(logical_path))
                history = self._history(index, logical_path)

                sequence = history.next_sequence()
                version_id = FileVersion.make_id(sequence)
                backup_path = self.backup_manager.create_backup(idea_id, logical_path, version_id, prior_content)

                version = FileVersion(
                    id=version_id,
                    sequence=sequence,
                    timestamp=iso_now(),
                    size=len(prior_content),
                    operation=operation,
                    backup_path=backup_path,
                    hash=calculate_content_hash(prior_content),
                )
                evicted = history.push(version)

                index["files"][logical_path] = history.to_dict()
                self.save_index(idea_id, index)
            except OSError as e:
                logger.error(f"Failed to record version of {logical_path} for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to create file backup", idea_id=idea_id, path=logical_path) from e

            try:
                yield version
            except BaseException:
                self._rollback(idea_id, logical_path, index, previous, version)
                raise

            try:
                # Only reclaim once the live write has landed
                for old in evicted:
                    self.backup_manager.remove_backup(idea_id, old.backup_path)
            except OSError as e:
                logger.warning(f"Failed to reclaim old backups of {logical_path} for idea {idea_id}: {str(e)}")

        if evicted:
            logger.info(f"Evicted {len(evicted)} old version(s) of {logical_path} for idea {idea_id}")

    def _rollback(self, idea_id: str, logical_path: str, index: Dict[str, Any],
                  previous: Optional[Dict[str, Any]], version: FileVersion) -> None:
        """Undo a snapshot whose overwrite failed. Errors are logged, never raised."""
        if previous is None:
            index["files"].pop(logical_path, None)
        else:
            index["files"][logical_path] = previous
        try:
            self.save_index(idea_id, index)
            self.backup_manager.remove_backup(idea_id, version.backup_path)
        except OSError as e:
            logger.error(f"Failed to roll back version {version.id} of {logical_path} for idea {idea_id}: {str(e)}")
        else:
            logger.warning(f"Rolled back version {version.id} of {logical_path} for idea {idea_id}")

    def get_file_history(self, idea_id: str, path: str) -> List[FileVersion]:
        """Versions of a live file, most recent first."""
        logical_path, _ = self._require_live_file(idea_id, path)
        index = self.load_index(idea_id)
        return self._history(index, logical_path).versions()

    def _find_version(self, idea_id: str, logical_path: str, version_id: str) -> FileVersion:
        index = self.load_index(idea_id)
        version = self._history(index, logical_path).find(version_id) if isinstance(version_id, str) else None
        if version is None:
            raise VersionNotFoundError(idea_id=idea_id, path=logical_path)
        return version

    def _read_version_bytes(self, idea_id: str, logical_path: str, version: FileVersion) -> bytes:
        try:
            return self.backup_manager.get_version_content(idea_id, version.backup_path)
        except FileNotFoundError:
            # Evicted between reading the index and opening the backup
            raise VersionNotFoundError(idea_id=idea_id, path=logical_path) from None
        except OSError as e:
            logger.error(f"Failed to read version {version.id} of {logical_path}: {str(e)}")
            raise RepositoryIOError("Failed to get version content", idea_id=idea_id, path=logical_path) from e

    def get_file_version_content(self, idea_id: str, path: str, version_id: str) -> str:
        logical_path, _ = self._require_live_file(idea_id, path)
        version = self._find_version(idea_id, logical_path, version_id)
        content = self._read_version_bytes(idea_id, logical_path, version)
        try:
            return content.decode('utf-8')
        except UnicodeDecodeError as e:
            raise RepositoryIOError("Version content is not UTF-8 text", idea_id=idea_id, path=logical_path) from e

    def restore_file_version(self, idea_id: str, path: str, version_id: str) -> FileVersion:
        """
        Make a historical version the live content again.

        The content being replaced is itself recorded as a new version with
        operation "restored", so history grows by one (subject to the cap).
        Returns that new record.
        """
        with self.locks.hold(idea_id):
            logical_path, physical_path = self._require_live_file(idea_id, path)
            version = self._find_version(idea_id, logical_path, version_id)

            # Read before snapshotting: the push below may evict this very version
            restored = self._read_version_bytes(idea_id, logical_path, version)

            try:
                with open(physical_path, 'rb') as f:
                    current = f.read()
            except OSError as e:
                logger.error(f"Failed to read {logical_path} for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to restore file version", idea_id=idea_id, path=logical_path) from e

            try:
                with self.pending_snapshot(idea_id, logical_path, current,
                                           operation=OPERATION_RESTORED) as snapshot:
                    atomic_write_bytes(physical_path, restored)
            except OSError as e:
                logger.error(f"Failed to restore {logical_path} for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to restore file version", idea_id=idea_id, path=logical_path) from e

            if logical_path.startswith(f"{METADATA_DIR}/"):
                touch_repository_meta(self.sandbox.repository_root(idea_id))

        logger.info(f"Restored {logical_path} to {version_id} for idea {idea_id}")
        return snapshot

    def purge(self, idea_id: str, logical_path: str) -> List[str]:
        """
        Forget the history of logical_path and of every file below it.
        Returns the logical paths whose history was dropped.
        """
        with self.locks.hold(idea_id):
            try:
                index = self.load_index(idea_id)
                files = index["files"]
                doomed = [key for key in files
                          if key == logical_path or key.startswith(f"{logical_path}/")]
                if doomed:
                    for key in doomed:
                        files.pop(key)
                    self.save_index(idea_id, index)
                for key in doomed:
                    self.backup_manager.remove_file_backups(idea_id, key)
            except OSError as e:
                logger.error(f"Failed to purge history of {logical_path} for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to remove file history", idea_id=idea_id, path=logical_path) from e

        return doomed
