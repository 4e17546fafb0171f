import os
import gzip
import shutil
import hashlib
import logging

from humanet_repo.core.sandbox import PathSandbox, VERSIONS_DIR
from humanet_repo.utils.file_utils import atomic_write_bytes

logger = logging.getLogger(__name__)


class BackupManager:
    """Stores compressed snapshots of file content inside a repository's .versions directory."""

    def __init__(self, sandbox: PathSandbox):
        self.sandbox = sandbox

    def versions_root(self, idea_id: str) -> str:
        return os.path.join(self.sandbox.repository_root(idea_id), VERSIONS_DIR)

    def backup_key(self, logical_path: str) -> str:
        """
        Deterministic folder name for a file's backups.

        Combines a hash of the full logical path with the basename so that
        files sharing a name in different directories never collide.
        """
        # MD5 is used here because we just need a consistent folder name, not security
        path_hash = hashlib.md5(logical_path.encode('utf-8')).hexdigest()[:12]
        return f"{path_hash}_{os.path.basename(logical_path)[:100]}"

    def _backup_file(self, idea_id: str, backup_path: str) -> str:
        """Physical location of a backup, refusing anything outside .versions."""
        versions_root = os.path.realpath(self.versions_root(idea_id))
        candidate = os.path.realpath(os.path.join(versions_root, *backup_path.split("/")))
        if candidate == versions_root or \
                os.path.commonpath([versions_root, candidate]) != versions_root:
            raise FileNotFoundError(f"Backup path outside version storage: {backup_path}")
        return candidate

    def create_backup(self, idea_id: str, logical_path: str, version_id: str, content: bytes) -> str:
        """
        Write a compressed snapshot and return its path relative to .versions.
        """
        backup_path = f"{self.backup_key(logical_path)}/{version_id}.gz"
        target = self._backup_file(idea_id, backup_path)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        atomic_write_bytes(target, gzip.compress(content))
        logger.debug(f"Created backup {backup_path} for {idea_id}:{logical_path}")
        return backup_path

    def get_version_content(self, idea_id: str, backup_path: str) -> bytes:
        """Read a snapshot. Raises FileNotFoundError if it is gone."""
        with gzip.open(self._backup_file(idea_id, backup_path), 'rb') as f:
            return f.read()

    def remove_backup(self, idea_id: str, backup_path: str) -> None:
        try:
            os.remove(self._backup_file(idea_id, backup_path))
            logger.debug(f"Deleted old backup {backup_path} for {idea_id}")
        except FileNotFoundError:
            pass

    def remove_file_backups(self, idea_id: str, logical_path: str) -> None:
        """Drop every snapshot belonging to one logical path."""
        backup_dir = os.path.join(self.versions_root(idea_id), self.backup_key(logical_path))
        if os.path.isdir(backup_dir):
            shutil.rmtree(backup_dir)
