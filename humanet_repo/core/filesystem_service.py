# core/filesystem_service.py

import logging
from typing import Any, Dict, List, Optional

from humanet_repo.core.backup_manager import BackupManager
from humanet_repo.core.file_store import FileStore
from humanet_repo.core.locks import IdeaLockRegistry
from humanet_repo.core.sandbox import PathSandbox
from humanet_repo.core.scaffolder import TemplateScaffolder, read_repository_meta
from humanet_repo.core.settings import SettingsManager
from humanet_repo.core.templates import DEFAULT_TEMPLATE
from humanet_repo.core.tree_builder import DEFAULT_MAX_DEPTH, TreeBuilder, calculate_tree_stats
from humanet_repo.core.version_manager import VersionManager
from humanet_repo.models.file_entry import FileEntry
from humanet_repo.models.file_version import FileVersion
from humanet_repo.models.metadata import RepositoryMeta
from humanet_repo.utils.type_handler import FileTypeHandler

logger = logging.getLogger(__name__)

# Deep enough to reach every file of a realistic repository
STATS_MAX_DEPTH = 64


class IdeaFilesystemService:
    """
    Entry point for everything that touches idea repositories on disk.

    Builds the sandbox, scaffolder, file store, version manager and tree
    builder from one set of settings and exposes their operations.
    """

    def __init__(self, settings: Optional[SettingsManager] = None, **overrides: Any):
        """
        Args:
            settings: Loaded settings; a default SettingsManager is built when omitted
            overrides: Setting values (storage_path, max_versions, ...) applied on top
        """
        if settings is None:
            settings = SettingsManager(**overrides)
        else:
            for key, value in overrides.items():
                settings.set(key, value)
        self.settings = settings

        self.locks = IdeaLockRegistry()
        self.sandbox = PathSandbox(settings.get("storage_path"))
        self.type_handler = FileTypeHandler(settings.get("allowed_extensions"))
        self.backup_manager = BackupManager(self.sandbox)
        self.version_manager = VersionManager(
            self.sandbox, self.backup_manager, self.locks,
            max_versions=settings.get("max_versions"),
        )
        self.scaffolder = TemplateScaffolder(self.sandbox, self.locks)
        self.file_store = FileStore(
            self.sandbox, self.version_manager, self.locks, self.type_handler,
            max_file_size=settings.get("max_file_size"),
        )
        self.tree_builder = TreeBuilder(self.sandbox, self.file_store)

        logger.debug(f"Repository storage at {self.sandbox.storage_path}")

    @property
    def storage_path(self) -> str:
        return self.sandbox.storage_path

    # Repository lifecycle

    def create_repository(self, idea_id: str, template: str = DEFAULT_TEMPLATE) -> RepositoryMeta:
        return self.scaffolder.create_repository(idea_id, template)

    def repository_exists(self, idea_id: str) -> bool:
        return self.file_store.repository_exists(idea_id)

    def delete_repository(self, idea_id: str) -> None:
        self.file_store.delete_repository(idea_id)

    # Files

    def list_files(self, idea_id: str, sub_path: str = "") -> List[FileEntry]:
        return self.file_store.list_files(idea_id, sub_path)

    def get_file_tree(self, idea_id: str, max_depth: int = DEFAULT_MAX_DEPTH, sub_path: str = "") -> FileEntry:
        return self.tree_builder.get_file_tree(idea_id, max_depth, sub_path)

    def get_file_content(self, idea_id: str, path: str) -> str:
        return self.file_store.get_file_content(idea_id, path)

    def update_file(self, idea_id: str, path: str, content: str) -> None:
        self.file_store.update_file(idea_id, path, content)

    def delete_file(self, idea_id: str, path: str) -> None:
        self.file_store.delete_file(idea_id, path)

    # History

    def get_file_history(self, idea_id: str, path: str) -> List[FileVersion]:
        return self.version_manager.get_file_history(idea_id, path)

    def get_file_version_content(self, idea_id: str, path: str, version_id: str) -> str:
        return self.version_manager.get_file_version_content(idea_id, path, version_id)

    def restore_file_version(self, idea_id: str, path: str, version_id: str) -> FileVersion:
        return self.version_manager.restore_file_version(idea_id, path, version_id)

    # Overview

    def get_repository_overview(self, idea_id: str, max_depth: int = 1) -> Dict[str, Any]:
        """
        Template, metadata, statistics and structure of a repository.

        Statistics cover the whole repository; the structure is cut off at
        max_depth.
        """
        full_tree = self.get_file_tree(idea_id, max_depth=STATS_MAX_DEPTH)
        template = self.file_store.active_template(idea_id)
        stats = calculate_tree_stats(full_tree, template.required_paths)
        meta = read_repository_meta(self.sandbox.repository_root(idea_id))

        structure = self.get_file_tree(idea_id, max_depth=max_depth)
        return {
            "ideaId": idea_id,
            "template": template.name,
            "meta": meta.to_dict() if meta else None,
            "stats": stats.to_dict(),
            "structure": [child.to_dict() for child in structure.children or []],
        }
