# core/scaffolder.py

import os
import json
import logging
from typing import Optional

from humanet_repo.core.errors import RepositoryAlreadyExistsError, RepositoryIOError
from humanet_repo.core.locks import IdeaLockRegistry
from humanet_repo.core.sandbox import PathSandbox, VERSIONS_DIR
from humanet_repo.core.templates import META_FILE, DEFAULT_TEMPLATE, get_template
from humanet_repo.models.metadata import RepositoryMeta
from humanet_repo.utils.file_utils import atomic_write_text, read_text

logger = logging.getLogger(__name__)

TEMPLATE_MARKER = "template.json"


def meta_path(repository_root: str) -> str:
    return os.path.join(repository_root, *META_FILE.split("/"))


def read_repository_meta(repository_root: str) -> Optional[RepositoryMeta]:
    """Load meta.json. Returns None when it is missing or unreadable."""
    path = meta_path(repository_root)
    try:
        return RepositoryMeta.from_dict(json.loads(read_text(path)))
    except FileNotFoundError:
        return None
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Unreadable repository metadata at {path}: {str(e)}")
        return None


def write_repository_meta(repository_root: str, meta: RepositoryMeta) -> None:
    atomic_write_text(meta_path(repository_root), json.dumps(meta.to_dict(), indent=2))


def template_marker_path(repository_root: str) -> str:
    return os.path.join(repository_root, VERSIONS_DIR, TEMPLATE_MARKER)


def read_repository_template(repository_root: str) -> Optional[str]:
    """
    Template name recorded at creation time. It lives in the reserved
    version storage, out of reach of update_file and delete_file.
    Returns None when the marker is missing or unreadable.
    """
    path = template_marker_path(repository_root)
    try:
        name = json.loads(read_text(path))["template"]
    except FileNotFoundError:
        return None
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Unreadable template marker at {path}: {str(e)}")
        return None
    return name if isinstance(name, str) else None


def write_repository_template(repository_root: str, template: str) -> None:
    path = template_marker_path(repository_root)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    atomic_write_text(path, json.dumps({"template": template}))


def touch_repository_meta(repository_root: str) -> None:
    """
    Refresh meta.json's lastModified. Failures are logged, never raised.
    """
    meta = read_repository_meta(repository_root)
    if meta is None:
        return
    meta.touch()
    try:
        write_repository_meta(repository_root, meta)
    except OSError as e:
        logger.warning(f"Failed to update meta for repository {repository_root}: {str(e)}")


class TemplateScaffolder:
    """Creates new repositories from a template manifest."""

    def __init__(self, sandbox: PathSandbox, locks: IdeaLockRegistry):
        self.sandbox = sandbox
        self.locks = locks

    def create_repository(self, idea_id: str, template: str = DEFAULT_TEMPLATE) -> RepositoryMeta:
        """
        Create the repository root, the template's directories and its
        required files.

        A failure part-way through leaves whatever was created in place;
        callers compensate with delete_repository.

        Raises:
            ValueError: unknown template name
            RepositoryAlreadyExistsError: a repository already exists for idea_id
            RepositoryIOError: any filesystem failure while scaffolding
        """
        manifest = get_template(template)
        root = self.sandbox.repository_root(idea_id)

        with self.locks.hold(idea_id):
            if os.path.lexists(root):
                raise RepositoryAlreadyExistsError(idea_id=idea_id)

            try:
                os.makedirs(self.sandbox.storage_path, exist_ok=True)
                os.mkdir(root)
            except FileExistsError:
                raise RepositoryAlreadyExistsError(idea_id=idea_id) from None
            except OSError as e:
                logger.error(f"Failed to create repository root for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to create repository", idea_id=idea_id) from e

            try:
                for directory in manifest.directories:
                    os.makedirs(self.sandbox.resolve(idea_id, directory), exist_ok=True)

                write_repository_template(root, manifest.name)

                for logical_path, seed in manifest.seed_files.items():
                    atomic_write_text(self.sandbox.resolve(idea_id, logical_path), seed())

                meta = RepositoryMeta.new(manifest.name, manifest.file_count)
                write_repository_meta(root, meta)
            except OSError as e:
                logger.error(f"Failed to scaffold repository for idea {idea_id}: {str(e)}")
                raise RepositoryIOError("Failed to create repository", idea_id=idea_id) from e

        logger.info(f"Created {manifest.name} repository for idea {idea_id}")
        return meta
