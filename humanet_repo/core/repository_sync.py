"""
Mirrors idea metadata into an idea's repository.

This is the consumer side of the filesystem service: it scaffolds a
repository for a new idea and keeps ``.humanet/idea.md`` and
``.humanet/search.md`` in step with the idea's title, tags and status.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from humanet_repo.core.errors import PathTraversalError, RepositoryAlreadyExistsError
from humanet_repo.core.filesystem_service import IdeaFilesystemService
from humanet_repo.core.templates import DEFAULT_TEMPLATE, METADATA_DIR, get_template
from humanet_repo.models.metadata import RepositoryMeta
from humanet_repo.utils.time_utils import iso_now

logger = logging.getLogger(__name__)

IDEA_FILE = f"{METADATA_DIR}/idea.md"
SEARCH_FILE = f"{METADATA_DIR}/search.md"

STOP_WORDS = {'this', 'that', 'with', 'from', 'they', 'have', 'will', 'been', 'were'}
MAX_KEYWORDS = 10


@dataclass
class IdeaSnapshot:
    """The fields of an idea that get mirrored into its repository."""
    id: str
    title: str
    description: str = ""
    domain: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    implementation_status: str = "idea"
    visibility: str = "public"
    upvotes: int = 0
    comment_count: int = 0
    view_count: int = 0
    github_repo: Optional[str] = None
    live_demo: Optional[str] = None


def extract_keywords(text: str) -> List[str]:
    """Unique lower-cased words longer than three characters, in first-seen order."""
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    keywords = []
    for word in words:
        if len(word) > 3 and word not in STOP_WORDS and word not in keywords:
            keywords.append(word)
    return keywords[:MAX_KEYWORDS]


def generate_idea_markdown(idea: IdeaSnapshot) -> str:
    links = []
    if idea.github_repo:
        links.append(f"- GitHub Repository: {idea.github_repo}")
    if idea.live_demo:
        links.append(f"- Live Demo: {idea.live_demo}")

    return f"""# {idea.title}

## Overview
{idea.description}

## Domain
{', '.join(idea.domain)}

## Tags
{', '.join(idea.tags)}

## Status
{idea.implementation_status}

## Statistics
- Upvotes: {idea.upvotes}
- Comments: {idea.comment_count}
- Views: {idea.view_count}

## Implementation Details
{chr(10).join(links)}

---
*Auto-generated from Humanet idea data*
*Last updated: {iso_now()}*
"""


def generate_search_markdown(idea: IdeaSnapshot) -> str:
    def bullets(items):
        return "\n".join(f"- {item}" for item in items)

    return f"""# Search Keywords

*This file is automatically updated based on idea content and user interactions.*

## Primary Keywords
{bullets(idea.tags)}

## Domain Keywords
{bullets(idea.domain)}

## Content Keywords
*Extracted from idea title and description*
{bullets(extract_keywords(idea.title + ' ' + idea.description))}

## Status
- Implementation Status: {idea.implementation_status}
- Visibility: {idea.visibility}

---
*Last updated: {iso_now()}*
*Auto-generated by Humanet search indexing*
"""


class IdeaRepositoryService:
    """Creates and refreshes repositories on behalf of ideas."""

    def __init__(self, filesystem: IdeaFilesystemService):
        self.filesystem = filesystem

    def create_for_idea(self, idea: IdeaSnapshot, template: str = DEFAULT_TEMPLATE) -> RepositoryMeta:
        """
        Scaffold a repository and mirror the idea into it.

        Once scaffolding has started, any failure removes the half-built
        repository before the error propagates. Errors raised before anything
        touched the disk (bad template or idea id, existing repository) leave
        the filesystem alone.
        """
        get_template(template)

        try:
            meta = self.filesystem.create_repository(idea.id, template)
            self._write_idea_files(idea)
        except (RepositoryAlreadyExistsError, PathTraversalError):
            raise
        except Exception:
            logger.warning(f"Cleaning up repository for idea {idea.id} after failed creation")
            self.filesystem.delete_repository(idea.id)
            raise

        logger.info(f"Created repository for idea {idea.id} with template {template}")
        return meta

    def sync_idea(self, idea: IdeaSnapshot) -> None:
        """Re-mirror an idea into its existing repository; each rewrite is versioned."""
        self._write_idea_files(idea)
        logger.info(f"Synced idea {idea.id} with its repository")

    def _write_idea_files(self, idea: IdeaSnapshot) -> None:
        self.filesystem.update_file(idea.id, IDEA_FILE, generate_idea_markdown(idea))
        self.filesystem.update_file(idea.id, SEARCH_FILE, generate_search_markdown(idea))
