# models/metadata.py

from dataclasses import dataclass
from typing import Any, Dict

from humanet_repo.utils.time_utils import iso_now

META_FORMAT_VERSION = "1.0.0"


@dataclass
class RepositoryMeta:
    """Contents of a repository's .humanet/meta.json."""
    template: str
    created: str
    last_modified: str
    file_count: int
    version: str = META_FORMAT_VERSION

    @classmethod
    def new(cls, template: str, file_count: int) -> 'RepositoryMeta':
        now = iso_now()
        return cls(template=template, created=now, last_modified=now, file_count=file_count)

    def touch(self) -> None:
        """Refresh the last modification time."""
        self.last_modified = iso_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "template": self.template,
            "created": self.created,
            "lastModified": self.last_modified,
            "fileCount": self.file_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepositoryMeta':
        """Build from parsed JSON. Raises KeyError/TypeError on malformed data."""
        return cls(
            template=data["template"],
            created=data.get("created", ""),
            last_modified=data.get("lastModified", data.get("created", "")),
            file_count=int(data.get("fileCount", 0)),
            version=data.get("version", META_FORMAT_VERSION),
        )
