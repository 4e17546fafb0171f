# models/file_entry.py

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

TYPE_FILE = "file"
TYPE_DIRECTORY = "directory"


@dataclass
class FileEntry:
    """Read-only projection of a file or directory inside a repository."""
    name: str
    path: str
    type: str
    last_modified: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    children: Optional[List['FileEntry']] = None

    @property
    def is_dir(self) -> bool:
        return self.type == TYPE_DIRECTORY

    def walk(self) -> Iterator['FileEntry']:
        """Yield every descendant node, depth first. The node itself is not included."""
        for child in self.children or []:
            yield child
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "lastModified": self.last_modified,
        }
        if self.size is not None:
            data["size"] = self.size
        if self.mime_type is not None:
            data["mimeType"] = self.mime_type
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data
