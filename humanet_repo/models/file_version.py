# models/file_version.py

from collections import deque
from dataclasses import dataclass, asdict
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional

DEFAULT_MAX_VERSIONS = 5

OPERATION_UPDATED = "updated"
OPERATION_RESTORED = "restored"


@dataclass
class FileVersion:
    """Snapshot of a file's content taken immediately before an overwrite."""
    id: str
    sequence: int
    timestamp: str
    size: int
    operation: str
    backup_path: str
    hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["backupPath"] = data.pop("backup_path")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileVersion':
        return cls(
            id=data["id"],
            sequence=int(data["sequence"]),
            timestamp=data["timestamp"],
            size=int(data.get("size", 0)),
            operation=data.get("operation", OPERATION_UPDATED),
            backup_path=data["backupPath"],
            hash=data.get("hash"),
        )

    @staticmethod
    def make_id(sequence: int) -> str:
        return f"v{sequence}"


class VersionHistory:
    """
    Bounded, most-recent-first history of one file.

    Pushing onto a full history evicts the oldest record and hands it back so
    the caller can reclaim its backup.
    """

    def __init__(self, versions: Iterable[FileVersion] = (), sequence: int = 0,
                 max_versions: int = DEFAULT_MAX_VERSIONS):
        if max_versions < 1:
            raise ValueError("max_versions must be at least 1")
        self.max_versions = max_versions
        ordered = sorted(versions, key=lambda v: v.sequence, reverse=True)
        self._versions: Deque[FileVersion] = deque(ordered[:max_versions])
        self._overflow = ordered[max_versions:]
        self.sequence = max([sequence] + [v.sequence for v in ordered])

    def next_sequence(self) -> int:
        self.sequence += 1
        return self.sequence

    def push(self, version: FileVersion) -> List[FileVersion]:
        """Add version at the head. Returns the records evicted from the tail."""
        if self._versions and version.sequence <= self._versions[0].sequence:
            raise ValueError("versions must be pushed in creation order")
        evicted = self._overflow
        self._overflow = []
        self._versions.appendleft(version)
        while len(self._versions) > self.max_versions:
            evicted.append(self._versions.pop())
        return evicted

    def find(self, version_id: str) -> Optional[FileVersion]:
        for version in self._versions:
            if version.id == version_id:
                return version
        return None

    def versions(self) -> List[FileVersion]:
        return list(self._versions)

    def __len__(self) -> int:
        return len(self._versions)

    def __iter__(self) -> Iterator[FileVersion]:
        return iter(self._versions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "versions": [v.to_dict() for v in self._versions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], max_versions: int = DEFAULT_MAX_VERSIONS) -> 'VersionHistory':
        versions = [FileVersion.from_dict(v) for v in data.get("versions", [])]
        return cls(versions, sequence=int(data.get("sequence", 0)), max_versions=max_versions)
