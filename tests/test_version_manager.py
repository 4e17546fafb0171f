import json
import os

import pytest

from humanet_repo.core.errors import (
    FileNotFoundInRepositoryError,
    RepositoryIOError,
    RepositoryNotFoundError,
    VersionNotFoundError,
)
from humanet_repo.core.filesystem_service import IdeaFilesystemService
from humanet_repo.utils.file_utils import atomic_write_bytes

PATH = "docs/notes.md"


def write_versions(service, repo, count, path=PATH):
    """Write content '0' .. str(count - 1) to path."""
    for i in range(count):
        service.update_file(repo, path, str(i))


def backup_files(service, repo, path=PATH):
    backup_dir = os.path.join(service.backup_manager.versions_root(repo),
                              service.backup_manager.backup_key(path))
    if not os.path.isdir(backup_dir):
        return []
    return sorted(os.listdir(backup_dir))


class TestHistory:
    def test_new_file_has_no_history(self, service, repo):
        service.update_file(repo, PATH, "first")
        assert service.get_file_history(repo, PATH) == []

    def test_overwrite_records_previous_content(self, service, repo):
        service.update_file(repo, PATH, "first")
        service.update_file(repo, PATH, "second")

        history = service.get_file_history(repo, PATH)

        assert [v.id for v in history] == ["v1"]
        assert history[0].operation == "updated"
        assert history[0].size == len("first")
        assert service.get_file_version_content(repo, PATH, "v1") == "first"
        assert service.get_file_content(repo, PATH) == "second"

    def test_seed_file_overwrite_is_versioned(self, service, repo):
        seed = service.get_file_content(repo, ".humanet/idea.md")
        service.update_file(repo, ".humanet/idea.md", "# Rewritten")

        (version,) = service.get_file_history(repo, ".humanet/idea.md")
        assert service.get_file_version_content(repo, ".humanet/idea.md", version.id) == seed

    def test_history_is_capped_most_recent_first(self, service, repo):
        write_versions(service, repo, 8)

        history = service.get_file_history(repo, PATH)

        assert [v.id for v in history] == ["v7", "v6", "v5", "v4", "v3"]
        assert [v.sequence for v in history] == [7, 6, 5, 4, 3]
        assert [service.get_file_version_content(repo, PATH, v.id) for v in history] == \
            ["6", "5", "4", "3", "2"]

    def test_evicted_backups_are_reclaimed(self, service, repo):
        write_versions(service, repo, 9)
        assert backup_files(service, repo) == ["v4.gz", "v5.gz", "v6.gz", "v7.gz", "v8.gz"]

    def test_histories_are_independent_per_path(self, service, repo):
        write_versions(service, repo, 3, "docs/a.md")
        write_versions(service, repo, 2, "src/a.md")

        assert [v.id for v in service.get_file_history(repo, "docs/a.md")] == ["v2", "v1"]
        assert [v.id for v in service.get_file_history(repo, "src/a.md")] == ["v1"]
        assert service.get_file_version_content(repo, "src/a.md", "v1") == "0"

    def test_equivalent_paths_share_history(self, service, repo):
        service.update_file(repo, "docs/a.md", "one")
        service.update_file(repo, "./docs//a.md", "two")
        assert [v.id for v in service.get_file_history(repo, "docs\\a.md")] == ["v1"]

    def test_history_of_missing_file(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError):
            service.get_file_history(repo, "docs/ghost.md")

    def test_history_of_missing_repository(self, service):
        with pytest.raises(RepositoryNotFoundError):
            service.get_file_history("ghost", PATH)

    def test_history_survives_a_new_service_instance(self, service, repo, storage_path):
        write_versions(service, repo, 3)

        reopened = IdeaFilesystemService(storage_path=storage_path)

        assert [v.id for v in reopened.get_file_history(repo, PATH)] == ["v2", "v1"]
        assert reopened.get_file_version_content(repo, PATH, "v1") == "0"

    def test_smaller_cap_applies_to_existing_history(self, service, repo, storage_path):
        write_versions(service, repo, 6)

        capped = IdeaFilesystemService(storage_path=storage_path, max_versions=2)
        capped.update_file(repo, PATH, "new")

        assert [v.id for v in capped.get_file_history(repo, PATH)] == ["v6", "v5"]
        assert backup_files(capped, repo) == ["v5.gz", "v6.gz"]

    def test_corrupt_index_starts_fresh(self, service, repo):
        write_versions(service, repo, 3)
        index_path = os.path.join(service.backup_manager.versions_root(repo), "versions.json")
        with open(index_path, "w", encoding="utf-8") as f:
            f.write("{not json")

        assert service.get_file_history(repo, PATH) == []
        service.update_file(repo, PATH, "again")
        assert len(service.get_file_history(repo, PATH)) == 1

    def test_index_layout(self, service, repo):
        write_versions(service, repo, 2)
        index_path = os.path.join(service.backup_manager.versions_root(repo), "versions.json")
        with open(index_path, encoding="utf-8") as f:
            index = json.load(f)

        entry = index["files"][PATH]
        assert entry["sequence"] == 1
        assert entry["versions"][0]["backupPath"].endswith("/v1.gz")
        assert "lastUpdated" in index


class TestVersionContent:
    @pytest.mark.parametrize("version_id", ["v99", "v0", "1", "", "../v1", None])
    def test_unknown_version(self, service, repo, version_id):
        write_versions(service, repo, 2)
        with pytest.raises(VersionNotFoundError):
            service.get_file_version_content(repo, PATH, version_id)

    def test_evicted_version_is_gone(self, service, repo):
        write_versions(service, repo, 7)
        with pytest.raises(VersionNotFoundError):
            service.get_file_version_content(repo, PATH, "v1")

    def test_lost_backup_reports_version_not_found(self, service, repo):
        write_versions(service, repo, 2)
        for name in backup_files(service, repo):
            os.remove(os.path.join(service.backup_manager.versions_root(repo),
                                   service.backup_manager.backup_key(PATH), name))

        with pytest.raises(VersionNotFoundError):
            service.get_file_version_content(repo, PATH, "v1")


class TestRestore:
    def test_restore_round_trip(self, service, repo):
        service.update_file(repo, PATH, "alpha")
        service.update_file(repo, PATH, "beta")

        snapshot = service.restore_file_version(repo, PATH, "v1")

        assert service.get_file_content(repo, PATH) == "alpha"
        assert snapshot.id == "v2"
        assert snapshot.operation == "restored"
        history = service.get_file_history(repo, PATH)
        assert [(v.id, v.operation) for v in history] == [("v2", "restored"), ("v1", "updated")]
        assert service.get_file_version_content(repo, PATH, "v2") == "beta"

    def test_restore_is_byte_exact(self, service, repo):
        content = "a\r\nb\né"
        service.update_file(repo, PATH, content)
        service.update_file(repo, PATH, "other")

        service.restore_file_version(repo, PATH, "v1")

        with open(service.sandbox.resolve(repo, PATH), "rb") as f:
            assert f.read() == content.encode("utf-8")

    def test_restore_oldest_version_of_full_history(self, service, repo):
        write_versions(service, repo, 6)
        oldest = service.get_file_history(repo, PATH)[-1]
        assert oldest.id == "v1"

        service.restore_file_version(repo, PATH, "v1")

        assert service.get_file_content(repo, PATH) == "0"
        history = service.get_file_history(repo, PATH)
        assert [v.id for v in history] == ["v6", "v5", "v4", "v3", "v2"]
        assert service.get_file_version_content(repo, PATH, "v6") == "5"

    def test_restore_unknown_version_changes_nothing(self, service, repo):
        write_versions(service, repo, 2)

        with pytest.raises(VersionNotFoundError):
            service.restore_file_version(repo, PATH, "v42")

        assert service.get_file_content(repo, PATH) == "1"
        assert [v.id for v in service.get_file_history(repo, PATH)] == ["v1"]

    def test_restore_missing_file(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError):
            service.restore_file_version(repo, "docs/ghost.md", "v1")

    def test_restore_missing_repository(self, service):
        with pytest.raises(RepositoryNotFoundError):
            service.restore_file_version("ghost", PATH, "v1")


def fail_writes(monkeypatch, module):
    def broken_write(target_file, data):
        raise OSError("disk full")

    monkeypatch.setattr(module, "atomic_write_bytes", broken_write)


class TestFailedWrites:
    def test_failed_overwrite_leaves_no_history(self, service, repo, monkeypatch):
        import humanet_repo.core.file_store as file_store

        service.update_file(repo, "a.txt", "A")
        fail_writes(monkeypatch, file_store)

        with pytest.raises(RepositoryIOError):
            service.update_file(repo, "a.txt", "B")

        assert service.get_file_history(repo, "a.txt") == []
        assert service.get_file_content(repo, "a.txt") == "A"
        assert backup_files(service, repo, "a.txt") == []

    def test_failed_overwrite_keeps_full_history(self, service, repo, monkeypatch):
        import humanet_repo.core.file_store as file_store

        write_versions(service, repo, 6)
        fail_writes(monkeypatch, file_store)

        with pytest.raises(RepositoryIOError):
            service.update_file(repo, PATH, "lost")

        history = service.get_file_history(repo, PATH)
        assert [v.id for v in history] == ["v5", "v4", "v3", "v2", "v1"]
        assert service.get_file_version_content(repo, PATH, "v1") == "0"
        assert backup_files(service, repo) == ["v1.gz", "v2.gz", "v3.gz", "v4.gz", "v5.gz"]

        monkeypatch.setattr(file_store, "atomic_write_bytes", atomic_write_bytes)
        service.update_file(repo, PATH, "kept")
        assert service.get_file_history(repo, PATH)[0].id == "v6"
        assert service.get_file_version_content(repo, PATH, "v6") == "5"

    def test_failed_restore_leaves_history_unchanged(self, service, repo, monkeypatch):
        import humanet_repo.core.version_manager as version_manager

        write_versions(service, repo, 2)
        fail_writes(monkeypatch, version_manager)

        with pytest.raises(RepositoryIOError):
            service.restore_file_version(repo, PATH, "v1")

        assert [v.id for v in service.get_file_history(repo, PATH)] == ["v1"]
        assert service.get_file_content(repo, PATH) == "1"
        assert backup_files(service, repo) == ["v1.gz"]


def test_full_version_lifecycle(service):
    """Create, edit past the cap, restore, and clean up a repository."""
    service.create_repository("lifecycle", "research")
    path = ".humanet/methodology.md"

    for i in range(1, 8):
        service.update_file("lifecycle", path, f"revision {i}")

    history = service.get_file_history("lifecycle", path)
    assert len(history) == 5
    assert history[0].id == "v7"
    assert service.get_file_version_content("lifecycle", path, "v7") == "revision 6"

    service.restore_file_version("lifecycle", path, "v3")
    assert service.get_file_content("lifecycle", path) == "revision 2"
    assert service.get_file_history("lifecycle", path)[0].operation == "restored"

    service.delete_repository("lifecycle")
    assert not service.repository_exists("lifecycle")
