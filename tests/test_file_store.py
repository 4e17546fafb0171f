import json
import os

import pytest

from humanet_repo.core.errors import (
    ErrorKind,
    FileNotFoundInRepositoryError,
    FileTooLargeError,
    FileTypeNotAllowedError,
    RepositoryIOError,
    RepositoryNotFoundError,
    RequiredFileProtectedError,
)
from humanet_repo.core.filesystem_service import IdeaFilesystemService


class TestRepositoryLifecycle:
    def test_exists(self, service, repo):
        assert service.repository_exists(repo)
        assert not service.repository_exists("other")

    def test_delete_repository_removes_everything(self, service, repo):
        service.update_file(repo, "docs/a.md", "one")
        service.update_file(repo, "docs/a.md", "two")
        root = service.sandbox.repository_root(repo)

        service.delete_repository(repo)

        assert not os.path.exists(root)
        assert not service.repository_exists(repo)

    def test_delete_missing_repository_is_a_noop(self, service):
        service.delete_repository("never-created")

    def test_operations_on_missing_repository(self, service):
        with pytest.raises(RepositoryNotFoundError):
            service.get_file_content("ghost", "docs/a.md")
        with pytest.raises(RepositoryNotFoundError):
            service.update_file("ghost", "docs/a.md", "x")
        with pytest.raises(RepositoryNotFoundError):
            service.list_files("ghost")
        with pytest.raises(RepositoryNotFoundError):
            service.delete_file("ghost", "docs/a.md")
        assert not service.repository_exists("ghost")


class TestReadWrite:
    def test_create_then_read(self, service, repo):
        service.update_file(repo, "src/deep/main.txt", "hello")
        assert service.get_file_content(repo, "src/deep/main.txt") == "hello"

    def test_content_is_byte_exact(self, service, repo):
        content = "line one\r\nline two\né中"
        service.update_file(repo, "docs/crlf.txt", content)
        assert service.get_file_content(repo, "docs/crlf.txt") == content

    def test_missing_file(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError) as exc_info:
            service.get_file_content(repo, "docs/missing.md")
        assert exc_info.value.kind is ErrorKind.FILE_NOT_FOUND
        assert exc_info.value.path == "docs/missing.md"

    def test_directory_is_not_a_file(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError):
            service.get_file_content(repo, "docs")

    def test_writing_onto_directory_fails(self, service, repo):
        with pytest.raises(RepositoryIOError):
            service.update_file(repo, "docs", "x")

    def test_size_limit(self, storage_path):
        service = IdeaFilesystemService(storage_path=storage_path, max_file_size=10)
        service.create_repository("idea-1")

        service.update_file("idea-1", "docs/ok.txt", "0123456789")
        with pytest.raises(FileTooLargeError):
            service.update_file("idea-1", "docs/big.txt", "0123456789A")
        assert not os.path.exists(service.sandbox.resolve("idea-1", "docs/big.txt"))

    @pytest.mark.parametrize("path", ["docs/tool.exe", "media/photo.PNG", "run.sh"])
    def test_disallowed_extensions(self, service, repo, path):
        with pytest.raises(FileTypeNotAllowedError):
            service.update_file(repo, path, "x")

    @pytest.mark.parametrize("path", ["Makefile", "docs/NOTES.MD", "src/app.py"])
    def test_allowed_names(self, service, repo, path):
        service.update_file(repo, path, "x")
        assert service.get_file_content(repo, path) == "x"

    def test_no_temporary_files_left_behind(self, service, repo):
        service.update_file(repo, "docs/a.md", "one")
        service.update_file(repo, "docs/a.md", "two")
        assert [e.name for e in service.list_files(repo, "docs")] == ["a.md"]

    def test_updating_metadata_file_refreshes_meta(self, service, repo):
        before = json.loads(service.get_file_content(repo, ".humanet/meta.json"))

        service.update_file(repo, ".humanet/idea.md", "# My idea\n")

        after = json.loads(service.get_file_content(repo, ".humanet/meta.json"))
        assert after["template"] == before["template"]
        assert after["created"] == before["created"]
        assert after["lastModified"] >= before["lastModified"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
    def test_new_file_gets_default_mode(self, service, repo):
        from humanet_repo.utils.file_utils import DEFAULT_FILE_MODE

        service.update_file(repo, "docs/a.md", "one")

        mode = os.stat(service.sandbox.resolve(repo, "docs/a.md")).st_mode & 0o777
        assert mode == DEFAULT_FILE_MODE

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
    def test_overwrite_keeps_existing_mode(self, service, repo):
        service.update_file(repo, "docs/a.md", "one")
        physical = service.sandbox.resolve(repo, "docs/a.md")
        os.chmod(physical, 0o640)

        service.update_file(repo, "docs/a.md", "two")

        assert os.stat(physical).st_mode & 0o777 == 0o640


class TestDelete:
    @pytest.mark.parametrize("path", [
        ".humanet/idea.md",
        ".humanet/scope.md",
        ".humanet/problem.md",
        ".humanet/search.md",
        ".humanet/meta.json",
        "./.humanet/idea.md",
        "docs/../.humanet/idea.md",
        ".humanet\\idea.md",
        ".humanet",
    ])
    def test_required_files_are_protected(self, service, repo, path):
        with pytest.raises(RequiredFileProtectedError) as exc_info:
            service.delete_file(repo, path)
        assert exc_info.value.kind.http_status == 400
        assert os.path.exists(service.sandbox.resolve(repo, ".humanet/idea.md"))

    def test_protection_follows_the_active_template(self, service):
        service.create_repository("research-idea", "research")
        service.create_repository("basic-idea", "basic")

        with pytest.raises(RequiredFileProtectedError):
            service.delete_file("research-idea", ".humanet/methodology.md")

        service.update_file("basic-idea", ".humanet/methodology.md", "# extra")
        service.delete_file("basic-idea", ".humanet/methodology.md")

    def test_required_file_protected_even_when_missing(self, service, repo):
        os.remove(service.sandbox.resolve(repo, ".humanet/scope.md"))
        with pytest.raises(RequiredFileProtectedError):
            service.delete_file(repo, ".humanet/scope.md")

    def test_delete_regular_file(self, service, repo):
        service.update_file(repo, "docs/a.md", "content")
        service.delete_file(repo, "docs/a.md")

        with pytest.raises(FileNotFoundInRepositoryError):
            service.get_file_content(repo, "docs/a.md")

    def test_delete_missing_file(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError):
            service.delete_file(repo, "docs/nothing.md")

    def test_delete_removes_history_and_backups(self, service, repo):
        service.update_file(repo, "docs/a.md", "one")
        service.update_file(repo, "docs/a.md", "two")
        backup_dir = os.path.join(service.backup_manager.versions_root(repo),
                                  service.backup_manager.backup_key("docs/a.md"))
        assert os.listdir(backup_dir)

        service.delete_file(repo, "docs/a.md")

        assert not os.path.exists(backup_dir)
        service.update_file(repo, "docs/a.md", "fresh")
        assert service.get_file_history(repo, "docs/a.md") == []

    def test_delete_directory_purges_nested_history(self, service, repo):
        service.update_file(repo, "src/a.txt", "1")
        service.update_file(repo, "src/a.txt", "2")
        service.update_file(repo, "src/lib/b.txt", "1")
        service.update_file(repo, "src/lib/b.txt", "2")
        service.update_file(repo, "srcfile.txt", "1")
        service.update_file(repo, "srcfile.txt", "2")

        service.delete_file(repo, "src")

        index = service.version_manager.load_index(repo)
        assert set(index["files"]) == {"srcfile.txt"}
        assert "src" not in {e.name for e in service.list_files(repo)}

    def test_editing_meta_json_does_not_change_protection(self, service):
        service.create_repository("research-idea", "research")
        service.update_file("research-idea", ".humanet/meta.json", '{"template": "basic"}')

        with pytest.raises(RequiredFileProtectedError):
            service.delete_file("research-idea", ".humanet/methodology.md")
        assert service.get_repository_overview("research-idea")["template"] == "research"

    def test_corrupt_meta_json_does_not_change_protection(self, service):
        service.create_repository("technical-idea", "technical")
        service.update_file("technical-idea", ".humanet/meta.json", "{not json")

        with pytest.raises(RequiredFileProtectedError):
            service.delete_file("technical-idea", ".humanet/architecture.md")
        assert os.path.exists(service.sandbox.resolve("technical-idea", ".humanet/architecture.md"))


class TestListFiles:
    def test_one_level_sorted_directories_first(self, service, repo):
        service.update_file(repo, "docs/b.md", "bb")
        service.update_file(repo, "docs/a.txt", "a")
        service.update_file(repo, "docs/sub/c.md", "c")

        entries = service.list_files(repo, "docs")

        assert [(e.name, e.type) for e in entries] == [
            ("sub", "directory"), ("a.txt", "file"), ("b.md", "file"),
        ]
        sub, a_txt, b_md = entries
        assert sub.children is None and sub.size is None
        assert a_txt.path == "docs/a.txt"
        assert a_txt.size == 1
        assert a_txt.mime_type == "text/plain"
        assert b_md.mime_type == "text/markdown"
        assert b_md.last_modified.endswith("Z")

    def test_version_storage_is_hidden(self, service, repo):
        service.update_file(repo, "docs/a.md", "one")
        service.update_file(repo, "docs/a.md", "two")
        assert os.path.isdir(service.backup_manager.versions_root(repo))

        assert ".versions" not in {e.name for e in service.list_files(repo)}

    def test_missing_sub_path(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError):
            service.list_files(repo, "nope")

    def test_file_sub_path(self, service, repo):
        with pytest.raises(FileNotFoundInRepositoryError):
            service.list_files(repo, ".humanet/idea.md")

    def test_to_dict_uses_wire_names(self, service, repo):
        entry = [e for e in service.list_files(repo, ".humanet") if e.name == "meta.json"][0]
        data = entry.to_dict()
        assert data["path"] == ".humanet/meta.json"
        assert data["mimeType"] == "application/json"
        assert "children" not in data
