import sys
import json
import argparse
import logging
from typing import List, Optional

from humanet_repo.core.errors import RepositoryError
from humanet_repo.core.filesystem_service import IdeaFilesystemService
from humanet_repo.core.settings import SettingsManager
from humanet_repo.core.templates import DEFAULT_TEMPLATE, TEMPLATES
from humanet_repo.core.tree_builder import DEFAULT_MAX_DEPTH
from humanet_repo.utils.file_utils import format_size
from humanet_repo.utils.time_utils import timestamp_to_age_string

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="humanet-repo",
        description="Humanet - idea repository filesystem and version history"
    )
    parser.add_argument('--storage', help='Directory holding idea repositories')
    parser.add_argument('--settings', help='Path to a JSON settings file')
    parser.add_argument('--max-versions', type=int, help='Versions kept per file')

    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a repository from a template")
    create.add_argument("idea_id")
    create.add_argument("--template", default=DEFAULT_TEMPLATE, choices=sorted(TEMPLATES))

    exists = sub.add_parser("exists", help="Check whether a repository exists")
    exists.add_argument("idea_id")

    ls = sub.add_parser("ls", help="List one directory level")
    ls.add_argument("idea_id")
    ls.add_argument("path", nargs="?", default="")

    tree = sub.add_parser("tree", help="Show the repository tree")
    tree.add_argument("idea_id")
    tree.add_argument("path", nargs="?", default="")
    tree.add_argument("--max-depth", type=int, default=DEFAULT_MAX_DEPTH)

    cat = sub.add_parser("cat", help="Print a file")
    cat.add_argument("idea_id")
    cat.add_argument("path")

    write = sub.add_parser("write", help="Create or overwrite a file")
    write.add_argument("idea_id")
    write.add_argument("path")
    source = write.add_mutually_exclusive_group()
    source.add_argument("--content", help="New content (default: read stdin)")
    source.add_argument("--file", help="Read new content from this local file")

    rm = sub.add_parser("rm", help="Delete a file or directory")
    rm.add_argument("idea_id")
    rm.add_argument("path")

    history = sub.add_parser("history", help="Show a file's version history")
    history.add_argument("idea_id")
    history.add_argument("path")

    show = sub.add_parser("show", help="Print the content of one version")
    show.add_argument("idea_id")
    show.add_argument("path")
    show.add_argument("version_id")

    restore = sub.add_parser("restore", help="Restore a file to an earlier version")
    restore.add_argument("idea_id")
    restore.add_argument("path")
    restore.add_argument("version_id")

    overview = sub.add_parser("overview", help="Template, metadata and statistics")
    overview.add_argument("idea_id")

    delete_repo = sub.add_parser("delete-repo", help="Delete a repository and its history")
    delete_repo.add_argument("idea_id")

    return parser


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _read_new_content(args) -> str:
    if args.content is not None:
        return args.content
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def run(service: IdeaFilesystemService, args) -> int:
    """Execute one parsed command against service."""
    if args.command == "create":
        meta = service.create_repository(args.idea_id, args.template)
        _print_json(meta.to_dict())
    elif args.command == "exists":
        exists = service.repository_exists(args.idea_id)
        print("yes" if exists else "no")
        return 0 if exists else 1
    elif args.command == "ls":
        _print_json([entry.to_dict() for entry in service.list_files(args.idea_id, args.path)])
    elif args.command == "tree":
        _print_json(service.get_file_tree(args.idea_id, args.max_depth, args.path).to_dict())
    elif args.command == "cat":
        sys.stdout.write(service.get_file_content(args.idea_id, args.path))
    elif args.command == "write":
        service.update_file(args.idea_id, args.path, _read_new_content(args))
    elif args.command == "rm":
        service.delete_file(args.idea_id, args.path)
    elif args.command == "history":
        for version in service.get_file_history(args.idea_id, args.path):
            print(f"{version.id}\t{version.operation}\t{format_size(version.size)}\t"
                  f"{version.timestamp} ({timestamp_to_age_string(version.timestamp)})")
    elif args.command == "show":
        sys.stdout.write(service.get_file_version_content(args.idea_id, args.path, args.version_id))
    elif args.command == "restore":
        snapshot = service.restore_file_version(args.idea_id, args.path, args.version_id)
        print(f"Restored {args.path} to {args.version_id}; previous content kept as {snapshot.id}")
    elif args.command == "overview":
        _print_json(service.get_repository_overview(args.idea_id))
    elif args.command == "delete-repo":
        service.delete_repository(args.idea_id)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = SettingsManager(
        settings_file=args.settings,
        configure_logs=True,
        storage_path=args.storage,
        max_versions=args.max_versions,
    )
    service = IdeaFilesystemService(settings)

    try:
        return run(service, args)
    except RepositoryError as e:
        logger.info(f"Command {args.command} failed: {e.kind.value}: {e.message}")
        print(f"error: {e.kind.value}: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"error: {str(e)}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"error: {str(e)}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
