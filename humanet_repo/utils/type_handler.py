import os
from typing import Iterable

DEFAULT_MIME_TYPE = "application/octet-stream"

# Extensions accepted by update_file unless settings say otherwise
DEFAULT_ALLOWED_EXTENSIONS = [
    '.md', '.txt', '.json', '.js', '.ts', '.py', '.html', '.css',
]


class FileTypeHandler:
    def __init__(self, allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS):
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.mime_types = {
            # Documents
            '.md': "text/markdown",
            '.txt': "text/plain",
            '.pdf': "application/pdf",

            # Code files
            '.js': "text/javascript",
            '.ts': "text/typescript",
            '.py': "text/x-python",

            # Web
            '.html': "text/html",
            '.css': "text/css",

            # Config files
            '.json': "application/json",

            # Images
            '.png': "image/png",
            '.jpg': "image/jpeg",
            '.jpeg': "image/jpeg",
            '.gif': "image/gif",
        }

    def get_extension(self, file_path: str) -> str:
        return os.path.splitext(file_path.lower())[1]

    def get_mime_type(self, file_path: str) -> str:
        """Determine MIME type based on extension."""
        return self.mime_types.get(self.get_extension(file_path), DEFAULT_MIME_TYPE)

    def is_allowed(self, file_path: str) -> bool:
        """Files without an extension are always allowed."""
        ext = self.get_extension(file_path)
        return not ext or ext in self.allowed_extensions
