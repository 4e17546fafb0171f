# utils/file_utils.py

import os
import stat
import hashlib
import tempfile

# Mode a plain open() would give a new file under the process umask
_umask = os.umask(0)
os.umask(_umask)
DEFAULT_FILE_MODE = 0o666 & ~_umask


def calculate_content_hash(content: bytes) -> str:
    """Calculate SHA-256 hash of a content blob."""
    return hashlib.sha256(content).hexdigest()


def format_size(size: int) -> str:
    """Format file size in human-readable format."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} PB"


def atomic_write_bytes(target_file: str, data: bytes) -> None:
    """
    Write data to target_file so that readers see either the old or the new
    content, never a partial write.

    The data goes to a temporary file in the target's directory which then
    replaces the target. An existing target keeps its permission bits; a new
    one gets DEFAULT_FILE_MODE.
    """
    directory = os.path.dirname(target_file)
    try:
        mode = stat.S_IMODE(os.stat(target_file).st_mode)
    except FileNotFoundError:
        mode = DEFAULT_FILE_MODE

    fd, temp_file = tempfile.mkstemp(
        prefix=f".tmp_{os.path.basename(target_file)}.", dir=directory
    )
    try:
        with os.fdopen(fd, 'wb') as dst:
            os.chmod(temp_file, mode)
            dst.write(data)
            dst.flush()
            os.fsync(dst.fileno())
        os.replace(temp_file, target_file)
    except BaseException:
        # Clean up the temporary file if it is still around
        if os.path.exists(temp_file):
            os.remove(temp_file)
        raise


def atomic_write_text(target_file: str, content: str) -> None:
    """UTF-8 variant of atomic_write_bytes."""
    atomic_write_bytes(target_file, content.encode('utf-8'))


def read_text(file_path: str) -> str:
    """Read a UTF-8 text file without newline translation."""
    with open(file_path, 'rb') as f:
        return f.read().decode('utf-8')
