from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def read_text_or_none(path: Path) -> Optional[str]:
    """Return the file's text, or None if it does not exist or cannot be read."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("⚠️  Could not read %s: %s", path, e)
        return None


def ensure_directory(path: Path, dry_run: bool = False) -> bool:
    """Create a directory (and parents). Returns True if it had to be created."""
    if path.is_dir():
        return False
    if dry_run:
        logger.info("🧪 [dry-run] mkdir -p %s", path)
        return True
    path.mkdir(parents=True, exist_ok=True)
    return True


def write_text_if_changed(path: Path, content: str, dry_run: bool = False) -> bool:
    """Write content to path unless it already holds exactly that. Returns True on write."""
    if read_text_or_none(path) == content:
        return False
    if dry_run:
        logger.info("🧪 [dry-run] write %s (%d bytes)", path, len(content))
        return True
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


def append_line_once(path: Path, line: str, dry_run: bool = False) -> bool:
    """Append a line to a text file unless an identical line is already present."""
    existing = read_text_or_none(path) or ""
    if line in existing.splitlines():
        return False
    if dry_run:
        logger.info("🧪 [dry-run] append to %s: %s", path, line)
        return True
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{prefix}{line}\n")
    return True
