"""Filesystem helpers for cfpulse."""

import logging
import os
import shutil
import sys
from pathlib import Path

from rich.console import Console


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def write_file(self, path: Path, content: str):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(content.strip() + "\n")

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except Exception as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def set_tree_permissions(self, root: str, dir_mode: int, file_mode: int):
        if sys.platform == "win32" or not os.path.exists(root):
            return

        self.set_permissions(root, dir_mode)
        for current_root, dirs, files in os.walk(root):
            for directory in dirs:
                self.set_permissions(os.path.join(current_root, directory), dir_mode)
            for file_name in files:
                self.set_permissions(os.path.join(current_root, file_name), file_mode)

    def cleanup_dir(self, path) -> bool:
        """Removes a directory tree; failures are reported, never raised."""
        if not path or not os.path.exists(path):
            return True

        try:
            shutil.rmtree(path)
            self.logger.debug("Removed directory: %s", path)
            return True
        except Exception as exc:
            message = f"Warning: Could not remove {path}: {exc}"
            self.console.print(f"[yellow]{message}[/yellow]")
            self.logger.warning(message)
            return False
