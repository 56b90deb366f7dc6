"""Temporary file storage for browser scratch directories and exported files."""

import os
import shutil
import tempfile


class TemporaryFileStorage:
    """Files below a private temporary directory, removed by cleanup()."""

    def __init__(self, prefix="pdfexport-"):
        self.base_dir = tempfile.mkdtemp(prefix=prefix)

    def resolve_path(self, name, assert_existence=False):
        """Absolute path of name inside the storage."""
        path = os.path.join(self.base_dir, name)
        if assert_existence and not os.path.exists(path):
            raise FileNotFoundError(path)
        return os.path.abspath(path)

    def create(self, name, content):
        """Create name with content (str or bytes). Existing files are not overwritten."""
        path = self.resolve_path(name)
        mode = "xb" if isinstance(content, bytes) else "x"
        with open(path, mode) as f:
            f.write(content)
        return path

    def cleanup(self):
        shutil.rmtree(self.base_dir, ignore_errors=True)
