"""
base.py
-------

Defines the **ServiceBase** class, a lightweight foundation for all core
services in the Citizenship Coach stack.

### Responsibilities
- Provide a consistent root path reference for all derived services.
- Resolve relative data paths (vector index, catalogue) against that root.

### Notes
This class intentionally avoids heavy dependencies or initialization
side effects so service singletons can be created at import time.
"""

import os


class ServiceBase:
    """
    Base class for all system services.

    Attributes:
        root (str): Project root directory (two levels up from this file).
    """

    def __init__(self):
        current_dir = os.path.dirname(os.path.abspath(__file__))
        self.root = os.path.abspath(f"{current_dir}/../..")

    def resolve_path(self, path: str) -> str:
        """Return `path` as an absolute path, relative paths taken from the project root."""
        if path and not os.path.isabs(path):
            return os.path.join(self.root, path)
        return path
