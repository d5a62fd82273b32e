"""Runtime paths shared by the app factory and routers."""

from __future__ import annotations

import os
from typing import Optional


class AppContext:
    """Directory layout for one server process.

    Everything hangs off ``cwd``: ``data/config.json`` holds boot config,
    ``logs/`` the server log, ``logs/tests/`` harness run logs.
    """

    def __init__(self, cwd: str, *, config_path: Optional[str] = None) -> None:
        self.cwd = cwd
        self.data_dir = os.path.join(cwd, "data")
        self.config_path = config_path or os.path.join(self.data_dir, "config.json")

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.cwd, "logs")

    @property
    def test_logs_dir(self) -> str:
        return os.path.join(self.logs_dir, "tests")

    def ensure_dirs(self) -> None:
        for path in (self.data_dir, self.logs_dir, self.test_logs_dir):
            os.makedirs(path, exist_ok=True)
