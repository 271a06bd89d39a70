"""
Resolution of the Claude data directory.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

CONFIG_DIR_ENV_VAR = "CLAUDE_CONFIG_DIR"
PROJECTS_SUBDIRECTORY = "projects"


class DataDirectoryResolver:
    """Locate the root directory holding Claude usage logs.

    Precedence: explicit directory, then the CLAUDE_CONFIG_DIR environment
    variable, then ~/.claude. A directory named `config` resolves to its
    parent, since that is where the `projects` directory lives.
    """

    def __init__(
        self,
        directory: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        self.directory = directory
        self.environ = os.environ if environ is None else environ

    def data_directory(self) -> Path:
        """Return the root data directory.

        Raises:
            RuntimeError: If the home directory cannot be determined
        """
        if self.directory is not None:
            candidate = Path(self.directory)
        elif self.environ.get(CONFIG_DIR_ENV_VAR):
            candidate = Path(self.environ[CONFIG_DIR_ENV_VAR])
        else:
            candidate = Path.home() / ".claude"

        candidate = candidate.expanduser()
        if candidate.name == "config":
            return candidate.parent
        return candidate

    def projects_directory(self) -> Path:
        return self.data_directory() / PROJECTS_SUBDIRECTORY
