"""Adapters — bindings for the external tools the forge drives.

Public re-exports for convenient access.
"""

from apiforge.adapters.base import Runner
from apiforge.adapters.mock import MockRunner
from apiforge.adapters.shell.command import CommandRunner
from apiforge.adapters.vcs.git import GitClient
