"""
CLI commands for saltmaster.
"""

from saltmaster.cli.bootstrap import render_bootstrap_command
from saltmaster.cli.outputs import outputs_command
from saltmaster.cli.preview import preview_command
from saltmaster.cli.up import up_command

__all__ = [
    "outputs_command",
    "preview_command",
    "render_bootstrap_command",
    "up_command",
]
