"""
CLI command for showing the outputs recorded by the last successful run.
"""

import json
from typing import Optional

from saltmaster.cli.ux import console, outputs_table, warning
from saltmaster.config.settings import get_settings
from saltmaster.core.errors import main_with_error_handling
from saltmaster.state import load_state


@main_with_error_handling()
def outputs_command(
    stack: Optional[str] = None,
    name: Optional[str] = None,
    output_format: str = "text",
) -> int:
    settings = get_settings()
    stack = stack or settings.stack
    outputs = load_state(stack, settings.state_dir).outputs

    if name:
        if name not in outputs:
            warning(f"Output '{name}' not found for stack {stack}")
            return 1
        print(outputs[name])
        return 0

    if output_format == "json":
        print(json.dumps(outputs, indent=2, sort_keys=True))
    elif not outputs:
        warning(f"No outputs recorded for stack {stack}")
    else:
        console.print(outputs_table(outputs))
    return 0
