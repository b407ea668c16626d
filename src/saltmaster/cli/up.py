"""
CLI command for provisioning the salt master.
"""

import asyncio
import json
from typing import Optional

from saltmaster.cli.ux import console, outputs_table, success
from saltmaster.config.loader import load_request
from saltmaster.config.settings import get_settings
from saltmaster.core.errors import main_with_error_handling
from saltmaster.orchestration.results import ProvisioningResult
from saltmaster.orchestrator import SaltMasterOrchestrator
from saltmaster.state import load_state, stack_lock


def print_up_summary(result: ProvisioningResult, verbose: bool = False) -> None:
    console.print()
    success(f"Stack [bold]{result.stack}[/bold] provisioned in {result.duration_seconds:.1f}s")
    if verbose:
        console.print()
        for name in sorted(result.resources):
            console.print(f"  [muted]•[/muted] {name}")
    console.print()
    console.print(outputs_table(result.outputs))


def print_up_json(result: ProvisioningResult) -> None:
    output = {
        "stack": result.stack,
        "outputs": result.outputs,
        "resources": result.resources,
        "duration_seconds": result.duration_seconds,
    }
    print(json.dumps(output, indent=2, sort_keys=True))


@main_with_error_handling()
def up_command(
    stack: Optional[str] = None,
    config_path: Optional[str] = None,
    output_format: str = "text",
    verbose: bool = False,
) -> int:
    """
    Provision the salt master for a stack.

    Args:
        stack: Stack name (defaults to SALTMASTER_STACK)
        config_path: Explicit stack file path
        output_format: text or json
        verbose: List recorded resources

    Returns:
        Exit code
    """
    settings = get_settings()
    stack = stack or settings.stack
    request = load_request(stack, config_path)

    with stack_lock(stack, settings.state_dir):
        state = load_state(stack, settings.state_dir)
        orchestrator = SaltMasterOrchestrator.from_settings(request, settings, state)
        result = asyncio.run(orchestrator.run())

    if output_format == "json":
        print_up_json(result)
    else:
        print_up_summary(result, verbose=verbose)
    return 0
