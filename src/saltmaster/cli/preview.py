"""
CLI command for previewing a provisioning run (dry-run).
"""

import asyncio
import json
from typing import Optional

from saltmaster.cli.ux import console
from saltmaster.config.loader import load_request
from saltmaster.config.settings import get_settings
from saltmaster.core.errors import main_with_error_handling
from saltmaster.orchestration.results import PlanResult
from saltmaster.orchestrator import SaltMasterOrchestrator
from saltmaster.state import load_state

ACTION_STYLES = {
    "create": "[green]+ create [/green]",
    "replace": "[red]± replace[/red]",
    "update": "[yellow]~ update [/yellow]",
    "same": "[dim]  same   [/dim]",
}


def print_plan_summary(result: PlanResult) -> None:
    console.print()
    console.print(f"[bold]Preview for stack {result.stack}[/bold]")
    console.print()
    for step in result.steps:
        deps = f" [dim]← {', '.join(step.depends_on)}[/dim]" if step.depends_on else ""
        console.print(f"  {ACTION_STYLES[step.action]} {step.name:<18} {step.description}{deps}")
    console.print()
    console.print(f"{len(result.changes)} step(s) with changes")
    if result.providers:
        statuses = ", ".join(f"{role} {status}" for role, status in result.providers.items())
        console.print(f"Providers: {statuses}")
    for error in result.errors:
        console.print(f"[red]{error}[/red]")


def print_plan_json(result: PlanResult) -> None:
    output = {
        "stack": result.stack,
        "steps": [
            {
                "name": step.name,
                "description": step.description,
                "depends_on": step.depends_on,
                "action": step.action,
                "details": step.details,
            }
            for step in result.steps
        ],
        "errors": result.errors,
        "providers": result.providers,
    }
    print(json.dumps(output, indent=2))


@main_with_error_handling()
def preview_command(
    stack: Optional[str] = None,
    config_path: Optional[str] = None,
    output_format: str = "text",
    check: bool = False,
) -> int:
    """Show the steps a run would perform, based on the recorded state.

    With ``check`` the compute and DNS APIs are also asked for their health;
    an unreachable one fails the preview.
    """
    settings = get_settings()
    stack = stack or settings.stack
    request = load_request(stack, config_path)
    state = load_state(stack, settings.state_dir)

    orchestrator = SaltMasterOrchestrator.from_settings(request, settings, state)
    result = orchestrator.plan()
    if check:
        for role, health in asyncio.run(orchestrator.check_providers()).items():
            result.providers[role] = health.status
            if health.status == "unreachable":
                result.errors.append(f"{role} provider unreachable: {health.details}")

    if output_format == "json":
        print_plan_json(result)
    else:
        print_plan_summary(result)
    return 0 if result.success else 1
