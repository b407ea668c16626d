"""
CLI command for rendering the bootstrap user data without provisioning.
"""

from pathlib import Path
from typing import Optional

from saltmaster.bootstrap import BootstrapConfigBuilder, render
from saltmaster.cli.ux import success
from saltmaster.config.loader import load_request
from saltmaster.config.settings import get_settings
from saltmaster.core.errors import main_with_error_handling
from saltmaster.orchestration.tokens import PEER_TOKEN_RESOURCE
from saltmaster.state import load_state

PLACEHOLDER_TOKEN = "00000000-0000-0000-0000-000000000000"


@main_with_error_handling()
def render_bootstrap_command(
    stack: Optional[str] = None,
    config_path: Optional[str] = None,
    token: Optional[str] = None,
    output: Optional[str] = None,
) -> int:
    """
    Render the cloud-init payload.

    The peer token is taken from ``token``, then from the recorded stack
    state, and falls back to an all-zero placeholder.
    """
    settings = get_settings()
    stack = stack or settings.stack
    request = load_request(stack, config_path)

    if token is None:
        recorded = load_state(stack, settings.state_dir).get(PEER_TOKEN_RESOURCE) or {}
        token = recorded.get("result") or PLACEHOLDER_TOKEN

    payload = render(BootstrapConfigBuilder.from_request(request).with_peer_token(token).build())

    if output:
        Path(output).write_text(payload)
        success(f"Bootstrap payload written to {output}")
    else:
        print(payload, end="")
    return 0
