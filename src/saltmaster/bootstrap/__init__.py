"""Bootstrap payload composition."""

from saltmaster.bootstrap.config import BootstrapConfig, BootstrapConfigBuilder
from saltmaster.bootstrap.render import render

__all__ = ["BootstrapConfig", "BootstrapConfigBuilder", "render"]
