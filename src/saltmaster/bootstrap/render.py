"""Render the cloud-init user data for the salt master.

``render`` is pure: the same BootstrapConfig always produces the same bytes.
The output becomes device user data, and any change to it replaces the
device on the next run.
"""

from __future__ import annotations

from typing import Any

import yaml

from saltmaster.bootstrap.config import BootstrapConfig

SALT_BOOTSTRAP_URL = "https://bootstrap.saltproject.io"
SALT_VERSION = "3002"
TELEPORT_VERSION = "5.1.0"

TELEPORT_AUTH_PORT = 3025
TELEPORT_WEB_PORT = 3080

TELEPORT_UNIT = """\
[Unit]
Description=Teleport Service
After=network.target

[Service]
Type=simple
Restart=on-failure
ExecStart=/usr/local/bin/teleport start --config=/etc/teleport.yaml

[Install]
WantedBy=multi-user.target
"""


def _dump(data: Any) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def teleport_config(config: BootstrapConfig) -> dict[str, Any]:
    return {
        "teleport": {
            "nodename": "salt-master",
            "data_dir": "/var/lib/teleport",
            "log": {"output": "stderr", "severity": "INFO"},
        },
        "auth_service": {
            "enabled": True,
            "cluster_name": config.teleport_domain,
            "listen_addr": f"0.0.0.0:{TELEPORT_AUTH_PORT}",
            "public_addr": f"{config.teleport_domain}:{TELEPORT_AUTH_PORT}",
            "authentication": {"type": "github"},
            "tokens": [f"proxy,node:{config.teleport_peer_token}"],
        },
        "proxy_service": {
            "enabled": True,
            "web_listen_addr": f"0.0.0.0:{TELEPORT_WEB_PORT}",
            "public_addr": f"{config.teleport_domain}:{TELEPORT_WEB_PORT}",
            "https_keypairs": [],
            "acme": {"enabled": True},
        },
        "ssh_service": {"enabled": True, "labels": {"role": "salt-master"}},
    }


def github_connector(config: BootstrapConfig) -> dict[str, Any]:
    return {
        "kind": "github",
        "version": "v3",
        "metadata": {"name": "github"},
        "spec": {
            "client_id": config.teleport_client_id,
            "client_secret": config.teleport_client_secret,
            "display": "GitHub",
            "redirect_url": (
                f"https://{config.teleport_domain}:{TELEPORT_WEB_PORT}/v1/webapi/github/callback"
            ),
        },
    }


def salt_master_config(config: BootstrapConfig) -> dict[str, Any]:
    return {
        "fileserver_backend": ["gitfs", "s3fs", "roots"],
        "gitfs_provider": "pygit2",
        "gitfs_user": config.github_username,
        "gitfs_password": config.github_access_token,
        "s3.keyid": config.storage_access_key_id,
        "s3.key": config.storage_secret_access_key,
        "s3.location": config.storage_bucket_location,
        "s3.buckets": [config.storage_bucket_name],
    }


def render(config: BootstrapConfig) -> str:
    """Render the cloud-init payload for ``config``."""
    cloud_config = {
        "package_update": True,
        "packages": ["curl", "git", "python3-pygit2"],
        "write_files": [
            {
                "path": "/etc/salt/master.d/saltmaster.conf",
                "permissions": "0600",
                "content": _dump(salt_master_config(config)),
            },
            {
                "path": "/etc/teleport.yaml",
                "permissions": "0600",
                "content": _dump(teleport_config(config)),
            },
            {
                "path": "/etc/teleport/github.yaml",
                "permissions": "0600",
                "content": _dump(github_connector(config)),
            },
            {
                "path": "/etc/systemd/system/teleport.service",
                "permissions": "0644",
                "content": TELEPORT_UNIT,
            },
        ],
        "runcmd": [
            f"curl -fsSL {SALT_BOOTSTRAP_URL} -o /tmp/bootstrap-salt.sh",
            f"sh /tmp/bootstrap-salt.sh -M -P stable {SALT_VERSION}",
            (
                "curl -fsSL https://get.gravitational.com/"
                f"teleport-v{TELEPORT_VERSION}-linux-amd64-bin.tar.gz | tar -xz -C /tmp"
            ),
            "/tmp/teleport/install",
            "systemctl daemon-reload",
            "systemctl enable --now teleport",
            "until tctl status; do sleep 5; done",
            "tctl create -f /etc/teleport/github.yaml",
            "systemctl enable --now salt-master",
        ],
    }
    return "#cloud-config\n" + _dump(cloud_config)
