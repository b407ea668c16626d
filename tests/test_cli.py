"""Tests for the saltmaster CLI commands."""

import json

import pytest
import yaml
from saltmaster.cli.bootstrap import PLACEHOLDER_TOKEN, render_bootstrap_command
from saltmaster.cli.outputs import outputs_command
from saltmaster.cli.preview import preview_command
from saltmaster.cli.up import up_command
from saltmaster.config.settings import Settings
from saltmaster.core.errors import ExitCode, ProviderError
from saltmaster.main import build_parser, main
from saltmaster.orchestration.tokens import PEER_TOKEN_RESOURCE
from saltmaster.orchestrator import SaltMasterOrchestrator
from saltmaster.providers.base import ProviderHealth
from saltmaster.state import StackState, load_state, save_state, stack_lock


@pytest.fixture
def settings(tmp_path, monkeypatch):
    settings = Settings(state_dir=tmp_path / "state", stack="dev")
    for module in ("up", "preview", "outputs", "bootstrap"):
        monkeypatch.setattr(f"saltmaster.cli.{module}.get_settings", lambda: settings)
    return settings


@pytest.fixture
def stack_file(tmp_path, stack_config):
    path = tmp_path / "dev.yaml"
    path.write_text(yaml.safe_dump({"config": stack_config}))
    return str(path)


@pytest.fixture
def fake_backend(monkeypatch, cloud):
    """Route SaltMasterOrchestrator.from_settings to the in-memory cloud."""

    def from_settings(cls, request, settings, state=None):
        return cls(
            request,
            compute=cloud,
            dns=cloud,
            tokens=cloud,
            state=state,
            state_dir=settings.state_dir,
        )

    monkeypatch.setattr(SaltMasterOrchestrator, "from_settings", classmethod(from_settings))
    return cloud


class TestUpCommand:
    def test_up_json(self, settings, stack_file, fake_backend, capsys):
        exit_code = up_command(stack="dev", config_path=stack_file, output_format="json")

        assert exit_code == ExitCode.SUCCESS
        output = json.loads(capsys.readouterr().out)
        assert output["outputs"] == {"saltMasterEip": "147.75.0.10", "saltMasterIp": "10.0.0.1"}
        assert load_state("dev", settings.state_dir).outputs == output["outputs"]
        assert not (settings.state_dir / "dev.lock").exists()

    def test_up_text(self, settings, stack_file, fake_backend, capsys):
        exit_code = up_command(stack="dev", config_path=stack_file, verbose=True)

        assert exit_code == ExitCode.SUCCESS
        out = capsys.readouterr().out
        assert "saltMasterEip" in out
        assert "147.75.0.10" in out
        assert "equinix:Device:salt-master" in out

    def test_up_provider_failure(self, settings, stack_file, fake_backend):
        fake_backend.failures["create_instance"] = ProviderError("no capacity")

        exit_code = up_command(stack="dev", config_path=stack_file)

        assert exit_code == ExitCode.PROVIDER_ERROR
        assert not (settings.state_dir / "dev.lock").exists()

    def test_up_locked(self, settings, stack_file, fake_backend):
        with stack_lock("dev", settings.state_dir):
            exit_code = up_command(stack="dev", config_path=stack_file)

        assert exit_code == ExitCode.BLOCKED
        assert fake_backend.calls == []

    def test_up_missing_config(self, settings, tmp_path, fake_backend):
        exit_code = up_command(stack="dev", config_path=str(tmp_path / "missing.yaml"))

        assert exit_code == ExitCode.CONFIG_ERROR


class TestPreviewCommand:
    def test_preview_json(self, settings, stack_file, fake_backend, capsys):
        exit_code = preview_command(stack="dev", config_path=stack_file, output_format="json")

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        actions = {step["name"]: step["action"] for step in output["steps"]}
        assert actions["create_instance"] == "create"
        assert fake_backend.calls == []

    def test_preview_text(self, settings, stack_file, fake_backend, capsys):
        exit_code = preview_command(stack="dev", config_path=stack_file)

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "reserve_address" in out
        assert "7 step(s) with changes" in out

    def test_preview_check_reports_provider_health(self, settings, stack_file, fake_backend, capsys):
        exit_code = preview_command(
            stack="dev", config_path=stack_file, output_format="json", check=True
        )

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["providers"] == {"compute": "healthy", "dns": "healthy"}

    def test_preview_check_fails_when_provider_unreachable(
        self, settings, stack_file, fake_backend, monkeypatch, capsys
    ):
        async def unreachable():
            return ProviderHealth(status="unreachable", details="HTTP 401")

        monkeypatch.setattr(fake_backend, "health_check", unreachable)

        exit_code = preview_command(stack="dev", config_path=stack_file, check=True)

        assert exit_code == 1
        assert "compute provider unreachable: HTTP 401" in capsys.readouterr().out

    def test_preview_without_credentials_is_config_error(self, tmp_path, stack_file, monkeypatch):
        bare = Settings(
            _env_file=None,
            state_dir=tmp_path / "state",
            stack="dev",
            metal_auth_token=None,
            ns1_api_key=None,
        )
        monkeypatch.setattr("saltmaster.cli.preview.get_settings", lambda: bare)

        exit_code = preview_command(stack="dev", config_path=stack_file)

        assert exit_code == ExitCode.CONFIG_ERROR


class TestOutputsCommand:
    def test_outputs_json(self, settings, capsys):
        save_state(StackState(stack="dev", outputs={"saltMasterEip": "147.75.0.10"}), settings.state_dir)

        assert outputs_command(output_format="json") == 0
        assert json.loads(capsys.readouterr().out) == {"saltMasterEip": "147.75.0.10"}

    def test_single_output(self, settings, capsys):
        save_state(StackState(stack="dev", outputs={"saltMasterIp": "10.0.0.1"}), settings.state_dir)

        assert outputs_command(name="saltMasterIp") == 0
        assert capsys.readouterr().out.strip() == "10.0.0.1"

    def test_unknown_output(self, settings):
        assert outputs_command(name="saltMasterIp") == 1


class TestRenderBootstrapCommand:
    def test_placeholder_token(self, settings, stack_file, capsys):
        assert render_bootstrap_command(config_path=stack_file) == 0

        out = capsys.readouterr().out
        assert out.startswith("#cloud-config")
        assert PLACEHOLDER_TOKEN in out

    def test_recorded_token(self, settings, stack_file, capsys):
        state = StackState(stack="dev")
        state.set(PEER_TOKEN_RESOURCE, {"result": "deadbeef"})
        save_state(state, settings.state_dir)

        assert render_bootstrap_command(config_path=stack_file) == 0
        assert "proxy,node:deadbeef" in capsys.readouterr().out

    def test_write_to_file(self, settings, stack_file, tmp_path):
        target = tmp_path / "user-data.yaml"

        assert render_bootstrap_command(config_path=stack_file, token="cafebabe", output=str(target)) == 0
        assert "cafebabe" in target.read_text()


class TestMain:
    def test_parser_up(self):
        args = build_parser().parse_args(["up", "--stack", "prod", "--config", "prod.yaml", "-v"])

        assert args.command == "up"
        assert args.stack == "prod"
        assert args.config_path == "prod.yaml"
        assert args.verbose

    def test_parser_preview_check(self):
        args = build_parser().parse_args(["preview", "--check", "--output", "json"])

        assert args.command == "preview"
        assert args.check
        assert args.output == "json"

    def test_providers(self, monkeypatch, capsys):
        monkeypatch.setattr("saltmaster.main.configure_logging", lambda *a, **kw: None)

        with pytest.raises(SystemExit) as excinfo:
            main(["providers"])

        assert excinfo.value.code == 0
        out = capsys.readouterr().out
        assert "equinix-metal" in out
        assert "ns1" in out

    def test_no_command_prints_help(self, monkeypatch):
        monkeypatch.setattr("saltmaster.main.configure_logging", lambda *a, **kw: None)

        with pytest.raises(SystemExit) as excinfo:
            main([])

        assert excinfo.value.code == 1
