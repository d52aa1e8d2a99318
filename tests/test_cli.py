from click.testing import CliRunner

import cfpulse.cli as cli_module
from cfpulse.errors import CloneError, TargetError
from cfpulse.models import CloneState, TargetInfo


class FakeOperations:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeResult:
    def summary(self):
        return "Cloned 'billing-api' to 'billing-api-canary'."


class FakeCloner:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def clone(self, source_app, target_app, organization=None, space=None):
        self.calls.append((source_app, target_app, organization, space))
        if self.error is not None:
            raise self.error
        return FakeResult()


class FakeTargetService:
    def __init__(self, error=None):
        self.error = error

    def target(self, organization, space):
        if self.error is not None:
            raise self.error
        return TargetInfo(organization, space)


def install_fakes(monkeypatch, tmp_path, cloner=None, target_service=None):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CF_APIHOST", "https://api.sys.example.com")
    monkeypatch.setenv("CF_USERNAME", "deployer")
    monkeypatch.setenv("CF_PASSWORD", "hunter22")
    monkeypatch.setenv("CF_ORG", "payments")
    monkeypatch.setenv("CF_SPACE", "prod")

    captured = {"operations": FakeOperations()}

    def fake_build_runtime(settings):
        captured["settings"] = settings
        return captured["operations"], cloner or FakeCloner(), target_service or FakeTargetService()

    monkeypatch.setattr(cli_module, "build_runtime", fake_build_runtime)
    return captured


def test_clone_command_prints_summary_and_closes_sessions(tmp_path, monkeypatch):
    cloner = FakeCloner()
    captured = install_fakes(monkeypatch, tmp_path, cloner=cloner)

    result = CliRunner().invoke(
        cli_module.main,
        ["clone", "billing-api", "billing-api-canary", "--space", "staging"],
    )

    assert result.exit_code == 0
    assert "Cloned 'billing-api' to 'billing-api-canary'." in result.output
    assert cloner.calls == [("billing-api", "billing-api-canary", None, "staging")]
    assert captured["operations"].closed is True
    assert captured["settings"].organization == "payments"


def test_clone_failure_exits_with_error(tmp_path, monkeypatch):
    error = CloneError("billing-api", "billing-api-canary", CloneState.STARTED, RuntimeError("crashed"))
    captured = install_fakes(monkeypatch, tmp_path, cloner=FakeCloner(error=error))

    result = CliRunner().invoke(cli_module.main, ["clone", "billing-api", "billing-api-canary"])

    assert result.exit_code != 0
    assert "at step 'started'" in result.output
    assert captured["operations"].closed is True


def test_config_file_overrides_defaults(tmp_path, monkeypatch):
    captured = install_fakes(monkeypatch, tmp_path)
    config_file = tmp_path / "custom.yml"
    config_file.write_text("clone_timeout_seconds: 900\nretry_attempts: 5\n", encoding="utf-8")

    result = CliRunner().invoke(
        cli_module.main,
        ["--config", str(config_file), "clone", "billing-api", "billing-api-canary"],
    )

    assert result.exit_code == 0
    assert captured["settings"].clone_timeout_seconds == 900.0
    assert captured["settings"].retry_attempts == 5


def test_missing_credentials_are_reported(tmp_path, monkeypatch):
    install_fakes(monkeypatch, tmp_path)
    monkeypatch.delenv("CF_PASSWORD")

    result = CliRunner().invoke(cli_module.main, ["clone", "billing-api", "billing-api-canary"])

    assert result.exit_code != 0
    assert "password (CF_PASSWORD)" in result.output


def test_target_command_reports_result(tmp_path, monkeypatch):
    install_fakes(monkeypatch, tmp_path)

    result = CliRunner().invoke(cli_module.main, ["target", "billing", "dev"])

    assert result.exit_code == 0
    assert "Organization: billing, Space: dev" in result.output


def test_target_command_failure(tmp_path, monkeypatch):
    install_fakes(monkeypatch, tmp_path, target_service=FakeTargetService(error=TargetError("no access")))

    result = CliRunner().invoke(cli_module.main, ["target", "billing", "dev"])

    assert result.exit_code != 0
    assert "no access" in result.output
