"""Tests de la CLI (typer CliRunner) con el host simulado en lugar del sistema real."""

import os

import pytest
import yaml
from rich.console import Console
from typer.testing import CliRunner

import convergo.cli.app as cli_app
from convergo import __version__
from convergo.cli.app import app
from convergo.core.errors import ConfigError

runner = CliRunner()

CYCLE = """\
resources:
  - kind: Exec
    name: a
    command: echo a
    require: Exec[b]
  - kind: Exec
    name: b
    command: echo b
    require: Exec[a]
"""


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    for var in list(os.environ):
        if var.startswith("CONVERGO_"):
            monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_app, "console", Console(width=200))
    return tmp_path


@pytest.fixture
def backends(monkeypatch):
    """Sustituye los backends del host; devuelve los kwargs con que se construyeron."""
    captured = {}

    def install(host):
        def fake(**kwargs):
            captured.update(kwargs)
            return host, host
        monkeypatch.setattr(cli_app, "build_system_backends", fake)
        return captured

    return install


class TestInfoCommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_catalog_defaults(self):
        result = runner.invoke(app, ["catalog"])
        assert result.exit_code == 0
        doc = yaml.safe_load(result.output)
        kinds = [(r["kind"], r["name"]) for r in doc["resources"]]
        assert kinds[0] == ("Group", "nginx")
        assert kinds[-1] == ("Service", "nginx")
        service = doc["resources"][-1]
        assert service["restart"] == "/etc/init.d/nginx reload"
        assert service["hasrestart"] is False
        assert service["require"] == ["Exec[install]"]

    def test_catalog_parameterized(self):
        result = runner.invoke(app, ["catalog", "--user", "openresty", "--group", "openresty"])
        assert result.exit_code == 0
        doc = yaml.safe_load(result.output)
        user = next(r for r in doc["resources"] if r["kind"] == "User")
        assert user["name"] == "openresty"
        assert user["groups"] == ["openresty"]
        assert user["require"] == ["Group[openresty]"]

    def test_catalog_from_config_file(self, cli_env):
        (cli_env / "convergo.yaml").write_text("openresty:\n  version: 1.9.7.4\n")
        result = runner.invoke(app, ["catalog"])
        assert result.exit_code == 0
        doc = yaml.safe_load(result.output)
        download = next(r for r in doc["resources"] if r["name"] == "download")
        assert download["creates"] == "/tmp/ngx_openresty-1.9.7.4.tar.gz"

    def test_catalog_env_override(self, monkeypatch):
        monkeypatch.setenv("CONVERGO_USER", "www")
        result = runner.invoke(app, ["catalog"])
        assert "--user=www" in result.output

    def test_graph(self):
        result = runner.invoke(app, ["graph"])
        assert result.exit_code == 0
        assert "Plan de convergencia" in result.output
        assert "Exec[download]" in result.output
        assert result.output.index("Group[nginx]") < result.output.index("Service[nginx]")


class TestApply:
    def test_fresh_host(self, host, backends):
        backends(host)
        result = runner.invoke(app, ["apply"])
        assert result.exit_code == 0, result.output
        assert len(host.applied) == 13
        assert "Estado deseado alcanzado" in result.output

    def test_installed_host(self, installed_host, backends):
        backends(installed_host)
        result = runner.invoke(app, ["apply"])
        assert result.exit_code == 0
        assert installed_host.calls == []
        assert "13 sin cambios" in result.output

    def test_failure_exit_code(self, host, backends):
        host.fail_on.add("Exec[download]")
        backends(host)
        result = runner.invoke(app, ["apply"])
        assert result.exit_code == 1
        assert "bloqueado por Exec[download]" in result.output
        assert "No se alcanzó el estado deseado" in result.output

    def test_options_reach_the_backends(self, host, backends):
        captured = backends(host)
        result = runner.invoke(app, ["apply", "--timeout", "900", "--package-backend", "yum"])
        assert result.exit_code == 0
        assert captured["exec_timeout"] == 900
        assert captured["package_backend"] == "yum"

    def test_manifest(self, cli_env, host, backends):
        (cli_env / "site.yaml").write_text("resources:\n  - kind: Package\n    name: wget\n")
        backends(host)
        result = runner.invoke(app, ["apply", "-m", "site.yaml"])
        assert result.exit_code == 0
        assert host.applied == ["Package[wget]"]


class TestPlan:
    def test_plan_is_noop(self, host, backends):
        backends(host)
        result = runner.invoke(app, ["plan"])
        assert result.exit_code == 0
        assert host.calls == []
        assert "pendiente" in result.output


class TestInvalidInput:
    def test_cycle(self, cli_env, host, backends):
        (cli_env / "cycle.yaml").write_text(CYCLE)
        backends(host)
        result = runner.invoke(app, ["apply", "--manifest", "cycle.yaml"])
        assert result.exit_code == 2
        assert "Ciclo de dependencias" in result.output
        assert host.calls == []

    def test_unresolved_reference(self, cli_env, host, backends):
        (cli_env / "bad.yaml").write_text(
            "resources:\n  - kind: User\n    name: web\n    require: Group[web]\n"
        )
        backends(host)
        result = runner.invoke(app, ["apply", "-m", "bad.yaml"])
        assert result.exit_code == 2
        assert "Group[web]" in result.output
        assert host.calls == []

    def test_missing_config_file(self):
        result = runner.invoke(app, ["catalog", "-c", "nope.yaml"])
        assert result.exit_code == 2
        assert "Error de configuración" in result.output

    def test_invalid_user(self):
        result = runner.invoke(app, ["catalog", "--user", "Bad User"])
        assert result.exit_code == 2
        assert "Declaración inválida" in result.output

    def test_backend_detection_error(self, monkeypatch):
        def fail(**kwargs):
            raise ConfigError("No se encontró gestor de paquetes (dnf, yum, apt-get)")
        monkeypatch.setattr(cli_app, "build_system_backends", fail)
        result = runner.invoke(app, ["apply"])
        assert result.exit_code == 2
        assert "No se encontró gestor de paquetes" in result.output
