"""Tests del módulo openresty: catálogo, orden y convergencia de punta a punta."""

import pytest

from convergo.core.engine.convergence import converge
from convergo.core.errors import ValidationError
from convergo.core.graph.builder import build_plan
from convergo.core.resources.models import Exec, ResourceKey, Service, User
from convergo.core.runtime.state import Outcome
from convergo.config.loader import load_settings
from convergo.modules import MODULES
from convergo.modules.openresty import BUILD_PACKAGES, OpenRestyConfig, declare


def _by_key(resources):
    return {str(r.key): r for r in resources}


class TestConfig:
    def test_defaults(self):
        config = OpenRestyConfig()
        assert config.user == "nginx"
        assert config.group == "nginx"
        assert config.tarball == "ngx_openresty-1.7.0.1.tar.gz"
        assert config.url == "http://openresty.org/download/ngx_openresty-1.7.0.1.tar.gz"
        assert config.source_dir == "/tmp/ngx_openresty-1.7.0.1"
        assert config.nginx_binary == "/usr/local/openresty/nginx/sbin/nginx"

    @pytest.mark.parametrize("field,value", [
        ("user", "Bad User"),
        ("group", "1nginx"),
        ("version", "latest"),
        ("workdir", "tmp"),
        ("exec_timeout", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(Exception):
            OpenRestyConfig(**{field: value})

    def test_comma_separated_lists(self):
        config = OpenRestyConfig(build_packages="gcc, make", configure_options="--with-luajit")
        assert config.build_packages == ["gcc", "make"]
        assert config.configure_options == ["--with-luajit"]

    def test_registered_module(self):
        assert MODULES["openresty"] == (OpenRestyConfig, declare)


class TestCatalog:
    def test_default_resources(self, default_resources):
        res = _by_key(default_resources)
        assert list(res) == [
            "Group[nginx]",
            "User[nginx]",
            "Package[wget]",
            *[f"Package[{p}]" for p in BUILD_PACKAGES],
            "Exec[download]",
            "Exec[untar]",
            "Exec[configure]",
            "Exec[install]",
            "Service[nginx]",
        ]

        user = res["User[nginx]"]
        assert user.groups == ("nginx",)
        assert user.shell == "/sbin/nologin"
        assert user.system

        download = res["Exec[download]"]
        assert download.cwd == "/tmp"
        assert download.path == "/sbin:/bin:/usr/bin"
        assert download.command == "wget http://openresty.org/download/ngx_openresty-1.7.0.1.tar.gz"
        assert download.creates == "/tmp/ngx_openresty-1.7.0.1.tar.gz"
        assert download.requires == (ResourceKey.parse("Package[wget]"),)
        assert download.notifies == (ResourceKey.parse("Exec[untar]"),)

        untar = res["Exec[untar]"]
        assert untar.command == "tar -zxvf ngx_openresty-1.7.0.1.tar.gz"
        assert untar.creates == "/tmp/ngx_openresty-1.7.0.1/configure"
        assert untar.notifies == (ResourceKey.parse("Exec[configure]"),)

        configure = res["Exec[configure]"]
        assert configure.command == "/tmp/ngx_openresty-1.7.0.1/configure --user=nginx --group=nginx"
        assert configure.creates == "/tmp/ngx_openresty-1.7.0.1/build"
        assert {str(k) for k in configure.requires} == {f"Package[{p}]" for p in BUILD_PACKAGES}
        assert configure.notifies == (ResourceKey.parse("Exec[install]"),)

        install = res["Exec[install]"]
        assert install.creates == "/usr/local/openresty/nginx/sbin/nginx"

        service = res["Service[nginx]"]
        assert service.ensure == "running"
        assert service.enable is True
        assert service.hasrestart is False
        assert service.restart == "/etc/init.d/nginx reload"
        assert service.requires == (ResourceKey.parse("Exec[install]"),)

    def test_parameterized_accounts(self):
        res = _by_key(declare(OpenRestyConfig(user="openresty", group="openresty")))
        assert "Group[openresty]" in res
        user = res["User[openresty]"]
        assert isinstance(user, User)
        assert user.groups == ("openresty",)
        assert user.requires == (ResourceKey.parse("Group[openresty]"),)
        assert res["Exec[configure]"].command.endswith("--user=openresty --group=openresty")

    def test_configure_options_are_appended(self):
        res = _by_key(declare(OpenRestyConfig(configure_options=["--with-luajit"])))
        assert res["Exec[configure]"].command.endswith("--group=nginx --with-luajit")

    def test_version_and_timeout_flow_into_execs(self):
        resources = declare(OpenRestyConfig(version="1.9.7.4", exec_timeout=900))
        execs = [r for r in resources if isinstance(r, Exec)]
        assert all(e.timeout == 900 for e in execs)
        assert _by_key(resources)["Exec[untar]"].creates == "/tmp/ngx_openresty-1.9.7.4/configure"

    def test_fetch_package_is_not_duplicated(self):
        resources = declare(OpenRestyConfig(build_packages=["wget", "gcc"]))
        names = [str(r.key) for r in resources]
        assert names.count("Package[wget]") == 1

    def test_custom_service_name(self):
        res = _by_key(declare(OpenRestyConfig(service_name="openresty")))
        service = res["Service[openresty]"]
        assert isinstance(service, Service)
        assert service.restart == "/etc/init.d/openresty reload"


class TestPlanOrder:
    def test_plan_order(self, default_resources):
        order = [str(k) for k in build_plan(default_resources).order]
        assert order == [
            "Group[nginx]",
            "User[nginx]",
            "Package[wget]",
            *[f"Package[{p}]" for p in BUILD_PACKAGES],
            "Exec[download]",
            "Exec[untar]",
            "Exec[configure]",
            "Exec[install]",
            "Service[nginx]",
        ]


class TestConvergence:
    def test_fresh_system_applies_everything(self, host, default_resources):
        report = converge(default_resources, host, host)
        assert all(r.outcome == Outcome.APPLIED for r in report)
        assert report.exit_code() == 0
        assert host.commands[:2] == [
            "wget http://openresty.org/download/ngx_openresty-1.7.0.1.tar.gz",
            "tar -zxvf ngx_openresty-1.7.0.1.tar.gz",
        ]
        assert host.services["nginx"] == {"running": True, "enabled": True}

    def test_installed_system_is_unchanged(self, installed_host, default_resources):
        report = converge(default_resources, installed_host, installed_host)
        assert all(r.outcome == Outcome.UNCHANGED for r in report)
        assert installed_host.calls == []

    def test_second_run_after_fresh_install(self, host, default_resources):
        converge(default_resources, host, host)
        report = converge(default_resources, host, host)
        assert report.counts()[Outcome.UNCHANGED] == len(default_resources)

    def test_failed_build_package_blocks_the_build(self, host, default_resources):
        host.fail_on.add("Package[gcc]")
        report = converge(default_resources, host, host)

        assert report.outcome_of(ResourceKey.parse("Package[gcc]")) == Outcome.FAILED
        for key in ("Exec[configure]", "Exec[install]", "Service[nginx]"):
            result = report.get(ResourceKey.parse(key))
            assert result.outcome == Outcome.SKIPPED
            assert str(result.blocked_by) == "Package[gcc]"
        for key in ("Group[nginx]", "User[nginx]", "Exec[download]", "Exec[untar]"):
            assert report.outcome_of(ResourceKey.parse(key)) == Outcome.APPLIED

    def test_removed_binary_is_reinstalled(self, installed_host, default_resources):
        installed_host.paths.discard("/usr/local/openresty/nginx/sbin/nginx")
        report = converge(default_resources, installed_host, installed_host)
        assert installed_host.applied == ["Exec[install]"]
        # require sin notify: el servicio no se refresca
        assert report.outcome_of(ResourceKey.parse("Service[nginx]")) == Outcome.UNCHANGED

    def test_settings_from_yaml_and_env(self, tmp_path):
        path = tmp_path / "convergo.yaml"
        path.write_text("openresty:\n  user: openresty\n  group: openresty\n")
        settings = load_settings(OpenRestyConfig, path=path, section="openresty",
                                 environ={"CONVERGO_VERSION": "1.9.7.4"})
        res = _by_key(declare(settings))
        assert "User[openresty]" in res
        assert res["Exec[download]"].creates == "/tmp/ngx_openresty-1.9.7.4.tar.gz"

    def test_invalid_settings_raise_validation_error(self):
        with pytest.raises(ValidationError, match="user"):
            load_settings(OpenRestyConfig, overrides={"user": "Bad User"}, environ={})
