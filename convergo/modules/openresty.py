"""
Módulo OpenResty: instala OpenResty/nginx desde el tarball oficial.

Recursos declarados (en este orden):
  Group[<group>] → User[<user>] → paquetes → Exec[download] → Exec[untar]
  → Exec[configure] → Exec[install] → Service[<service>]

La cadena download → untar → configure → install usa notify (orden + refresh);
cada paso tiene su guard creates, así que una segunda corrida no ejecuta nada.
"""

import re
from typing import List

from pydantic import BaseModel, Field, field_validator

from convergo.core.resources.models import Exec, Group, Package, Resource, Service, User

_ACCOUNT_RE = re.compile(r"^[a-z_][a-z0-9_-]*\$?$")

FETCH_PACKAGE = "wget"
BUILD_PACKAGES = ["perl", "gcc", "readline-devel", "pcre-devel", "openssl-devel"]


class OpenRestyConfig(BaseModel):
    """Parámetros del módulo. user/group son los únicos que la mayoría de hosts cambia."""

    user: str = Field("nginx", description="Cuenta que ejecuta nginx")
    group: str = Field("nginx", description="Grupo de la cuenta")
    version: str = Field("1.7.0.1", description="Versión del tarball ngx_openresty")
    download_base: str = Field("http://openresty.org/download", description="URL base de descargas")
    workdir: str = Field("/tmp", description="Dónde se descarga y compila")
    prefix: str = Field("/usr/local/openresty", description="Prefijo de instalación")
    service_name: str = Field("nginx", description="Nombre del servicio init.d")
    search_path: str = Field("/sbin:/bin:/usr/bin", description="PATH de los Exec")
    fetch_package: str = Field(FETCH_PACKAGE, description="Paquete que provee el comando de descarga")
    build_packages: List[str] = Field(default_factory=lambda: list(BUILD_PACKAGES))
    configure_options: List[str] = Field(default_factory=list, description="Flags extra para ./configure")
    exec_timeout: int = Field(300, ge=1, description="Timeout (s) de cada Exec")

    @field_validator("user", "group")
    @classmethod
    def _check_account(cls, v: str) -> str:
        if not _ACCOUNT_RE.match(v):
            raise ValueError(f"nombre de cuenta inválido: {v!r}")
        return v

    @field_validator("version")
    @classmethod
    def _check_version(cls, v: str) -> str:
        if not re.match(r"^[0-9][0-9A-Za-z.\-]*$", v):
            raise ValueError(f"versión inválida: {v!r}")
        return v

    @field_validator("workdir", "prefix")
    @classmethod
    def _check_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"debe ser una ruta absoluta: {v!r}")
        return v.rstrip("/") or "/"

    @field_validator("download_base")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("build_packages", "configure_options", mode="before")
    @classmethod
    def _split_list(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def tarball(self) -> str:
        return f"ngx_openresty-{self.version}.tar.gz"

    @property
    def url(self) -> str:
        return f"{self.download_base}/{self.tarball}"

    @property
    def source_dir(self) -> str:
        return f"{self.workdir}/ngx_openresty-{self.version}"

    @property
    def nginx_binary(self) -> str:
        return f"{self.prefix}/nginx/sbin/nginx"


def declare(config: OpenRestyConfig) -> List[Resource]:
    """Recursos del módulo para una configuración dada."""
    group = Group(config.group, ensure="present")
    user = User(
        config.user,
        ensure="present",
        groups=[config.group],
        comment="nginx web server",
        shell="/sbin/nologin",
        system=True,
        requires=[group],
    )

    fetch = Package(config.fetch_package)
    build = [Package(name) for name in config.build_packages if name != config.fetch_package]

    install = Exec(
        "install",
        cwd=config.source_dir,
        path=config.search_path,
        command="make && make install",
        creates=config.nginx_binary,
        timeout=config.exec_timeout,
        requires=[user, "Exec[configure]"],
    )
    configure_cmd = " ".join(
        [f"{config.source_dir}/configure", f"--user={config.user}", f"--group={config.group}"]
        + config.configure_options
    )
    configure = Exec(
        "configure",
        cwd=config.source_dir,
        path=config.search_path,
        command=configure_cmd,
        creates=f"{config.source_dir}/build",
        timeout=config.exec_timeout,
        requires=build,
        notifies=[install],
    )
    untar = Exec(
        "untar",
        cwd=config.workdir,
        path=config.search_path,
        command=f"tar -zxvf {config.tarball}",
        creates=f"{config.source_dir}/configure",
        timeout=config.exec_timeout,
        notifies=[configure],
    )
    download = Exec(
        "download",
        cwd=config.workdir,
        path=config.search_path,
        command=f"wget {config.url}",
        creates=f"{config.workdir}/{config.tarball}",
        timeout=config.exec_timeout,
        requires=[fetch],
        notifies=[untar],
    )
    service = Service(
        config.service_name,
        ensure="running",
        enable=True,
        hasrestart=False,
        restart=f"/etc/init.d/{config.service_name} reload",
        requires=[install],
    )
    return [group, user, fetch] + build + [download, untar, configure, install, service]
