"""
Modelos de recursos declarativos (Package, Group, User, Exec, Service).

Los recursos son descriptores inmutables del estado deseado: se construyen una vez
desde configuración estática y nunca se modifican. Lo único que muta durante una
convergencia es el sistema real, que se consulta a través de un StateProbe.

Cada tipo expone:
- desired_state(): atributos que el tipo controla, con su valor deseado
- current_state(probe): los mismos atributos leídos del sistema real
- in_sync(current): si el estado actual ya satisface el deseado
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from convergo.core.errors import ValidationError
from convergo.core.runtime.state import StateDiff

if TYPE_CHECKING:
    from convergo.core.infra.contracts import StateProbe


class ResourceKind(str, Enum):
    PACKAGE = "Package"
    GROUP = "Group"
    USER = "User"
    EXEC = "Exec"
    SERVICE = "Service"


_KEY_RE = re.compile(r"^\s*([A-Za-z]+)\[(.+)\]\s*$")


@dataclass(frozen=True)
class ResourceKey:
    """Identidad de un recurso: (kind, name). Se muestra como Kind[name]."""
    kind: ResourceKind
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value}[{self.name}]"

    @classmethod
    def parse(cls, text: str) -> "ResourceKey":
        """Convierte 'Exec[install]' en ResourceKey(EXEC, 'install')."""
        match = _KEY_RE.match(text or "")
        if not match:
            raise ValidationError(f"Referencia inválida: {text!r} (formato esperado: Kind[name])")
        kind_text, name = match.group(1), match.group(2).strip()
        for kind in ResourceKind:
            if kind.value.lower() == kind_text.lower():
                return cls(kind, name)
        raise ValidationError(f"Tipo de recurso desconocido en {text!r}")


def _to_key(ref: Any) -> ResourceKey:
    if isinstance(ref, ResourceKey):
        return ref
    if isinstance(ref, Resource):
        return ref.key
    if isinstance(ref, str):
        return ResourceKey.parse(ref)
    raise ValueError(f"referencia no soportada: {ref!r}")


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "recurso"
    return f"{loc}: {err.get('msg', 'inválido')}"


class Resource(BaseModel):
    """
    Base de todos los recursos.

    requires: solo ordena (el destino se aplica antes).
    notifies: ordena y además dispara refresh en el destino si este recurso cambia.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ClassVar[ResourceKind]

    name: str = Field(..., min_length=1)
    requires: Tuple[ResourceKey, ...] = ()
    notifies: Tuple[ResourceKey, ...] = ()

    def __init__(self, name: Optional[str] = None, **data: Any):
        if name is not None:
            data["name"] = name
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            label = f"{self.__class__.__name__}[{data.get('name', '?')}]"
            raise ValidationError(f"{label}: {_first_error(e)}") from e

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("el nombre no puede estar vacío")
        return v.strip()

    @field_validator("requires", "notifies", mode="before")
    @classmethod
    def _coerce_refs(cls, v: Any) -> Tuple[ResourceKey, ...]:
        if v is None:
            return ()
        if isinstance(v, (str, ResourceKey, Resource)):
            v = [v]
        keys: List[ResourceKey] = []
        for ref in v:
            key = _to_key(ref)
            if key not in keys:
                keys.append(key)
        return tuple(keys)

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.kind, self.name)

    def __str__(self) -> str:
        return str(self.key)

    def desired_state(self) -> Dict[str, Any]:
        raise NotImplementedError

    def current_state(self, probe: "StateProbe") -> Dict[str, Any]:
        raise NotImplementedError

    def in_sync(self, current: Dict[str, Any]) -> bool:
        """Compara solo los atributos que el tipo controla."""
        desired = self.desired_state()
        return all(current.get(k) == v for k, v in desired.items())

    def is_refreshable(self) -> bool:
        """True si una notificación debe provocar un refresh aunque esté en sync."""
        return False

    def refresh_needed(self, current: Optional[Dict[str, Any]]) -> bool:
        """Con el recurso notificado y en sync, si el refresh realmente debe ejecutarse."""
        return True

    def diff(self, current: Optional[Dict[str, Any]]) -> List[StateDiff]:
        """Diferencias atributo por atributo; current=None significa estado desconocido."""
        diffs: List[StateDiff] = []
        for field, desired in self.desired_state().items():
            actual = None if current is None else current.get(field)
            if current is None or actual != desired:
                diffs.append(StateDiff(str(self.key), field, desired, actual,
                                       "warning" if current is None else "error"))
        return diffs

    def describe(self) -> Dict[str, Any]:
        """Atributos declarados, en el formato del catálogo (require/notify como Kind[name])."""
        data = self.model_dump(exclude={"name", "requires", "notifies"}, exclude_none=True, mode="json")
        if self.requires:
            data["require"] = [str(k) for k in self.requires]
        if self.notifies:
            data["notify"] = [str(k) for k in self.notifies]
        return data


_VERSION_RE = re.compile(r"^[0-9][\w.\-:+~]*$")


class Package(Resource):
    """Paquete del sistema. ensure: present | absent | <versión exacta>."""

    kind: ClassVar[ResourceKind] = ResourceKind.PACKAGE

    ensure: str = "present"

    @field_validator("ensure")
    @classmethod
    def _check_ensure(cls, v: str) -> str:
        v = v.strip()
        if v == "installed":
            return "present"
        if v in ("present", "absent") or _VERSION_RE.match(v):
            return v
        raise ValueError(f"ensure inválido para Package: {v!r}")

    def desired_state(self) -> Dict[str, Any]:
        if self.ensure in ("present", "absent"):
            return {"ensure": self.ensure}
        return {"ensure": "present", "version": self.ensure}

    def current_state(self, probe: "StateProbe") -> Dict[str, Any]:
        version = probe.package_version(self.name)
        if version is None:
            return {"ensure": "absent"}
        return {"ensure": "present", "version": version}

    def in_sync(self, current: Dict[str, Any]) -> bool:
        """
        Una versión fijada sin release ('1.20.1') acepta cualquier release instalado
        ('1.20.1-10.el9'); con release ('1.20.1-10.el9') debe coincidir completa.
        """
        desired = self.desired_state()
        if current.get("ensure") != desired["ensure"]:
            return False
        pinned = desired.get("version")
        if pinned is None:
            return True
        installed = current.get("version") or ""
        return installed == pinned or installed.startswith(f"{pinned}-")


class Group(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.GROUP

    ensure: str = "present"
    gid: Optional[int] = None
    system: bool = False

    @field_validator("ensure")
    @classmethod
    def _check_ensure(cls, v: str) -> str:
        if v not in ("present", "absent"):
            raise ValueError(f"ensure inválido para Group: {v!r}")
        return v

    def desired_state(self) -> Dict[str, Any]:
        state: Dict[str, Any] = {"ensure": self.ensure}
        if self.ensure == "present" and self.gid is not None:
            state["gid"] = self.gid
        return state

    def current_state(self, probe: "StateProbe") -> Dict[str, Any]:
        info = probe.group(self.name)
        if info is None:
            return {"ensure": "absent"}
        return {"ensure": "present", "gid": info.get("gid")}


class User(Resource):
    """
    Usuario del sistema.
    groups se interpreta con membresía mínima: el usuario debe pertenecer al menos
    a esos grupos; grupos adicionales no se consideran drift.
    system solo aplica al crear la cuenta.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.USER

    ensure: str = "present"
    groups: Tuple[str, ...] = ()
    comment: Optional[str] = None
    shell: Optional[str] = None
    home: Optional[str] = None
    system: bool = False

    @field_validator("ensure")
    @classmethod
    def _check_ensure(cls, v: str) -> str:
        if v not in ("present", "absent"):
            raise ValueError(f"ensure inválido para User: {v!r}")
        return v

    @field_validator("groups", mode="before")
    @classmethod
    def _coerce_groups(cls, v: Any) -> Tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(g.strip() for g in v if g and g.strip())

    def desired_state(self) -> Dict[str, Any]:
        state: Dict[str, Any] = {"ensure": self.ensure}
        if self.ensure != "present":
            return state
        if self.groups:
            state["groups"] = tuple(sorted(self.groups))
        for field in ("comment", "shell", "home"):
            value = getattr(self, field)
            if value is not None:
                state[field] = value
        return state

    def current_state(self, probe: "StateProbe") -> Dict[str, Any]:
        info = probe.user(self.name)
        if info is None:
            return {"ensure": "absent"}
        return {
            "ensure": "present",
            "groups": tuple(sorted(info.get("groups") or ())),
            "comment": info.get("comment"),
            "shell": info.get("shell"),
            "home": info.get("home"),
        }

    def in_sync(self, current: Dict[str, Any]) -> bool:
        desired = self.desired_state()
        for field, value in desired.items():
            if field == "groups":
                if not set(value) <= set(current.get("groups") or ()):
                    return False
            elif current.get(field) != value:
                return False
        return True


class Exec(Resource):
    """
    Comando de shell con guard de idempotencia.

    creates: ruta cuya existencia significa "ya hecho". Sin creates (y sin refreshonly)
    el comando se ejecuta en cada corrida.
    refreshonly: el comando solo se ejecuta cuando otro recurso lo notifica.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.EXEC

    command: str = Field(..., min_length=1)
    cwd: Optional[str] = None
    path: Optional[str] = None
    creates: Optional[str] = None
    timeout: Optional[int] = Field(300, ge=1)
    refreshonly: bool = False

    @field_validator("command")
    @classmethod
    def _check_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("command no puede estar vacío")
        return v

    @field_validator("cwd", "creates")
    @classmethod
    def _check_absolute(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith("/"):
            raise ValueError(f"debe ser una ruta absoluta: {v!r}")
        return v

    def desired_state(self) -> Dict[str, Any]:
        if self.creates and not self.refreshonly:
            return {"creates": True}
        return {}

    def current_state(self, probe: "StateProbe") -> Dict[str, Any]:
        if not self.creates:
            return {}
        return {"creates": probe.path_exists(self.creates)}

    def in_sync(self, current: Dict[str, Any]) -> bool:
        if self.refreshonly:
            return True
        if not self.creates:
            return False
        return current.get("creates") is True

    def is_refreshable(self) -> bool:
        return self.refreshonly

    def refresh_needed(self, current: Optional[Dict[str, Any]]) -> bool:
        # el guard creates también se respeta en refresh
        return not (current or {}).get("creates", False)

    def diff(self, current: Optional[Dict[str, Any]]) -> List[StateDiff]:
        if not self.creates and not self.refreshonly:
            return [StateDiff(str(self.key), "command", "run", "sin guard", "info")]
        return super().diff(current)


class Service(Resource):
    """
    Servicio gestionado.

    Si recibe una notificación y ya estaba corriendo, se refresca:
    - restart definido: se ejecuta ese comando (p. ej. '/etc/init.d/nginx reload')
    - hasrestart=True: restart nativo del gestor de servicios
    - en otro caso: stop + start
    """

    kind: ClassVar[ResourceKind] = ResourceKind.SERVICE

    ensure: str = "running"
    enable: Optional[bool] = None
    hasrestart: bool = True
    restart: Optional[str] = None

    @field_validator("ensure")
    @classmethod
    def _check_ensure(cls, v: str) -> str:
        if v not in ("running", "stopped"):
            raise ValueError(f"ensure inválido para Service: {v!r}")
        return v

    @field_validator("restart")
    @classmethod
    def _check_restart(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("restart no puede estar vacío")
        return v

    def desired_state(self) -> Dict[str, Any]:
        state: Dict[str, Any] = {"ensure": self.ensure}
        if self.enable is not None:
            state["enable"] = self.enable
        return state

    def current_state(self, probe: "StateProbe") -> Dict[str, Any]:
        status = probe.service_status(self.name)
        return {
            "ensure": "running" if status.get("running") else "stopped",
            "enable": bool(status.get("enabled")),
        }

    def is_refreshable(self) -> bool:
        return self.ensure == "running"


RESOURCE_TYPES: Dict[ResourceKind, type] = {
    ResourceKind.PACKAGE: Package,
    ResourceKind.GROUP: Group,
    ResourceKind.USER: User,
    ResourceKind.EXEC: Exec,
    ResourceKind.SERVICE: Service,
}