"""
Alias domain models
"""
import copy
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ...core.constants import (
    COMMAND_SPECIFIC,
    SOURCE_COMMAND_SPECIFIC,
    TARGET_COMMAND_SPECIFIC,
    PATH_ALIASES,
    SITE_LIST,
    PARENT,
    WILDCARD_SUFFIX,
)
from ...core.utils import split_list, local_os

# Keys that describe how a record is built or merged, not options
STRUCTURAL_KEYS = (
    COMMAND_SPECIFIC,
    SOURCE_COMMAND_SPECIFIC,
    TARGET_COMMAND_SPECIFIC,
    SITE_LIST,
    PARENT,
)


def _freeze(value: Any) -> Any:
    """Deep copy a loaded value into read-only mappings and tuples"""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of _freeze: plain dicts and lists"""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return copy.deepcopy(value)


@dataclass(frozen=True)
class AliasDefinition:
    """
    Raw alias entry as loaded from an alias file.
    
    Attributes:
        name: Alias name within its file ("dev", or "remote-example.*" for wildcards)
        group: Group name when loaded from GROUP.aliases.toml
        data: Option mapping as written (read-only)
        source: File the definition came from
    """
    name: str
    group: Optional[str]
    data: Mapping[str, Any] = field(hash=False)
    source: Path

    @classmethod
    def create(cls, name: str, group: Optional[str], data: Dict[str, Any], source: Path) -> "AliasDefinition":
        return cls(name=name, group=group, data=_freeze(data), source=source)

    @property
    def parents(self) -> List[str]:
        return split_list(_thaw(self.data.get(PARENT)))

    @property
    def site_list(self) -> Optional[List[str]]:
        if SITE_LIST not in self.data:
            return None
        return split_list(_thaw(self.data[SITE_LIST]))

    @property
    def is_wildcard(self) -> bool:
        return self.name.endswith(WILDCARD_SUFFIX)

    def to_dict(self) -> Dict[str, Any]:
        return _thaw(self.data)


@dataclass(frozen=True)
class SiteRecord:
    """
    Fully resolved, flattened configuration for one site target.
    
    The record never changes after construction; export() returns a
    fresh mutable copy.
    """
    name: str
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    @classmethod
    def create(cls, name: str, data: Optional[Dict[str, Any]] = None) -> "SiteRecord":
        return cls(name=name, data=_freeze(data or {}))

    # --------------------
    # Generic access
    # --------------------
    def get(self, key: str, default: Any = None) -> Any:
        if key not in self.data:
            return default
        return _thaw(self.data[key])

    def has(self, key: str) -> bool:
        return key in self.data

    def export(self) -> Dict[str, Any]:
        """Mutable deep copy of the record's data"""
        return _thaw(self.data)

    def options(self) -> Dict[str, Any]:
        """The alias's own options: everything except the merge sections"""
        return {k: _thaw(v) for k, v in self.data.items() if k not in STRUCTURAL_KEYS}

    # --------------------
    # Well-known fields
    # --------------------
    @property
    def root(self) -> str:
        return self.data.get("root") or ""

    @property
    def uri(self) -> str:
        return self.data.get("uri") or ""

    @property
    def remote_host(self) -> Optional[str]:
        """remote-host when it is a non-blank string, else None"""
        host = self.data.get("remote-host")
        if isinstance(host, str) and host.strip():
            return host.strip()
        return None

    @property
    def is_remote(self) -> bool:
        """True iff remote-host is a non-blank string"""
        return self.remote_host is not None

    @property
    def remote_user(self) -> Optional[str]:
        return self.data.get("remote-user") or None

    @property
    def remote_port(self) -> Optional[int]:
        return self.data.get("remote-port") or None

    @property
    def ssh_options(self) -> Optional[str]:
        return self.data.get("ssh-options") or None

    @property
    def os(self) -> str:
        """Target OS; Linux for remote records unless set, else the local OS"""
        value = self.data.get("os")
        if value:
            return value
        return "Linux" if self.is_remote else local_os()

    @property
    def path_aliases(self) -> Dict[str, Any]:
        return self.get(PATH_ALIASES) or {}

    @property
    def site_list(self) -> Optional[List[str]]:
        if SITE_LIST not in self.data:
            return None
        return split_list(self.get(SITE_LIST))

    @property
    def is_list(self) -> bool:
        return self.site_list is not None

    def command_specific(self, section: str = COMMAND_SPECIFIC) -> Dict[str, Dict[str, Any]]:
        return self.get(section) or {}

    def __str__(self) -> str:
        return self.name
