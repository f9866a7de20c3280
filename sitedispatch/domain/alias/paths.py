"""
Path aliases (%root, %files, ...) and host paths (@alias:%files/img)
"""
import posixpath
import re
from dataclasses import dataclass
from typing import Dict, Optional, Set, Union, TYPE_CHECKING

from ...core.constants import (
    DEFAULT_DRUSH_SCRIPT,
    DEFAULT_FILES_PATH,
    NONE_ALIAS,
)
from ...core.exceptions import PathAliasError
from ...core.utils import current_user
from .models import SiteRecord

if TYPE_CHECKING:
    from .resolver import AliasResolver

_TOKEN_PREFIX = re.compile(r"^(%[A-Za-z0-9_-]+)(.*)$", re.S)
_REMOTE_SPEC = re.compile(r"^(?:(?P<user>[^@/:]+)@)?(?P<host>[^/:@]+):(?P<path>.*)$")


@dataclass(frozen=True)
class FieldRef:
    """Deferred reference to another field of the same SiteRecord"""
    field: str


PathValue = Union[str, FieldRef, None]


class PathAliases:
    """
    Evaluates %token path aliases for one SiteRecord.
    
    Values set in the record's path-aliases win over the built-ins.
    A value may start with another %token; relative results are taken
    from the site root.
    """
    
    def __init__(self, record: SiteRecord, local_drush_script: Optional[str] = None):
        self.record = record
        self.local_drush_script = local_drush_script or DEFAULT_DRUSH_SCRIPT
    
    def _builtin(self, token: str) -> PathValue:
        if token == "%root":
            return FieldRef("root")
        if token == "%files":
            return self._from_root(DEFAULT_FILES_PATH)
        if token == "%drush-script":
            if self.record.is_remote:
                return DEFAULT_DRUSH_SCRIPT
            return self.local_drush_script
        if token == "%drush":
            script = self.get("%drush-script")
            if script and "/" in script:
                return posixpath.dirname(script)
            return None
        if token == "%dump":
            dump_dir = self.get("%dump-dir")
            if dump_dir:
                label = self.record.uri or self.record.name.lstrip("@") or "site"
                return posixpath.join(dump_dir, f"{label}.sql")
            return None
        return None
    
    def raw(self, token: str) -> PathValue:
        """Value as configured (or built in), before expansion"""
        configured = self.record.path_aliases
        if token in configured:
            return configured[token]
        return self._builtin(token)
    
    def get(self, token: str) -> Optional[str]:
        """Fully evaluated value of a %token, or None if undefined"""
        return self._evaluate_token(token, set())
    
    def evaluate(self, path: str) -> str:
        """
        Expand a leading %token in a path like "%files/img".
        
        Raises:
            PathAliasError: Undefined or self-referencing path alias
        """
        return self._expand(path, set())
    
    def resolved(self) -> Dict[str, str]:
        """All defined path aliases, evaluated"""
        tokens = ["%root", "%files", "%drush", "%drush-script", "%dump-dir", "%dump"]
        tokens += [t for t in self.record.path_aliases if t not in tokens]
        result = {}
        for token in tokens:
            value = self.get(token)
            if value:
                result[token] = value
        return result
    
    def _evaluate_token(self, token: str, seen: Set[str]) -> Optional[str]:
        if token in seen:
            raise PathAliasError(f"Path alias {token} refers to itself")
        if token not in self.record.path_aliases:
            value = self._builtin(token)
            if isinstance(value, FieldRef):
                return self.record.get(value.field) or None
            return value
        value = str(self.raw(token))
        if token == "%drush-script" and "/" not in value:
            # bare command name, looked up on the PATH
            return value
        return self._expand(value, seen | {token})
    
    def _expand(self, path: str, seen: Set[str]) -> str:
        match = _TOKEN_PREFIX.match(path)
        if match:
            token, rest = match.groups()
            base = self._evaluate_token(token, seen)
            if base is None:
                raise PathAliasError(f"Undefined path alias {token} in {self.record.name}")
            if not rest:
                return base
            if base.endswith("/") and rest.startswith("/"):
                return base + rest[1:]
            if rest.startswith("/") or base.endswith("/"):
                return base + rest
            return base + "/" + rest
        return self._from_root(path)
    
    def _from_root(self, path: str) -> str:
        if not path or path.startswith(("/", "~")) or re.match(r"^[A-Za-z]:[\\/]", path):
            return path
        root = self.record.root
        if not root:
            return path
        return posixpath.join(root, path)


@dataclass(frozen=True)
class HostPath:
    """A path on a particular site: local, or remote on the site's host"""
    record: SiteRecord
    path: str
    original: str

    @classmethod
    def create(cls, resolver: "AliasResolver", spec: str, local_drush_script: Optional[str] = None) -> "HostPath":
        """
        Parse a path spec.
        
        Supports:
        - "@alias" (the site root)
        - "@alias:%files/img" (path alias relative to the site)
        - "user@host:/path" (ad-hoc remote path)
        - "/local/path", "./relative"
        """
        if spec.startswith("@"):
            token, _, path_part = spec.partition(":")
            record = resolver.resolve(token)
            evaluator = PathAliases(record, local_drush_script)
            path = evaluator.evaluate(path_part) if path_part else record.root
            return cls(record=record, path=path, original=spec)
        
        match = _REMOTE_SPEC.match(spec)
        if match and not re.match(r"^[A-Za-z]:[\\/]", spec):
            data = {"remote-host": match.group("host")}
            if match.group("user"):
                data["remote-user"] = match.group("user")
            record = SiteRecord.create(spec, data)
            return cls(record=record, path=match.group("path"), original=spec)
        
        return cls(record=SiteRecord.create(NONE_ALIAS), path=spec, original=spec)

    @property
    def is_remote(self) -> bool:
        return self.record.is_remote

    def fully_qualified_path(self, preserve_trailing_slash: bool = False) -> str:
        """"user@host:path" for remote paths, the plain path otherwise"""
        path = self.path
        if preserve_trailing_slash and self.original.endswith("/") and not path.endswith("/"):
            path += "/"
        elif not preserve_trailing_slash and len(path) > 1:
            path = path.rstrip("/")
        if not self.is_remote:
            return path
        user = self.record.remote_user or current_user()
        return f"{user}@{self.record.remote_host}:{path}"
