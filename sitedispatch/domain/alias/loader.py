"""
Alias file discovery and loading

File naming:
- NAME.alias.toml: one alias, top-level keys are its options
- GROUP.aliases.toml: one alias per top-level table, all in group GROUP
- aliases.toml: one alias per top-level table, no group
"""
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...core.constants import (
    ALIAS_FILE_SUFFIX,
    SINGLE_ALIAS_MARKER,
    GROUP_ALIAS_MARKER,
    UNGROUPED_ALIAS_FILE,
    SYSTEM_CONFIG_DIR,
    USER_CONFIG_DIR,
    INSTALL_ALIASES_SUBDIR,
    SITE_LIST,
    WILDCARD_SUFFIX,
    ENV_NAME_PLACEHOLDER,
)
from ...core.exceptions import ConfigError, AmbiguousAliasError
from ...core.logging import get_logger
from ...core.utils import split_path_list
from .models import AliasDefinition
from .token import AliasToken

logger = get_logger(__name__)

INSTALL_DIR = Path(__file__).resolve().parents[2]

TIER_ALIAS_PATH = "alias-path"
TIER_DEFAULT = "default"
TIER_SITE = "site"

CONFLICT_ERROR = "error"
CONFLICT_FIRST = "first"


# ============================================================
# Search Path
# ============================================================

@dataclass(frozen=True)
class SearchLocation:
    """One directory on the alias search path"""
    path: Path
    tier: str


def default_alias_dirs() -> List[Path]:
    """System config dir, install dir, install aliases dir, user dir"""
    return [
        Path(SYSTEM_CONFIG_DIR),
        INSTALL_DIR,
        INSTALL_DIR / INSTALL_ALIASES_SUBDIR,
        Path(USER_CONFIG_DIR).expanduser(),
    ]


def site_alias_dirs(site_root: Path) -> List[Path]:
    """Alias directories inside a Drupal site: drush/sites and every sites/* dir"""
    dirs = [site_root / "drush" / "sites"]
    sites_dir = site_root / "sites"
    if sites_dir.is_dir():
        dirs.extend(sorted(p for p in sites_dir.iterdir() if p.is_dir()))
    return dirs


def build_search_path(
    alias_path: Any = None,
    default_dirs: Optional[Sequence[Path]] = None,
    site_root: Optional[Path] = None,
) -> List[SearchLocation]:
    """
    Build the ordered alias search path.
    
    Args:
        alias_path: Explicit alias-path entries (string or list)
        default_dirs: Default locations (None means default_alias_dirs())
        site_root: Root of the bootstrapped Drupal site, if any
    
    Returns:
        Existing directories, earliest first, without duplicates
    """
    if default_dirs is None:
        default_dirs = default_alias_dirs()
    
    candidates: List[SearchLocation] = []
    for entry in split_path_list(alias_path):
        candidates.append(SearchLocation(Path(entry).expanduser(), TIER_ALIAS_PATH))
    for entry in default_dirs:
        candidates.append(SearchLocation(Path(entry).expanduser(), TIER_DEFAULT))
    if site_root:
        for entry in site_alias_dirs(Path(site_root)):
            candidates.append(SearchLocation(entry, TIER_SITE))
    
    seen = set()
    locations = []
    for location in candidates:
        key = os.path.normcase(os.path.abspath(location.path))
        if key in seen or not location.path.is_dir():
            continue
        seen.add(key)
        locations.append(location)
    return locations


# ============================================================
# Alias Files
# ============================================================

def classify_alias_file(path: Path) -> Optional[Tuple[str, Optional[str]]]:
    """
    Work out what kind of alias file a path is.
    
    Returns:
        ("single", name), ("group", group), ("ungrouped", None), or None
    """
    filename = path.name
    if not filename.endswith(ALIAS_FILE_SUFFIX):
        return None
    if filename == UNGROUPED_ALIAS_FILE:
        return "ungrouped", None
    
    stem = filename[: -len(ALIAS_FILE_SUFFIX)]
    if stem.endswith(GROUP_ALIAS_MARKER):
        name = stem[: -len(GROUP_ALIAS_MARKER)]
        return ("group", name) if name else None
    if stem.endswith(SINGLE_ALIAS_MARKER):
        name = stem[: -len(SINGLE_ALIAS_MARKER)]
        return ("single", name) if name else None
    return None


def _substitute_env_name(value: Any, env_name: str) -> Any:
    if isinstance(value, str):
        return value.replace(ENV_NAME_PLACEHOLDER, env_name)
    if isinstance(value, dict):
        return {k: _substitute_env_name(v, env_name) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env_name(v, env_name) for v in value]
    return value


@dataclass
class AliasFile:
    """A loaded alias file"""
    path: Path
    kind: str
    group: Optional[str]
    definitions: Dict[str, AliasDefinition] = field(default_factory=dict)

    def member_names(self) -> List[str]:
        return [name for name, d in self.definitions.items() if not d.is_wildcard]

    def group_definition(self) -> AliasDefinition:
        """Implicit list alias naming every member of this group file"""
        members = [f"@{self.group}.{name}" for name in self.member_names()]
        return AliasDefinition.create(self.group, None, {SITE_LIST: members}, self.path)

    def expand_wildcard(self, prefix: str, env_name: str) -> Optional[AliasDefinition]:
        """Instantiate the "prefix.*" wildcard entry for one environment name"""
        definition = self.definitions.get(prefix + WILDCARD_SUFFIX)
        if definition is None:
            return None
        data = _substitute_env_name(definition.to_dict(), env_name)
        return AliasDefinition.create(env_name, prefix, data, self.path)


def load_alias_file(path: Path) -> AliasFile:
    """
    Load and parse one alias file.
    
    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    kind_info = classify_alias_file(path)
    if kind_info is None:
        raise ConfigError(f"Not an alias file: {path}")
    kind, name = kind_info
    
    try:
        content = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to parse alias file {path}: {e}") from e
    
    if kind == "single":
        definition = AliasDefinition.create(name, None, content, path)
        return AliasFile(path=path, kind=kind, group=None, definitions={name: definition})
    
    group = name if kind == "group" else None
    alias_file = AliasFile(path=path, kind=kind, group=group)
    for alias_name, data in content.items():
        if not isinstance(data, dict):
            raise ConfigError(f"Alias '{alias_name}' in {path} must be a table")
        alias_file.definitions[alias_name] = AliasDefinition.create(alias_name, group, data, path)
    return alias_file


def scan_directory(directory: Path) -> List[Path]:
    """Alias files directly inside a directory, sorted by name"""
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.warning("Cannot read alias directory %s: %s", directory, e)
        return []
    return sorted(p for p in entries if p.is_file() and classify_alias_file(p))


def fingerprint(locations: Sequence[SearchLocation]) -> Tuple:
    """Identity of a search path: directories, files and their mtimes"""
    parts = []
    for location in locations:
        files = []
        for path in scan_directory(location.path):
            try:
                files.append((str(path), path.stat().st_mtime_ns))
            except OSError:
                continue
        parts.append((str(location.path), tuple(files)))
    return tuple(parts)


# ============================================================
# Catalog
# ============================================================

class AliasCatalog:
    """Alias files found on a search path, grouped per directory"""
    
    def __init__(self, directories: List[Tuple[SearchLocation, List[AliasFile]]]):
        self.directories = directories
    
    @classmethod
    def load(cls, locations: Sequence[SearchLocation]) -> "AliasCatalog":
        directories = []
        for location in locations:
            files = [load_alias_file(path) for path in scan_directory(location.path)]
            logger.debug("Loaded %d alias file(s) from %s", len(files), location.path)
            directories.append((location, files))
        return cls(directories)
    
    def find(self, token: AliasToken, conflict: str = CONFLICT_ERROR) -> Optional[AliasDefinition]:
        """
        Find the definition for a token; the earliest directory wins.
        
        Raises:
            AmbiguousAliasError: If one directory holds several definitions
                and conflict is "error"
        """
        for location, files in self.directories:
            candidates = self._candidates(files, token)
            if not candidates:
                continue
            if len(candidates) > 1:
                sources = [c.source for c in candidates]
                if conflict != CONFLICT_FIRST:
                    raise AmbiguousAliasError(token.qualified, sources)
                logger.warning(
                    "Site alias %s is defined in %d files of %s; using %s",
                    token.qualified, len(candidates), location.path, sources[0],
                )
            return candidates[0]
        return None
    
    @staticmethod
    def _candidates(files: List[AliasFile], token: AliasToken) -> List[AliasDefinition]:
        if token.group is None:
            found = [
                f.definitions[token.name]
                for f in files
                if token.name in f.definitions and not f.definitions[token.name].is_wildcard
            ]
            if not found:
                found = [f.group_definition() for f in files if f.group == token.name]
            return found
        
        found = [
            f.definitions[token.name]
            for f in files
            if f.group == token.group and token.name in f.definitions
        ]
        if not found:
            for f in files:
                expanded = f.expand_wildcard(token.group, token.name)
                if expanded is not None:
                    found.append(expanded)
        return found
    
    def names(self) -> List[Tuple[str, Path]]:
        """Every alias name visible on the path with the file defining it"""
        seen: Dict[str, Path] = {}
        for _, files in self.directories:
            for f in files:
                if f.group:
                    seen.setdefault(f"@{f.group}", f.path)
                for name, definition in f.definitions.items():
                    if definition.is_wildcard:
                        seen.setdefault(f"@{name}", f.path)
                        continue
                    if f.group:
                        seen.setdefault(f"@{f.group}.{name}", f.path)
                    seen.setdefault(f"@{name}", f.path)
        return list(seen.items())
