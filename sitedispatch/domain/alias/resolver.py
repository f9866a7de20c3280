"""
Site alias resolver

Turns alias tokens into SiteRecords: looks the token up on the alias
search path, merges the parent chain and applies alias.alter hooks.
All caches live in a ResolverContext that is created once per process.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...core.constants import NONE_ALIAS, SELF_ALIAS, PARENT, SITE_LIST
from ...core.exceptions import AliasError, AliasNotFoundError, CyclicParentError
from ...core.hooks import HookRegistry, ALIAS_ALTER
from ...core.logging import get_logger
from .loader import AliasCatalog, SearchLocation, build_search_path, fingerprint, CONFLICT_ERROR
from .models import AliasDefinition, SiteRecord
from .token import AliasToken, parse_token

logger = get_logger(__name__)


@dataclass
class ResolverContext:
    """
    Everything alias resolution depends on, plus its caches.
    
    Attributes:
        alias_path: Explicit alias-path entries (string or list)
        default_dirs: Default alias directories (None means the built-in list)
        site_root: Root of the bootstrapped Drupal site, if any
        self_options: Options describing the bootstrapped site (@self)
        alias_conflict: "error" or "first", for duplicates within one directory
        hooks: Hook registry consulted for alias.alter
    """
    alias_path: Any = None
    default_dirs: Optional[Sequence[Path]] = None
    site_root: Optional[Path] = None
    self_options: Dict[str, Any] = field(default_factory=dict)
    alias_conflict: str = CONFLICT_ERROR
    hooks: HookRegistry = field(default_factory=HookRegistry)

    _fingerprint: Optional[Tuple] = field(default=None, init=False, repr=False)
    _catalog: Optional[AliasCatalog] = field(default=None, init=False, repr=False)
    _records: Dict[Tuple[str, Tuple], SiteRecord] = field(default_factory=dict, init=False, repr=False)

    def search_path(self) -> List[SearchLocation]:
        return build_search_path(self.alias_path, self.default_dirs, self.site_root)

    def catalog(self) -> Tuple[Tuple, AliasCatalog]:
        """Current (fingerprint, catalog); reloads only when files changed"""
        locations = self.search_path()
        current = fingerprint(locations)
        if self._catalog is None or current != self._fingerprint:
            if self._catalog is not None:
                logger.debug("Alias files changed, reloading")
            self._catalog = AliasCatalog.load(locations)
            self._fingerprint = current
            self._records.clear()
        return self._fingerprint, self._catalog

    def cached(self, token: str, fp: Tuple) -> Optional[SiteRecord]:
        return self._records.get((token, fp))

    def store(self, token: str, fp: Tuple, record: SiteRecord) -> None:
        self._records[(token, fp)] = record

    def clear(self) -> None:
        self._fingerprint = None
        self._catalog = None
        self._records.clear()


class AliasResolver:
    """Resolves alias tokens to SiteRecords"""
    
    def __init__(self, context: Optional[ResolverContext] = None):
        self.context = context or ResolverContext()
    
    # --------------------
    # Public API
    # --------------------
    def resolve(self, token: str) -> SiteRecord:
        """
        Resolve a single alias token.
        
        Raises:
            MalformedTokenError: Token does not match a recognised form
            AliasNotFoundError: No definition on the search path
            CyclicParentError: Parent chain loops
            AmbiguousAliasError: Duplicate definitions in one directory
            AliasError: Token names several sites (@sites)
        """
        parsed = parse_token(token)
        fp, catalog = self.context.catalog()
        return self._resolve(parsed, (), fp, catalog)
    
    def resolve_list(self, token: str, root: Optional[str] = None) -> List[SiteRecord]:
        """Resolve a token to every site it stands for (list aliases, @sites)"""
        parsed = parse_token(token)
        if parsed.is_sites:
            return self.resolve_all(root)
        fp, catalog = self.context.catalog()
        return self._expand(parsed, (), fp, catalog)
    
    def resolve_all(self, root: Optional[str] = None) -> List[SiteRecord]:
        """
        One SiteRecord per site directory (sites/*/settings.php) under root.
        
        Args:
            root: Drupal root; defaults to the bootstrapped site root
        """
        root = root or self.context.self_options.get("root") or self.context.site_root
        if not root:
            raise AliasError("@sites needs a Drupal root (use --root)")
        
        sites_dir = Path(root) / "sites"
        if not sites_dir.is_dir():
            return []
        
        records = []
        for site_dir in sorted(p for p in sites_dir.iterdir() if p.is_dir()):
            if not (site_dir / "settings.php").is_file():
                continue
            records.append(
                SiteRecord.create(f"{root}#{site_dir.name}", {"root": str(root), "uri": site_dir.name})
            )
        return records
    
    def list_aliases(self) -> List[Tuple[str, Path]]:
        """Every alias name on the search path and the file defining it"""
        _, catalog = self.context.catalog()
        return catalog.names()
    
    # --------------------
    # Internals
    # --------------------
    def _resolve(self, parsed: AliasToken, stack: Tuple[str, ...], fp: Tuple, catalog: AliasCatalog) -> SiteRecord:
        key = parsed.qualified
        if key in stack:
            raise CyclicParentError(list(stack[stack.index(key):]) + [key])
        
        cached = self.context.cached(key, fp)
        if cached is not None:
            return cached
        
        if parsed.is_self:
            record = self._self_record()
        elif parsed.is_none:
            record = SiteRecord.create(NONE_ALIAS)
        elif parsed.is_sites:
            raise AliasError("@sites refers to every site under a root; resolve it as a list")
        else:
            definition = catalog.find(parsed, self.context.alias_conflict)
            if definition is None:
                raise AliasNotFoundError(key)
            data = self._inherit(definition, stack + (key,), fp, catalog)
            data = self.context.hooks.alter(ALIAS_ALTER, data, key)
            record = SiteRecord.create(key, data)
            logger.debug("Resolved %s from %s", key, definition.source)
        
        self.context.store(key, fp, record)
        return record
    
    def _inherit(
        self,
        definition: AliasDefinition,
        stack: Tuple[str, ...],
        fp: Tuple,
        catalog: AliasCatalog,
    ) -> Dict[str, Any]:
        """
        Parents left to right (later wins), then the child over all of them.

        A parent's site-list is not inherited: a child of a list alias is
        still a single site.
        """
        merged: Dict[str, Any] = {}
        for parent in definition.parents:
            parent_data = self._resolve(parse_token(parent), stack, fp, catalog).export()
            parent_data.pop(SITE_LIST, None)
            merged.update(parent_data)
        
        own = definition.to_dict()
        own.pop(PARENT, None)
        merged.update(own)
        return merged
    
    def _expand(self, parsed: AliasToken, stack: Tuple[str, ...], fp: Tuple, catalog: AliasCatalog) -> List[SiteRecord]:
        key = parsed.qualified
        if key in stack:
            raise CyclicParentError(list(stack[stack.index(key):]) + [key])
        
        record = self._resolve(parsed, (), fp, catalog)
        if not record.is_list:
            return [record]
        
        records: List[SiteRecord] = []
        for member in record.site_list:
            records.extend(self._expand(parse_token(member), stack + (key,), fp, catalog))
        return records
    
    def _self_record(self) -> SiteRecord:
        data = dict(self.context.self_options)
        if not data.get("root") and self.context.site_root:
            data["root"] = str(self.context.site_root)
        return SiteRecord.create(SELF_ALIAS, {k: v for k, v in data.items() if v is not None})
