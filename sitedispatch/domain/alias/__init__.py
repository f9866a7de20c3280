"""
Site alias domain module
"""
from .token import AliasToken, parse_token, is_alias_token
from .models import AliasDefinition, SiteRecord
from .loader import AliasCatalog, AliasFile, SearchLocation, build_search_path, load_alias_file
from .resolver import AliasResolver, ResolverContext
from .paths import PathAliases, HostPath

__all__ = [
    "AliasToken",
    "parse_token",
    "is_alias_token",
    "AliasDefinition",
    "SiteRecord",
    "AliasCatalog",
    "AliasFile",
    "SearchLocation",
    "build_search_path",
    "load_alias_file",
    "AliasResolver",
    "ResolverContext",
    "PathAliases",
    "HostPath",
]
