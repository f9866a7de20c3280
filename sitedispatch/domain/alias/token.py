"""
Alias token parser

Handles the forms:
- @name
- @group.name
- @self, @none (built-in sites)
- @sites (every site under a Drupal root)
"""
import re
from dataclasses import dataclass
from typing import Optional

from ...core.constants import SELF_ALIAS, NONE_ALIAS, SITES_ALIAS
from ...core.exceptions import MalformedTokenError

_TOKEN_RE = re.compile(
    r"^@(?:(?P<group>[A-Za-z0-9_-]+)\.)?(?P<name>[A-Za-z0-9_-]+)$"
)


@dataclass(frozen=True)
class AliasToken:
    """Parsed @alias reference"""
    name: str
    group: Optional[str] = None

    @property
    def is_self(self) -> bool:
        return self.group is None and self.name == SELF_ALIAS[1:]

    @property
    def is_none(self) -> bool:
        return self.group is None and self.name == NONE_ALIAS[1:]

    @property
    def is_sites(self) -> bool:
        return self.group is None and self.name == SITES_ALIAS[1:]

    @property
    def is_special(self) -> bool:
        return self.is_self or self.is_none or self.is_sites

    @property
    def qualified(self) -> str:
        """Canonical string form, e.g. "@mysite.dev" """
        if self.group:
            return f"@{self.group}.{self.name}"
        return f"@{self.name}"

    def __str__(self) -> str:
        return self.qualified


def is_alias_token(value: str) -> bool:
    """Check if value looks like an alias token"""
    return bool(value) and _TOKEN_RE.match(value) is not None


def parse_token(token: str) -> AliasToken:
    """
    Parse an alias token.
    
    Examples:
        parse_token("@dev") -> AliasToken(name="dev")
        parse_token("@mysite.dev") -> AliasToken(name="dev", group="mysite")
    
    Raises:
        MalformedTokenError: If the token does not match a recognised form
    """
    if not isinstance(token, str):
        raise MalformedTokenError(repr(token))
    match = _TOKEN_RE.match(token.strip())
    if match is None:
        raise MalformedTokenError(token)
    return AliasToken(name=match.group("name"), group=match.group("group"))
