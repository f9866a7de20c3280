"""
Option merging for one command run against one site

Precedence, lowest first:
1. global config options
2. the alias's own options
3. command-specific options of the bootstrapped local site
4. command-specific options of the alias
5. source-command-specific (role=source) or target-command-specific (role=target)
6. options given on the command line
"""
import copy
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ...core.constants import (
    COMMAND_SPECIFIC,
    SOURCE_COMMAND_SPECIFIC,
    TARGET_COMMAND_SPECIFIC,
)
from ...core.logging import get_logger
from ..alias.models import SiteRecord

logger = get_logger(__name__)


class Role(str, Enum):
    """How a site takes part in the command"""
    NONE = "none"
    SOURCE = "source"
    TARGET = "target"


def matching_overrides(
    section: Mapping[str, Mapping[str, Any]],
    command_name: str,
    command_aliases: Sequence[str] = (),
) -> Dict[str, Any]:
    """
    Collect the overrides of a command-specific section that apply to a command.
    
    Entries keyed by an alias of the command apply exactly as entries keyed
    by its name; the entry under the full name is applied last.
    """
    result: Dict[str, Any] = {}
    keys = [a for a in command_aliases if a != command_name] + [command_name]
    for key in keys:
        overrides = section.get(key)
        if isinstance(overrides, Mapping):
            result.update(copy.deepcopy(dict(overrides)))
    return result


def merge_options(
    site_record: SiteRecord,
    command_name: str,
    command_aliases: Iterable[str] = (),
    role: Role = Role.NONE,
    cli_options: Optional[Mapping[str, Any]] = None,
    global_options: Optional[Mapping[str, Any]] = None,
    local_record: Optional[SiteRecord] = None,
) -> Dict[str, Any]:
    """
    Build the effective option set. No input is modified.
    
    Args:
        site_record: Site the command runs against
        command_name: Full command name, e.g. "sql:sync"
        command_aliases: Other names of the command, e.g. ["sql-sync"]
        role: Whether the site is the source or target of a sync command
        cli_options: Options from the command line (highest precedence)
        global_options: Options from configuration (lowest precedence)
        local_record: Bootstrapped local site, whose command-specific
            options sit below the alias's own
    
    Returns:
        Merged option mapping
    """
    role = Role(role)
    aliases = list(command_aliases)
    
    effective: Dict[str, Any] = copy.deepcopy(dict(global_options or {}))
    effective.update(site_record.options())
    
    if local_record is not None and local_record is not site_record:
        effective.update(
            matching_overrides(local_record.command_specific(COMMAND_SPECIFIC), command_name, aliases)
        )
    
    effective.update(
        matching_overrides(site_record.command_specific(COMMAND_SPECIFIC), command_name, aliases)
    )
    
    if role is Role.SOURCE:
        effective.update(
            matching_overrides(site_record.command_specific(SOURCE_COMMAND_SPECIFIC), command_name, aliases)
        )
    elif role is Role.TARGET:
        effective.update(
            matching_overrides(site_record.command_specific(TARGET_COMMAND_SPECIFIC), command_name, aliases)
        )
    
    effective.update(copy.deepcopy(dict(cli_options or {})))
    logger.debug("Effective options for %s on %s: %s", command_name, site_record.name, sorted(effective))
    return effective
