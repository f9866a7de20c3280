"""
rsync invocation builder
"""
import shlex
from typing import Any, List, Mapping, Optional, Sequence

from ...core.constants import DEFAULT_RSYNC_MODE, DEFAULT_SSH_OPTIONS
from ...core.results import Result
from ...core.utils import split_path_list, split_ssh_options
from ..alias.paths import HostPath
from .engine import ssh_option_args
from .models import Invocation

RSYNC_COMMAND = "core:rsync"
RSYNC_ALIASES = ("rsync", "core-rsync")


def validate_rsync(source: HostPath, target: HostPath) -> Result[None]:
    """rsync can reach at most one remote end"""
    if source.is_remote and target.is_remote:
        return Result.failure(
            "Cannot specify two remote aliases. Instead, run the command on one of them:\n\n"
            f"    sited ssh {source.record.name} 'sited rsync @self {target.original}'",
            field="target",
        )
    return Result.success()


def rsync_options(options: Mapping[str, Any], verbose: bool = False) -> List[str]:
    """
    Translate mode / include-paths / exclude-paths into rsync flags.
    
    --mode=rultz implies rsync -rultz. Path lists are separated by ';'
    or the platform path separator.
    """
    flags = ["-" + str(options.get("mode") or DEFAULT_RSYNC_MODE)]
    if verbose:
        flags[0] += "v"
        flags += ["--stats", "--progress"]
    
    for kind in ("include", "exclude"):
        for path in split_path_list(options.get(f"{kind}-paths")):
            flags.append(f"--{kind}={path}")
    return flags


def build_rsync(
    source: HostPath,
    target: HostPath,
    options: Optional[Mapping[str, Any]] = None,
    extra: Sequence[str] = (),
    ssh_options: Optional[str] = None,
    verbose: bool = False,
) -> Invocation:
    """
    Build the rsync invocation between two host paths.
    
    The ssh options come from the remote end's record, then ssh_options,
    then the built-in default. The source keeps its trailing slash so
    that "dir/" copies the directory contents.

    Raises:
        ConfigError: Invalid ssh options
    """
    options = dict(options or {})
    remote = target if target.is_remote else source
    if remote.is_remote:
        ssh_args = ssh_option_args(remote.record, ssh_options)
    else:
        ssh_args = split_ssh_options(ssh_options or DEFAULT_SSH_OPTIONS, "ssh.options")

    argv = ["rsync", "-e", shlex.join(["ssh"] + ssh_args)]
    argv += rsync_options(options, verbose=verbose)
    argv += list(extra)
    argv.append(source.fully_qualified_path(preserve_trailing_slash=True))
    argv.append(target.fully_qualified_path())
    
    return Invocation(
        kind="process",
        target=remote.record.name,
        command=RSYNC_COMMAND,
        args=[source.original, target.original],
        options=options,
        argv=argv,
        host=remote.record.remote_host,
        user=remote.record.remote_user,
    )
