"""
Dispatch decision engine

Decides whether a command runs in-process or on the site's remote host
and, for remote sites, builds the ssh argument vector.
"""
from typing import Any, List, Mapping, Optional, Sequence

from ...core.constants import (
    CONNECTION_KEYS,
    DEFAULT_SSH_BINARY,
    DEFAULT_SSH_OPTIONS,
    ENV_VARS,
    PEER_PREFIX,
    POSITIONAL_OPTIONS,
)
from ...core.logging import get_logger
from ...core.utils import current_user, escape_arg, sets_ssh_port, split_ssh_options
from ..alias.models import SiteRecord
from ..alias.paths import PathAliases
from .models import Invocation

logger = get_logger(__name__)


def is_remote(site_record: SiteRecord) -> bool:
    """True iff the record names a non-empty remote-host"""
    return site_record.is_remote


def effective_remote_user(site_record: SiteRecord) -> str:
    return site_record.remote_user or current_user()


def ssh_option_args(site_record: SiteRecord, default_options: Optional[str] = None) -> List[str]:
    """
    ssh options from the record, else the configured or built-in default.
    
    A remote-port on the record adds -p unless the options already set
    a port.
    
    Raises:
        ConfigError: ssh-options is not a string or cannot be split
    """
    options = site_record.ssh_options
    source = f"ssh-options of {site_record.name}"
    if options is None:
        options = default_options if default_options is not None else DEFAULT_SSH_OPTIONS
        source = "ssh.options"
    args = split_ssh_options(options, source)
    port = site_record.remote_port
    if port and not sets_ssh_port(args):
        args += ["-p", str(port)]
    return args


def format_options(options: Mapping[str, Any]) -> List[str]:
    """
    Render options as --name[=value] arguments.
    
    Peer options (#name), connection keys (remote-host, ...) and options
    already passed positionally are dropped. True renders as a bare flag;
    False and None are omitted; lists are comma joined.
    """
    rendered = []
    for name, value in options.items():
        if name.startswith(PEER_PREFIX) or name in POSITIONAL_OPTIONS or name in CONNECTION_KEYS:
            continue
        if value is None or value is False:
            continue
        if value is True:
            rendered.append(f"--{name}")
        elif isinstance(value, (list, tuple)):
            rendered.append(f"--{name}=" + ",".join(str(v) for v in value))
        elif isinstance(value, Mapping):
            logger.debug("Not forwarding structured option %s", name)
        else:
            rendered.append(f"--{name}={value}")
    return rendered


class DispatchEngine:
    """Builds invocations for local and remote sites"""
    
    def __init__(
        self,
        ssh_binary: str = DEFAULT_SSH_BINARY,
        ssh_options: Optional[str] = None,
        local_drush_script: Optional[str] = None,
    ):
        """
        Args:
            ssh_binary: ssh executable
            ssh_options: Default ssh options for records without ssh-options
            local_drush_script: Script used for %drush-script on local sites
        """
        self.ssh_binary = ssh_binary
        self.ssh_options = ssh_options
        self.local_drush_script = local_drush_script
    
    def is_remote(self, site_record: SiteRecord) -> bool:
        return is_remote(site_record)
    
    def build_invocation(
        self,
        site_record: SiteRecord,
        command: str,
        args: Sequence[str] = (),
        effective_options: Optional[Mapping[str, Any]] = None,
        backend: bool = True,
        tty: bool = False,
    ) -> Invocation:
        """
        Build the invocation for a command on a site.
        
        Remote shape:
            [ssh, ssh_options..., user@host, script, --uri=URI, command, args..., options...]
        
        Args:
            site_record: Target site
            command: Command name
            args: Positional command arguments
            effective_options: Merged options to forward
            backend: Ask the remote side for a structured payload (--backend)
            tty: Allocate a terminal (ssh -t) for interactive commands
        """
        options = dict(effective_options or {})
        if not is_remote(site_record):
            return Invocation(
                kind="local",
                target=site_record.name,
                command=command,
                args=list(args),
                options=options,
                record=site_record,
            )
        
        if backend:
            options["backend"] = True
        
        host = site_record.remote_host
        user = effective_remote_user(site_record)
        argv = [self.ssh_binary] + ssh_option_args(site_record, self.ssh_options)
        if tty:
            argv.append("-t")
        argv.append(f"{user}@{host}")
        
        remote_argv = self._remote_argv(site_record, command, args, options)
        argv.extend(remote_argv)
        
        invocation = Invocation(
            kind="remote",
            target=site_record.name,
            command=command,
            args=list(args),
            options=options,
            argv=argv,
            host=host,
            user=user,
            remote_argv=remote_argv,
            record=site_record,
        )
        logger.debug("Remote invocation for %s: %s", site_record.name, invocation)
        return invocation
    
    def build_shell(self, site_record: SiteRecord, command: Optional[str] = None, tty: bool = True) -> List[str]:
        """
        ssh argv for an interactive shell (or a raw shell command) on a remote
        site, starting in its root.
        """
        host = site_record.remote_host
        argv = [self.ssh_binary] + ssh_option_args(site_record, self.ssh_options)
        if tty:
            argv.append("-t")
        argv.append(f"{effective_remote_user(site_record)}@{host}")
        
        remote = []
        if site_record.root:
            remote.append("cd " + escape_arg(site_record.root, site_record.os))
        remote.append(command or "bash -l")
        argv.append(" && ".join(remote))
        return argv
    
    def _remote_argv(
        self,
        site_record: SiteRecord,
        command: str,
        args: Sequence[str],
        options: Mapping[str, Any],
    ) -> List[str]:
        os_name = site_record.os
        parts: List[str] = []
        
        env_vars = site_record.get(ENV_VARS) or {}
        if env_vars and os_name != "Windows":
            for key, value in env_vars.items():
                parts.append(f"{key}={escape_arg(str(value), os_name)}")
        
        script = PathAliases(site_record, self.local_drush_script).get("%drush-script")
        parts.append(escape_arg(script, os_name))
        if site_record.uri:
            parts.append(escape_arg(f"--uri={site_record.uri}", os_name))
        parts.append(escape_arg(command, os_name))
        parts.extend(escape_arg(arg, os_name) for arg in args)
        parts.extend(escape_arg(opt, os_name) for opt in format_options(options))
        return parts
