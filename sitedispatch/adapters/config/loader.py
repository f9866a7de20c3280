"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...core.constants import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_SSH_BINARY,
    DEFAULT_TRANSPORT,
    ENV_PREFIX,
)
from ...core.exceptions import ConfigError
from ...core.logging import get_logger
from ...core.utils import split_path_list
from ...domain.alias.loader import CONFLICT_ERROR, CONFLICT_FIRST

logger = get_logger(__name__)


class ConfigLoader:
    """Configuration loader with priority support"""
    
    # Environment variable (without prefix) -> config key
    ENV_MAPPINGS = {
        "ALIAS_PATH": "alias-path",
        "SSH_OPTIONS": "ssh.options",
        "TIMEOUT": "backend.timeout",
        "TRANSPORT": "backend.transport",
        "ROOT": "root",
        "URI": "uri",
    }
    
    # Values kept as strings even when they look numeric
    _RAW_KEYS = ("alias-path", "ssh.options", "root", "uri")
    
    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._env_prefix = env_prefix
    
    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        
        try:
            return tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse TOML configuration {path}: {e}") from e
    
    def load_env(self, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        environ = os.environ if environ is None else environ
        config: Dict[str, Any] = {}
        
        for env_key, config_key in self.ENV_MAPPINGS.items():
            value = environ.get(self._env_prefix + env_key)
            if not value:
                continue
            if config_key not in self._RAW_KEYS:
                value = self._convert_value(value)
            # Handle nested keys
            if "." in config_key:
                section, key = config_key.split(".", 1)
                config.setdefault(section, {})[key] = value
            else:
                config[config_key] = value
        
        return config
    
    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type"""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        
        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                pass
        
        return value
    
    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}
        
        for config in configs:
            result = self._deep_merge(result, config)
        
        return result
    
    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()
        
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        
        return result
    
    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML
        
        Args:
            toml_path: Path to TOML configuration file; when None the
                default file is used if it exists
            cli_overrides: CLI parameter overrides
            use_env: Whether to load from environment variables
        
        Returns:
            Merged configuration dictionary
        """
        configs = []
        
        # 1. TOML: explicit path must exist, the default one may not
        if toml_path is not None:
            configs.append(self.load_toml(Path(toml_path).expanduser()))
        else:
            default = Path(DEFAULT_CONFIG_FILE).expanduser()
            if default.is_file():
                logger.debug("Loading configuration from %s", default)
                configs.append(self.load_toml(default))
        
        # 2. Environment variables
        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)
        
        # 3. CLI overrides (highest priority); None means "not given"
        if cli_overrides:
            configs.append({k: v for k, v in cli_overrides.items() if v is not None})
        
        return self.merge_configs(*configs)


@dataclass
class Settings:
    """Typed view of a merged configuration"""
    alias_path: List[str] = field(default_factory=list)
    alias_conflict: str = CONFLICT_ERROR
    drush_script: Optional[str] = None
    root: Optional[str] = None
    uri: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    ssh_binary: str = DEFAULT_SSH_BINARY
    ssh_options: Optional[str] = None
    ssh_config: Optional[str] = None
    timeout: float = 0
    transport: str = DEFAULT_TRANSPORT
    
    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Settings":
        """
        Build settings from a merged configuration dictionary.
        
        Raises:
            ConfigError: Invalid value for a recognised key
        """
        ssh = cfg.get("ssh") or {}
        backend = cfg.get("backend") or {}
        if not isinstance(ssh, dict) or not isinstance(backend, dict):
            raise ConfigError("[ssh] and [backend] must be tables")
        
        conflict = cfg.get("alias-conflict", CONFLICT_ERROR)
        if conflict not in (CONFLICT_ERROR, CONFLICT_FIRST):
            raise ConfigError(f"alias-conflict must be '{CONFLICT_ERROR}' or '{CONFLICT_FIRST}', got {conflict!r}")
        
        try:
            timeout = float(backend.get("timeout") or 0)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"backend.timeout must be a number: {backend.get('timeout')!r}") from e
        if timeout < 0:
            raise ConfigError("backend.timeout must not be negative")
        
        options = cfg.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigError("options must be a table")
        
        return cls(
            alias_path=split_path_list(cfg.get("alias-path")),
            alias_conflict=conflict,
            drush_script=cfg.get("drush-script"),
            root=cfg.get("root"),
            uri=cfg.get("uri"),
            options=dict(options),
            ssh_binary=ssh.get("binary") or DEFAULT_SSH_BINARY,
            ssh_options=ssh.get("options"),
            ssh_config=ssh.get("config"),
            timeout=timeout,
            transport=str(backend.get("transport") or DEFAULT_TRANSPORT),
        )
