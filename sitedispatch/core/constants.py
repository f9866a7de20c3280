"""
Project constants definitions
"""

# ============================================================
# Alias Search Path
# ============================================================

SYSTEM_CONFIG_DIR = "/etc/sitedispatch"
USER_CONFIG_DIR = "~/.sitedispatch"
DEFAULT_CONFIG_FILE = "~/.sitedispatch/config.toml"
INSTALL_ALIASES_SUBDIR = "aliases"

ALIAS_FILE_SUFFIX = ".toml"
SINGLE_ALIAS_MARKER = ".alias"
GROUP_ALIAS_MARKER = ".aliases"
UNGROUPED_ALIAS_FILE = "aliases.toml"

# ============================================================
# Special Alias Tokens
# ============================================================

SELF_ALIAS = "@self"
NONE_ALIAS = "@none"
SITES_ALIAS = "@sites"

WILDCARD_SUFFIX = ".*"
ENV_NAME_PLACEHOLDER = "${env-name}"

# ============================================================
# Site Record Keys
# ============================================================

COMMAND_SPECIFIC = "command-specific"
SOURCE_COMMAND_SPECIFIC = "source-command-specific"
TARGET_COMMAND_SPECIFIC = "target-command-specific"
PATH_ALIASES = "path-aliases"
SITE_LIST = "site-list"
PARENT = "parent"
ENV_VARS = "#env-vars"
PEER_PREFIX = "#"

# Options already encoded positionally in a remote invocation
POSITIONAL_OPTIONS = ("alias-path", "root", "uri")

# Record keys that describe how to reach a site; never forwarded as options
CONNECTION_KEYS = ("remote-host", "remote-user", "remote-port", "ssh-options", "os", "drush-script")

# ============================================================
# Dispatch Default Values
# ============================================================

DEFAULT_SSH_BINARY = "ssh"
DEFAULT_SSH_OPTIONS = "-o PasswordAuthentication=no"
DEFAULT_DRUSH_SCRIPT = "drush"
DEFAULT_RSYNC_MODE = "akz"
DEFAULT_FILES_PATH = "sites/default/files"
DEFAULT_SSH_PORT = 22
DEFAULT_TRANSPORT = "ssh"

# ============================================================
# Backend Protocol
# ============================================================

BACKEND_OUTPUT_START = "DRUSH_BACKEND_OUTPUT_START>>>"
BACKEND_OUTPUT_END = "<<<DRUSH_BACKEND_OUTPUT_END"

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_TIMEOUT = 124
EXIT_SPAWN_FAILED = 127

# ============================================================
# Environment
# ============================================================

ENV_PREFIX = "SITED_"
