"""
Unified exception definitions
"""


class SiteDispatchError(Exception):
    """Base exception class"""
    pass


class ConfigError(SiteDispatchError):
    """Configuration error"""
    pass


class AliasError(SiteDispatchError):
    """Site alias error"""
    pass


class MalformedTokenError(AliasError):
    """Alias token does not match any recognised form"""

    def __init__(self, token: str):
        super().__init__(f"Malformed site alias: {token!r}")
        self.token = token


class AliasNotFoundError(AliasError):
    """No alias definition found on the search path"""

    def __init__(self, token: str):
        super().__init__(f"Site alias not found: {token}")
        self.token = token


class CyclicParentError(AliasError):
    """Parent chain (or site list) refers back to itself"""

    def __init__(self, cycle: list):
        super().__init__("Cyclic site alias inheritance: " + " -> ".join(cycle))
        self.cycle = cycle


class AmbiguousAliasError(AliasError):
    """Same alias defined in more than one file of one search directory"""

    def __init__(self, token: str, sources: list):
        listed = ", ".join(str(s) for s in sources)
        super().__init__(f"Site alias {token} is defined in more than one file: {listed}")
        self.token = token
        self.sources = sources


class PathAliasError(AliasError):
    """Path alias (%token) could not be evaluated"""
    pass


class BackendError(SiteDispatchError):
    """Backend invoke error"""
    kind = "backend_error"


class SpawnFailedError(BackendError):
    """Child process could not be started"""
    kind = "spawn_failed"


class MalformedPayloadError(BackendError):
    """Child stdout did not end with a parseable result object"""
    kind = "malformed_payload"


class InvokeTimeoutError(BackendError):
    """Child process exceeded the configured timeout"""
    kind = "timeout"

    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class CommandNotFoundError(SiteDispatchError):
    """In-process command is not registered"""
    pass
