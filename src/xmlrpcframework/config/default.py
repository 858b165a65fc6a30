# xmlrpcframework/config/default.py
import os

from xmlrpcframework.errors import ConfigurationError

VERSION = "0.1.0"


def _env_timeout(raw: str | None) -> float | None:
    # empty string disables the deadline entirely
    if raw is None:
        return 30.0
    if not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"XMLRPC_TIMEOUT must be a number of seconds, got {raw!r}") from None


DEFAULT_TIMEOUT: float | None = _env_timeout(os.getenv("XMLRPC_TIMEOUT"))
LOG_LEVEL: str = os.getenv("XMLRPC_LOG_LEVEL", "WARNING")
USER_AGENT: str = os.getenv("XMLRPC_USER_AGENT", f"xmlrpcframework/{VERSION}")
ALLOW_NONE: bool = os.getenv("XMLRPC_ALLOW_NONE", "").lower() in ("1", "true", "yes")
