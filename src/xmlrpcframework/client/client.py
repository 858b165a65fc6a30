# xmlrpcframework/client/client.py
import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

import httpx

from xmlrpcframework.codec.decoder import decode_response
from xmlrpcframework.codec.encoder import encode_request
from xmlrpcframework.config.default import ALLOW_NONE, DEFAULT_TIMEOUT, LOG_LEVEL, USER_AGENT
from xmlrpcframework.errors import CommunicationError, ConfigurationError, RemoteFault, XMLRPCError
from xmlrpcframework.transport.base import Scheme, Transport
from xmlrpcframework.transport.http import HTTPTransport
from xmlrpcframework.transport.scgi import SCGITransport


# ──────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────
def _configure_client_logging(level: str | int = "WARNING"):
    logger = logging.getLogger("xmlrpcframework")
    try:
        logger.setLevel(level)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"invalid log level {level!r}: {e}") from e
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)


# ──────────────────────────────────────────────────────────────
# Settings
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ClientSettings:
    timeout: float | None = DEFAULT_TIMEOUT
    insecure: bool = False
    allow_none: bool = ALLOW_NONE
    user_agent: str = USER_AGENT
    log_level: str | int = LOG_LEVEL


def _normalize_settings(settings: ClientSettings | dict | None) -> ClientSettings:
    if settings is None:
        return ClientSettings()
    if isinstance(settings, ClientSettings):
        return settings
    if isinstance(settings, dict):
        try:
            return ClientSettings(**settings)
        except TypeError as e:
            raise ConfigurationError(f"invalid client settings: {e}") from e
    raise ConfigurationError("settings must be ClientSettings | dict | None")


def _parse_address(addr: str) -> httpx.URL:
    try:
        url = httpx.URL(addr)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"invalid target address {addr!r}: {e}") from e
    if not url.scheme or not url.host:
        raise ConfigurationError(f"target address {addr!r} needs a scheme and a host")
    return url


# ──────────────────────────────────────────────────────────────
# Attribute-style calls: client.proxy.system.listMethods()
# ──────────────────────────────────────────────────────────────
class _Method:
    def __init__(self, client: "Client", name: str):
        self._client = client
        self._name = name

    def __getattr__(self, name: str) -> "_Method":
        if name.startswith("__"):
            raise AttributeError(name)
        return _Method(self._client, f"{self._name}.{name}")

    def __call__(self, *args: Any) -> Any:
        return self._client.call(self._name, *args)

    def __repr__(self):
        return f"<XML-RPC method {self._name!r}>"


class _Proxy:
    def __init__(self, client: "Client"):
        self._client = client

    def __getattr__(self, name: str) -> _Method:
        if name.startswith("__"):
            raise AttributeError(name)
        return _Method(self._client, name)


# ──────────────────────────────────────────────────────────────
# Client
# ──────────────────────────────────────────────────────────────
class Client:
    """
    XML-RPC client bound to a single endpoint.

    The transport is chosen once from the address scheme: ``scgi://host:port/``
    talks SCGI over a raw socket, anything else is POSTed over HTTP(S).
    Pass ``insecure=True`` to turn off TLS certificate verification.
    """

    def __init__(
        self,
        addr: str,
        insecure: bool = False,
        settings: ClientSettings | dict | None = None,
        *,
        transport: Optional[Transport] = None,
    ):
        self._settings = _normalize_settings(settings)
        if insecure:
            self._settings = replace(self._settings, insecure=True)
        _configure_client_logging(self._settings.log_level)
        self._logger = logging.getLogger("xmlrpcframework.client")

        url = _parse_address(addr)
        self._addr = addr
        self._scheme = url.scheme
        self._transport = transport or self._select_transport(url)
        self._logger.info(f"Initialized client for {addr} via {self._transport!r}")

    def _select_transport(self, url: httpx.URL) -> Transport:
        if url.scheme == Scheme.SCGI:
            if url.port is None:
                raise ConfigurationError(f"scgi address {self._addr!r} needs an explicit port")
            return SCGITransport(
                url.host,
                url.port,
                uri=url.path or "/",
                timeout=self._settings.timeout,
            )
        return HTTPTransport(
            self._addr,
            verify=not self._settings.insecure,
            timeout=self._settings.timeout,
            user_agent=self._settings.user_agent,
        )

    @classmethod
    def with_http_client(
        cls,
        addr: str,
        http_client: httpx.Client,
        settings: ClientSettings | dict | None = None,
    ) -> "Client":
        """Build a client on top of a caller-configured ``httpx.Client`` (timeouts, proxies, hooks)."""
        url = _parse_address(addr)
        if url.scheme == Scheme.SCGI:
            raise ConfigurationError("an HTTP client cannot serve an scgi address")
        normalized = _normalize_settings(settings)
        transport = HTTPTransport(addr, http_client, user_agent=normalized.user_agent)
        return cls(addr, settings=normalized, transport=transport)

    # ───── Properties ─────
    @property
    def address(self) -> str:
        return self._addr

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def proxy(self) -> _Proxy:
        return _Proxy(self)

    # ───── Call ─────
    def call(self, name: str, *args: Any) -> Any:
        """
        Call the remote method ``name`` with positional ``args``.

        Returns the decoded result. Raises EncodingError before anything is
        sent, CommunicationError for transport failures, Malformed* for
        non-conforming responses and RemoteFault when the server answers
        with a fault.
        """
        request = encode_request(name, args, allow_none=self._settings.allow_none)
        self._logger.debug(f"Calling {name} on {self._addr} ({len(request)} bytes)")

        try:
            body = self._transport.call(request)
        except XMLRPCError:
            raise
        except Exception as e:
            raise CommunicationError(f"transport failed calling {name}: {e}") from e

        response = decode_response(body)
        if response.is_fault:
            fault = response.fault
            self._logger.warning(f"{name} raised fault {fault.fault_code}: {fault.fault_string}")
            raise RemoteFault(fault.fault_string, code=fault.fault_code)
        return response.value

    # ───── Lifecycle ─────
    def close(self) -> None:
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"{type(self).__name__}(addr={self._addr!r})"
