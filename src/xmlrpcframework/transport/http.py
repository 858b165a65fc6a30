# xmlrpcframework/transport/http.py
import logging
from typing import Optional

import httpx

from xmlrpcframework.config.default import DEFAULT_TIMEOUT, USER_AGENT
from xmlrpcframework.errors import CommunicationError
from xmlrpcframework.transport.base import Transport

logger = logging.getLogger("xmlrpcframework.transport.http")


class HTTPTransport(Transport):
    """
    XML-RPC over HTTP(S): one POST per call, full body buffered.

    When no ``client`` is given an ``httpx.Client`` is created and owned by
    the transport; a caller-supplied client stays the caller's to close.
    """

    def __init__(
        self,
        url: str,
        client: Optional[httpx.Client] = None,
        *,
        verify: bool = True,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
    ):
        self.url = url
        self.user_agent = user_agent
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client(verify=verify, timeout=timeout)

    def call(self, request: bytes) -> bytes:
        headers = {"Content-Type": "text/xml", "User-Agent": self.user_agent}
        try:
            # stream() drains and releases the connection on every exit path
            with self.client.stream("POST", self.url, content=request, headers=headers) as resp:
                body = resp.read()
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"POST {self.url} answered {e.response.status_code}")
            raise CommunicationError(
                f"POST failed: HTTP {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"POST {self.url} failed: {e!r}")
            raise CommunicationError(f"POST failed: {e}") from e

        logger.debug(f"POST {self.url}: sent {len(request)} bytes, received {len(body)} bytes")
        return body

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __repr__(self):
        return f"{type(self).__name__}(url={self.url!r})"
