# xmlrpcframework/transport/base.py
from abc import ABC, abstractmethod
from enum import Enum


class Scheme(str, Enum):
    HTTP = "http"
    HTTPS = "https"
    SCGI = "scgi"

    def __str__(self):
        return self.value


class Transport(ABC):
    """Moves an encoded request to the endpoint and hands back the raw response body."""

    @abstractmethod
    def call(self, request: bytes) -> bytes:
        ...

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
