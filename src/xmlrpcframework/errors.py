# xmlrpcframework/errors.py
from typing import Optional
from dataclasses import dataclass


@dataclass(eq=False)
class XMLRPCError(Exception):
    message: str

    def __str__(self):
        return self.message


@dataclass(eq=False)
class ConfigurationError(XMLRPCError):
    """Target address or client settings are unusable. Raised at construction."""


@dataclass(eq=False)
class EncodingError(XMLRPCError):
    position: Optional[int] = None
    path: Optional[str] = None

    def __str__(self):
        if self.path:
            return f"{self.message} (at {self.path})"
        return self.message


@dataclass(eq=False)
class UnsupportedType(EncodingError):
    type_name: Optional[str] = None


@dataclass(eq=False)
class CommunicationError(XMLRPCError):
    """Transport-level failure: refused connection, timeout, bad status, broken stream."""


@dataclass(eq=False)
class MalformedResponse(XMLRPCError):
    fragment: Optional[str] = None

    def __str__(self):
        if self.fragment:
            return f"{self.message}: {self.fragment!r}"
        return self.message


@dataclass(eq=False)
class MalformedValue(MalformedResponse):
    tag: Optional[str] = None
    text: Optional[str] = None

    def __str__(self):
        return f"{self.message} <{self.tag}>{self.text!r}"


@dataclass(eq=False)
class UnknownType(MalformedValue):
    pass


@dataclass(eq=False)
class MalformedFault(MalformedResponse):
    pass


# Fault codes from the XML-RPC fault code interoperability convention
FAULT_CODES = {
    -32700: "parse error. not well formed",
    -32701: "parse error. unsupported encoding",
    -32702: "parse error. invalid character for encoding",
    -32600: "server error. invalid xml-rpc. not conforming to spec",
    -32601: "server error. requested method not found",
    -32602: "server error. invalid method parameters",
    -32603: "server error. internal xml-rpc error",
    -32500: "application error",
    -32400: "system error",
    -32300: "transport error",
}


@dataclass(eq=False)
class RemoteFault(XMLRPCError):
    """The remote procedure ran and answered with a <fault>."""
    code: int = 0

    @property
    def fault_code(self) -> int:
        return self.code

    @property
    def fault_string(self) -> str:
        return self.message

    @property
    def well_known(self) -> Optional[str]:
        return FAULT_CODES.get(self.code)

    def to_dict(self):
        return {"faultCode": self.code, "faultString": self.message}

    def __str__(self):
        base = f"<Fault {self.code}: {self.message!r}>"
        if self.well_known:
            return f"{base} ({self.well_known})"
        return base
