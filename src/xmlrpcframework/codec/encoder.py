# xmlrpcframework/codec/encoder.py
import base64
from contextlib import contextmanager
from typing import Any, Iterable

from lxml.builder import E
from lxml.etree import _Element, tostring
from pydantic import ValidationError

from xmlrpcframework.errors import EncodingError, UnsupportedType
from xmlrpcframework.schemas import MethodCall
from xmlrpcframework.values import WireType, format_datetime, struct_items, wire_type

XML_DECLARATION = b'<?xml version="1.0"?>\n'


def _text_element(tag: str, text: str, path: str) -> _Element:
    # lxml escapes markup characters itself, but refuses control characters
    try:
        return E(tag, text)
    except ValueError as e:
        raise EncodingError(f"{tag} is not XML compatible: {e}", path=path) from e


def _escape_quotes(doc: bytes) -> bytes:
    # lxml leaves quotes raw in text; the document carries no attributes,
    # so every quote left in the output is character data
    return doc.replace(b'"', b"&quot;").replace(b"'", b"&apos;")


class _Marshaller:
    """Builds <value> elements, tracking open containers to reject cycles."""

    def __init__(self, allow_none: bool = False):
        self.allow_none = allow_none
        self._memo: set[int] = set()

    def value(self, obj: Any, path: str) -> _Element:
        try:
            kind = wire_type(obj, self.allow_none)
        except UnsupportedType as e:
            e.path = path
            raise
        return E.value(self._typed(kind, obj, path))

    def _typed(self, kind: WireType, obj: Any, path: str) -> _Element:
        match kind:
            case WireType.BOOLEAN:
                return E.boolean("1" if obj else "0")
            case WireType.INT:
                return E.int(str(int(obj)))
            case WireType.STRING:
                return _text_element("string", obj, path)
            case WireType.DOUBLE:
                return E.double(repr(float(obj)))
            case WireType.DATETIME:
                return E(WireType.DATETIME.value, format_datetime(obj))
            case WireType.BASE64:
                return E.base64(base64.b64encode(bytes(obj)).decode("ascii"))
            case WireType.NIL:
                return E.nil()
            case WireType.ARRAY:
                with self._container(obj, path):
                    items = [self.value(item, f"{path}[{i}]") for i, item in enumerate(obj)]
                return E.array(E.data(*items))
            case WireType.STRUCT:
                with self._container(obj, path):
                    members = []
                    try:
                        for name, member in struct_items(obj):
                            members.append(E.member(
                                _text_element("name", name, path),
                                self.value(member, f"{path}[{name!r}]"),
                            ))
                    except UnsupportedType as e:
                        e.path = e.path or path
                        raise
                return E.struct(*members)

    @contextmanager
    def _container(self, obj: Any, path: str):
        if id(obj) in self._memo:
            raise EncodingError("cannot marshal recursive containers", path=path)
        self._memo.add(id(obj))
        try:
            yield
        finally:
            self._memo.discard(id(obj))


def encode_value(value: Any, *, allow_none: bool = False) -> _Element:
    """Encode a single Python value into a <value> element."""
    return _Marshaller(allow_none).value(value, "value")


def encode_request(name: str, args: Iterable[Any] = (), *, allow_none: bool = False) -> bytes:
    """
    Serialize a method name and its positional arguments into a
    <methodCall> document. Raises EncodingError (or its UnsupportedType
    subclass) carrying the position of the offending argument.
    """
    try:
        call = MethodCall(method_name=name, params=list(args))
    except ValidationError as e:
        raise EncodingError(f"invalid method call: {e.errors()[0]['msg']}") from e

    marshaller = _Marshaller(allow_none)
    params = []
    for position, arg in enumerate(call.params):
        try:
            params.append(E.param(marshaller.value(arg, f"args[{position}]")))
        except EncodingError as e:
            e.position = position
            raise
        except RecursionError as e:
            raise EncodingError(
                "value nested too deeply", position=position, path=f"args[{position}]"
            ) from e

    root = E.methodCall(
        _text_element("methodName", call.method_name, "methodName"),
        E.params(*params),
    )
    return XML_DECLARATION + _escape_quotes(
        tostring(root, encoding="UTF-8", xml_declaration=False)
    )
