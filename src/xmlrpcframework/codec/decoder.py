# xmlrpcframework/codec/decoder.py
import base64
import binascii
import math
import re
from typing import Any, List

from lxml.etree import QName, XMLParser, XMLSyntaxError, _Element, fromstring, tostring
from pydantic import ValidationError

from xmlrpcframework.errors import (
    MalformedFault,
    MalformedResponse,
    MalformedValue,
    UnknownType,
)
from xmlrpcframework.schemas import Fault, MethodResponse
from xmlrpcframework.values import INT_TAGS, WireType, parse_datetime

FRAGMENT_LIMIT = 200

# ASCII digits only: int() and float() also take "1_000", other scripts' digits, "nan"
INT_RE = re.compile(r"[+-]?[0-9]+")
DOUBLE_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _parser() -> XMLParser:
    # lxml parsers are not thread-safe; build one per document
    return XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=False,
    )


def _tag(el: _Element) -> str:
    return QName(el).localname


def _children(el: _Element) -> List[_Element]:
    return [child for child in el if isinstance(child.tag, str)]


def _fragment(el: _Element) -> str:
    return tostring(el, encoding="unicode", with_tail=False)[:FRAGMENT_LIMIT]


def _only_child(el: _Element, expected: str) -> _Element:
    children = _children(el)
    if len(children) != 1 or _tag(children[0]) != expected:
        found = [_tag(c) for c in children]
        raise MalformedResponse(
            f"<{_tag(el)}> must hold exactly one <{expected}>, found {found}",
            fragment=_fragment(el),
        )
    return children[0]


# ──────────────────────────────────────────────────────────────
# Values
# ──────────────────────────────────────────────────────────────
def decode_value(el: _Element) -> Any:
    """Decode a <value> element into its Python representation."""
    children = _children(el)
    if not children:
        # untyped <value> defaults to string
        return el.text or ""
    if len(children) > 1:
        raise MalformedValue(
            "<value> must hold a single typed element",
            tag="value", text=_fragment(el), fragment=_fragment(el),
        )

    typed = children[0]
    tag = _tag(typed)
    text = typed.text or ""

    if tag in INT_TAGS:
        if not INT_RE.fullmatch(text.strip()):
            raise MalformedValue("not an integer", tag=tag, text=text)
        return int(text.strip())
    if tag == WireType.BOOLEAN:
        flag = text.strip()
        if flag not in ("0", "1"):
            raise MalformedValue("boolean must be 0 or 1", tag=tag, text=text)
        return flag == "1"
    if tag == WireType.STRING:
        return text
    if tag == WireType.DOUBLE:
        number = float(text.strip()) if DOUBLE_RE.fullmatch(text.strip()) else math.nan
        if not math.isfinite(number):
            raise MalformedValue("not a finite double", tag=tag, text=text)
        return number
    if tag == WireType.DATETIME:
        try:
            return parse_datetime(text)
        except ValueError:
            raise MalformedValue("not a dateTime.iso8601", tag=tag, text=text) from None
    if tag == WireType.BASE64:
        try:
            return base64.b64decode("".join(text.split()), validate=True)
        except (binascii.Error, ValueError):
            raise MalformedValue("invalid base64 payload", tag=tag, text=text) from None
    if tag == WireType.ARRAY:
        return _decode_array(typed)
    if tag == WireType.STRUCT:
        return _decode_struct(typed)
    if tag == WireType.NIL:
        return None

    raise UnknownType("unknown XML-RPC type", tag=tag, text=_fragment(typed))


def _decode_array(el: _Element) -> list:
    children = _children(el)
    if len(children) != 1 or _tag(children[0]) != "data":
        raise MalformedValue("<array> must hold a single <data>", tag="array", text=_fragment(el))
    items = []
    for child in _children(children[0]):
        if _tag(child) != "value":
            raise MalformedValue("<data> may only hold <value>", tag="data", text=_fragment(child))
        items.append(decode_value(child))
    return items


def _decode_struct(el: _Element) -> dict:
    result = {}
    for member in _children(el):
        if _tag(member) != "member":
            raise MalformedValue("<struct> may only hold <member>", tag="struct", text=_fragment(member))
        children = _children(member)
        parts = {_tag(part): part for part in children}
        if len(children) != 2 or set(parts) != {"name", "value"}:
            raise MalformedValue("<member> needs one <name> and one <value>", tag="member", text=_fragment(member))
        result[parts["name"].text or ""] = decode_value(parts["value"])
    return result


# ──────────────────────────────────────────────────────────────
# Responses
# ──────────────────────────────────────────────────────────────
def _decode_fault(el: _Element) -> Fault:
    value = _only_child(el, "value")
    decoded = decode_value(value)
    if not isinstance(decoded, dict):
        raise MalformedFault("fault value must be a struct", fragment=_fragment(el))
    try:
        return Fault.model_validate(decoded)
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise MalformedFault(f"invalid fault members: {missing}", fragment=_fragment(el)) from e


def decode_response(body: bytes) -> MethodResponse:
    """
    Parse a <methodResponse> document.

    Returns a MethodResponse holding either the single result value or a
    Fault. Structural problems raise MalformedResponse (or one of its
    subclasses); nothing partially decoded is ever returned.
    """
    if not body or not body.strip():
        raise MalformedResponse("empty response body")
    try:
        root = fromstring(body, _parser())
    except XMLSyntaxError as e:
        raise MalformedResponse(
            f"response is not well-formed XML: {e}",
            fragment=body[:FRAGMENT_LIMIT].decode("utf-8", "replace"),
        ) from e

    if _tag(root) != "methodResponse":
        raise MalformedResponse(f"unexpected root element <{_tag(root)}>", fragment=_fragment(root))

    children = _children(root)
    if len(children) != 1:
        raise MalformedResponse(
            "<methodResponse> must hold exactly one <params> or <fault>",
            fragment=_fragment(root),
        )
    body_el = children[0]
    match _tag(body_el):
        case "fault":
            return MethodResponse(fault=_decode_fault(body_el))
        case "params":
            param = _only_child(body_el, "param")
            return MethodResponse(value=decode_value(_only_child(param, "value")))
        case other:
            raise MalformedResponse(f"unexpected element <{other}>", fragment=_fragment(body_el))
