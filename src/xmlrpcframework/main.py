# xmlrpcframework/main.py
import argparse
import json
import sys
from pprint import pprint

from xmlrpcframework.client.client import Client, ClientSettings
from xmlrpcframework.config.default import DEFAULT_TIMEOUT
from xmlrpcframework.errors import RemoteFault, XMLRPCError


def _parse_arg(raw: str):
    # JSON literals when they parse, plain strings otherwise
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xmlrpc-call",
        description="Call a method on an XML-RPC endpoint (http://, https:// or scgi://).",
    )
    parser.add_argument("address", help="endpoint, e.g. http://127.0.0.1:8000/RPC2 or scgi://127.0.0.1:5000/")
    parser.add_argument("method", help="remote method name, e.g. system.listMethods")
    parser.add_argument("args", nargs="*", type=_parse_arg, help="arguments, parsed as JSON when possible")
    parser.add_argument("--insecure", action="store_true", help="skip TLS certificate verification")
    parser.add_argument("--allow-none", action="store_true", help="send None as <nil/>")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="I/O timeout in seconds")
    return parser


def main(argv: list[str] | None = None) -> int:
    options = build_parser().parse_args(argv)
    settings = ClientSettings(timeout=options.timeout, allow_none=options.allow_none)

    try:
        with Client(options.address, options.insecure, settings) as client:
            result = client.call(options.method, *options.args)
    except RemoteFault as e:
        print(f"Fault: {e}", file=sys.stderr)
        return 1
    except XMLRPCError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 2

    pprint(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
