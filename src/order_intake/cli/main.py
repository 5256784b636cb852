from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Dict, Optional, Sequence

from ..config import PATTERN_BACKENDS, build_intake_config
from ..errors import OrderIntakeError, OrderSubmissionError
from ..intake import build_service
from ..intake.patterns import open_repository
from ..logging import get_logger

LOG = get_logger("cli-main")


def _add_store_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--patterns", help="Pattern store path (defaults to env/.env, then var/patterns/)")
    p.add_argument("--pattern-backend", choices=PATTERN_BACKENDS, help="Pattern store backend (default: json)")
    p.add_argument("--catalog", help="Product catalog JSON file (defaults to env/.env)")


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, "r", encoding="utf-8") as f:
        return f.read()


def _parse_mapping(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Accept inline JSON or a path to a JSON file."""
    if not raw:
        return None
    if os.path.isfile(raw):
        with open(raw, "r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("mapping must be a JSON object")
    return data


def _parse_overrides(pairs: Optional[Sequence[str]]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"override {pair!r} is not FIELD=VALUE")
        overrides[key.strip()] = value
    return overrides


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _handle_analyze(ns: argparse.Namespace) -> int:
    config = build_intake_config(ns, script_dir=os.getcwd())
    service = build_service(config)
    analysis = service.analyze(_read_text(ns.text))
    _print_json(analysis.to_dict())
    return 0


def _handle_confirm(ns: argparse.Namespace) -> int:
    try:
        mapping = _parse_mapping(ns.mapping)
        overrides = _parse_overrides(ns.overrides)
    except ValueError as e:
        LOG.error(f"Invalid confirm arguments: {e}")
        return 2
    config = build_intake_config(ns, script_dir=os.getcwd())
    service = build_service(config)
    try:
        result = service.confirm(_read_text(ns.text), mapping, overrides)
    except OrderSubmissionError as e:
        LOG.error(f"Order was not submitted: {e}")
        return 1
    _print_json(result.to_dict())
    if result.save_error:
        LOG.warning("Order submitted but learned patterns were not saved.")
    return 0


def _handle_patterns_show(ns: argparse.Namespace) -> int:
    config = build_intake_config(ns, script_dir=os.getcwd())
    store = open_repository(config.pattern_backend, config.pattern_path).load()
    _print_json(store.to_dict())
    return 0


def _handle_patterns_path(ns: argparse.Namespace) -> int:
    config = build_intake_config(ns, script_dir=os.getcwd())
    print(config.pattern_path)
    return 0


def _handle_serve(ns: argparse.Namespace) -> int:
    from ..intake.frontend.app import create_app
    import uvicorn

    allow_origins = ns.allow_origins
    if allow_origins and len(allow_origins) == 1 and allow_origins[0] == "*":
        allow_origins = ["*"]

    config = build_intake_config(ns, script_dir=os.getcwd())
    app = create_app(build_service(config), allow_origins=allow_origins)
    uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.info(f"Order intake CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="order-intake",
        description="Turn pasted free-text orders into structured orders and learn from confirmations.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Map and extract a pasted order without saving anything.")
    analyze.add_argument("--text", required=True, help="Path to the pasted text ('-' reads stdin)")
    _add_store_args(analyze)
    analyze.set_defaults(handler=_handle_analyze)

    confirm = subparsers.add_parser("confirm", help="Confirm a mapping, learn from it and submit the order.")
    confirm.add_argument("--text", required=True, help="Path to the pasted text ('-' reads stdin)")
    confirm.add_argument("--mapping", help="Confirmed mapping as JSON or a JSON file; defaults to the auto-mapping")
    confirm.add_argument(
        "--set",
        action="append",
        dest="overrides",
        metavar="FIELD=VALUE",
        help="Operator override (repeatable), e.g. --set deliveryFee=3000",
    )
    confirm.add_argument("--sink-url", help="Order API base URL (defaults to env/.env; else a local JSONL log)")
    _add_store_args(confirm)
    confirm.set_defaults(handler=_handle_confirm)

    patterns = subparsers.add_parser("patterns", help="Inspect the learned pattern store.")
    patterns_sub = patterns.add_subparsers(dest="patterns_cmd", required=True)
    show = patterns_sub.add_parser("show", help="Print all learned signatures as JSON")
    _add_store_args(show)
    show.set_defaults(handler=_handle_patterns_show)
    path = patterns_sub.add_parser("path", help="Print the resolved pattern store location")
    _add_store_args(path)
    path.set_defaults(handler=_handle_patterns_path)

    serve = subparsers.add_parser("serve", help="Run the intake HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8002)
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.add_argument("--sink-url", help="Order API base URL (defaults to env/.env; else a local JSONL log)")
    _add_store_args(serve)
    serve.set_defaults(handler=_handle_serve)

    args = parser.parse_args(provided)
    try:
        code = args.handler(args)
    except (OrderIntakeError, OSError) as e:
        LOG.error(f"Subcommand '{args.command}' failed: {e}")
        code = 1
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
