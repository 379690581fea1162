"""CLI tool for inspecting how target types are presented to the model."""

import argparse
import importlib
import json
import sys
import warnings
from pathlib import Path
from typing import Any

from .exceptions import UnsupportedTypeError
from .prompt import SynthesisRequest, render_user_prompt
from .schema import build_schema

_SAMPLE_FAILURE = "RuntimeError: operation failed"


def _ensure_importable(root: Path) -> None:
    """Ensure project root is on sys.path."""
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


def resolve_type(ref: str) -> Any:
    """Resolve a 'module.path:TypeName' reference to the named type.

    Dotted attribute paths after the colon (``module:Outer.Inner``) are followed.

    Raises:
        ValueError: The reference is malformed or does not resolve.
    """
    if ":" not in ref:
        raise ValueError(f"'{ref}' must look like module.path:TypeName")
    module_name, attr_path = ref.split(":", maxsplit=1)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", SyntaxWarning)
            obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"cannot import module '{module_name}': {e}") from e
    for attr in attr_path.split("."):
        if not hasattr(obj, attr):
            raise ValueError(f"'{module_name}' has no attribute '{attr_path}'")
        obj = getattr(obj, attr)
    return obj


def _load(args: argparse.Namespace) -> Any:
    _ensure_importable(args.root)
    return resolve_type(args.type)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_schema(args: argparse.Namespace) -> int:
    """Print the JSON schema sent to the model."""
    print(json.dumps(build_schema(_load(args)).to_json_schema(), indent=2, ensure_ascii=False))
    return 0


def _cmd_default(args: argparse.Namespace) -> int:
    """Print the deterministic default returned when synthesis is exhausted."""
    print(json.dumps(build_schema(_load(args)).default_instance(), indent=2, ensure_ascii=False))
    return 0


def _cmd_preview(args: argparse.Namespace) -> int:
    """Render the first-attempt prompt for a sample failure."""
    target = _load(args)
    request = SynthesisRequest(
        output_schema=build_schema(target),
        operation_name=args.operation,
        arguments=tuple(_parse_argument(item) for item in args.arg),
        failure_reason=args.failure,
    )
    print(render_user_prompt(request))
    return 0


def _parse_argument(item: str) -> tuple[str, str]:
    name, sep, value = item.partition("=")
    if not sep:
        raise ValueError(f"argument '{item}' must look like name=value")
    return name.strip(), value.strip()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for schema inspection."""
    parser = argparse.ArgumentParser(prog="unwrap-or-ai", description="Inspect synthesis schemas and prompts")
    subparsers = parser.add_subparsers(dest="command")

    # schema
    schema_parser = subparsers.add_parser("schema", help="Print the JSON schema of a type")
    schema_parser.add_argument("type", help="Target type as module.path:TypeName")
    schema_parser.add_argument("--root", type=Path, default=Path.cwd(), help="Project root added to sys.path")

    # default
    default_parser = subparsers.add_parser("default", help="Print the deterministic default instance of a type")
    default_parser.add_argument("type", help="Target type as module.path:TypeName")
    default_parser.add_argument("--root", type=Path, default=Path.cwd(), help="Project root added to sys.path")

    # preview
    preview_parser = subparsers.add_parser("preview", help="Render the prompt for a sample failure")
    preview_parser.add_argument("type", help="Target type as module.path:TypeName")
    preview_parser.add_argument("--operation", default="operation", help="Name of the failed operation")
    preview_parser.add_argument("--failure", default=_SAMPLE_FAILURE, help="Failure reason shown to the model")
    preview_parser.add_argument("--arg", action="append", default=[], metavar="NAME=VALUE", help="Call argument (repeatable)")
    preview_parser.add_argument("--root", type=Path, default=Path.cwd(), help="Project root added to sys.path")

    args = parser.parse_args(argv)

    handlers = {"schema": _cmd_schema, "default": _cmd_default, "preview": _cmd_preview}
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except (ValueError, UnsupportedTypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


__all__ = ["main", "resolve_type"]
