"""Command line interface for modelbake."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .logging import configure_logging, step
from .reporting import (
    set_reporter,
    get_reporter,
    PlainReporter,
    JsonLinesReporter,
    SilentReporter,
    RichReporter,
    set_verbosity,
)
from .api import BakeOptions, build_pak, inspect_pak, validate_pak
from .pak.errors import PakError


def _bake_cmd(args: argparse.Namespace) -> int:
    opts = BakeOptions(
        project_dir=args.project,
        assets=list(args.assets),
        output_path=args.output,
        manifest_path=args.emit_manifest,
    )
    build_pak(opts)
    return 0


def _inspect_cmd(args: argparse.Namespace) -> int:
    step(f"inspecting {args.pak.name}")
    info = inspect_pak(args.pak)
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True))
        return 0
    rep.section("Models")
    for m in info["models"]:
        rep.status(
            f"[{m['id']}] {m['key']} index_type={m['index_type']} "
            + f"meshes={len(m['meshes'])} indices={m['index_count']} "
            + f"vertices={m['vertex_count']}"
        )
    rep.summary(
        "inspect",
        file_size=info["file_size"],
        models=len(info["models"]),
        crc_ok=info["footer"]["crc_ok"],
    )
    return 0


def _validate_cmd(args: argparse.Namespace) -> int:
    step(f"validating {args.pak.name}")
    issues = validate_pak(args.pak)
    rep = get_reporter()
    for issue in issues:
        rep.error(issue)
    if issues:
        return 1
    rep.status(f"{args.pak.name}: ok")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="modelbake", description="Offline glTF model compiler"
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=["plain", "rich", "json", "silent"],
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    b = sub.add_parser("bake", help="Bake model assets into a pak")
    b.add_argument("project", type=Path, help="Project root directory")
    b.add_argument(
        "assets",
        type=Path,
        nargs="+",
        help="Model asset descriptors (relative to the project or absolute)",
    )
    b.add_argument("-o", "--output", type=Path, required=True)
    b.add_argument(
        "--emit-manifest",
        dest="emit_manifest",
        type=Path,
        help="Optional path to write manifest JSON (opt-in)",
    )
    b.set_defaults(func=_bake_cmd)

    i = sub.add_parser("inspect", help="Inspect a pak file")
    i.add_argument("pak", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON summary")
    i.set_defaults(func=_inspect_cmd)

    v = sub.add_parser("validate", help="Validate a pak file")
    v.add_argument("pak", type=Path)
    v.set_defaults(func=_validate_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    requested = args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich":
        if sys.stderr.isatty():
            set_reporter(RichReporter())
        else:
            # Fallback quietly to plain if no TTY
            set_reporter(PlainReporter())
    else:  # plain
        set_reporter(PlainReporter())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except PakError as e:
        get_reporter().error(f"{e.code}: {e.message}", **(e.context or {}))
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
