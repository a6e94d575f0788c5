"""Command-line entry point for managing stored flows."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .config.settings import get_settings
from .core.exceptions import InvalidFlowNameError
from .flowchart.editor import View
from .flowchart.model import ActionData, ModuleData
from .flowchart.status import compute_module_status
from .storage.bridge import PersistenceBridge
from .storage.repository import FileFlowRepository
from .utils.logging import configure_logging


def build_bridge() -> PersistenceBridge:
    settings = get_settings()
    return PersistenceBridge(
        FileFlowRepository(settings.flows_dir),
        autosave_delay=settings.autosave_delay,
    )


def cmd_list(bridge: PersistenceBridge, args: argparse.Namespace) -> int:
    for name in bridge.refresh_list():
        print(name)
    return 0


def cmd_create(bridge: PersistenceBridge, args: argparse.Namespace) -> int:
    try:
        name = bridge.create_flow(args.name)
    except InvalidFlowNameError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    print(name)
    return 0


def cmd_delete(bridge: PersistenceBridge, args: argparse.Namespace) -> int:
    bridge.delete_flow(args.name)
    return 0


def cmd_show(bridge: PersistenceBridge, args: argparse.Namespace) -> int:
    if not bridge.load_flow(args.name):
        print(f"Error: cannot read flow '{args.name}'", file=sys.stderr)
        return 1

    document = bridge.editor.document
    index = bridge.editor.submodule_index()
    print(f"Flow: {args.name}")
    print(
        f"  process: {len(document.process.nodes)} nodes, {len(document.process.edges)} edges"
    )
    print(f"  modules: {len(document.modules.nodes)} nodes, {len(index)} sub-modules")

    for node in document.modules.nodes:
        if not isinstance(node.data, ModuleData):
            continue
        category = f" [{node.data.category}]" if node.data.category else ""
        status = compute_module_status(node.data).value
        print(f"  module {node.id}{category}: {node.data.label} ({status})")

    for node in document.process.nodes:
        if not isinstance(node.data, ActionData):
            continue
        linked = index.linked(node)
        target = f"{linked.module_label} / {linked.label}" if linked else "unlinked"
        print(f"  action {node.id} -> {target}")
    return 0


def cmd_arrange(bridge: PersistenceBridge, args: argparse.Namespace) -> int:
    if not bridge.load_flow(args.name):
        print(f"Error: cannot read flow '{args.name}'", file=sys.stderr)
        return 1
    bridge.editor.arrange(View(args.view))
    bridge.flush()
    print(f"Arranged {args.view} view of '{args.name}'")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flowtool", description="Manage stored flows")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List stored flows").set_defaults(func=cmd_list)

    create = sub.add_parser("create", help="Create an empty flow")
    create.add_argument("name")
    create.set_defaults(func=cmd_create)

    delete = sub.add_parser("delete", help="Delete a flow")
    delete.add_argument("name")
    delete.set_defaults(func=cmd_delete)

    show = sub.add_parser("show", help="Summarize a flow")
    show.add_argument("name")
    show.set_defaults(func=cmd_show)

    arrange = sub.add_parser("arrange", help="Auto-arrange a flow and save it")
    arrange.add_argument("name")
    arrange.add_argument(
        "--view", choices=[view.value for view in View], default=View.PROCESS.value
    )
    arrange.set_defaults(func=cmd_arrange)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    bridge = build_bridge()
    try:
        return args.func(bridge, args)
    finally:
        bridge.close()


if __name__ == "__main__":
    sys.exit(main())
