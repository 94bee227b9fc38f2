from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import yaml

from . import __version__
from .actions.provider import InMemoryActionMaps, load_action_maps
from .bindings.models import BindingSlot
from .bindings.paths import human_label
from .config import load_rebind_config
from .context import InputContext
from .exceptions import ValidationRejected
from .logging_config import configure_logging
from .rebind.session import RebindState

logger = logging.getLogger(__name__)

EXIT_REJECTED = 2


def _context(args: argparse.Namespace, actions: Optional[InMemoryActionMaps] = None) -> InputContext:
    if actions is None:
        actions = load_action_maps(args.actions)
    config = load_rebind_config(args.config)
    data_dir = Path(args.data_dir) if args.data_dir else None
    return InputContext.bootstrap(actions, config=config, data_dir=data_dir)


def _slot(text: str) -> BindingSlot:
    try:
        return BindingSlot.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _cmd_show(args: argparse.Namespace) -> int:
    ctx = _context(args)
    orch = ctx.orchestrator
    for entry in orch.all_entries():
        path = orch.binding_for(entry.slot) or ""
        print(f"{str(entry.slot):<32} {entry.label:<16} {human_label(path):<16} {path}")
    print(f"autosave: {'on' if orch.auto_save else 'off'}")
    return 0


def _cmd_diff(args: argparse.Namespace) -> int:
    ctx = _context(args)
    defaults = ctx.defaults.defaults
    changed = ctx.store.diff(defaults) if defaults is not None else list(ctx.store)
    for record in changed:
        default = defaults.find(record.slot) if defaults is not None else None
        before = default.path if default is not None else "-"
        print(f"{record.slot}: {before} -> {record.path}")
    if not changed:
        print("No changes from defaults.")
    return 0


def _cmd_bind(args: argparse.Namespace) -> int:
    ctx = _context(args)
    try:
        record = ctx.orchestrator.assign(args.slot, args.path)
    except ValidationRejected as exc:
        print(f"Rejected: {exc.reason}")
        return EXIT_REJECTED
    if not ctx.orchestrator.auto_save:
        ctx.orchestrator.save_confirmed_changes()
    print(f"{record.slot} => {human_label(record.path)} ({record.path})")
    return 0


def _cmd_capture(args: argparse.Namespace) -> int:
    """Run an interactive session fed from the command line, one event per tick."""
    ctx = _context(args)
    orch = ctx.orchestrator
    session = orch.start_rebind(args.slot)
    if session is None:
        print(f"{args.slot} cannot be rebound")
        return 1
    with session:
        for control in args.inputs:
            orch.feed(control)
            orch.update(args.tick)
        while session.listening and session.pending:
            orch.update(args.tick)
    if session.state is RebindState.COMMITTED:
        if not orch.auto_save:
            orch.save_confirmed_changes()
        print(f"{args.slot} => {orch.label_for(args.slot)}")
        return 0
    if session.state is RebindState.REJECTED:
        print(f"Rejected: {session.reason}")
        return EXIT_REJECTED
    print(f"Canceled: {session.reason}")
    return 1


def _cmd_reset(args: argparse.Namespace) -> int:
    ctx = _context(args)
    orch = ctx.orchestrator
    if args.slot is not None:
        ok = orch.reset_one(args.slot)
    else:
        ok = True
        for action_map in orch.action_maps:
            orch.select_action_map(action_map)
            ok = orch.reset_all_to_default() and ok
    if not ok:
        print("Default keybinds could not be read; nothing was reset.")
        return 1
    if not orch.auto_save:
        orch.save_confirmed_changes()
    print("Keybinds reset to default.")
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    actions = load_action_maps(args.actions)
    _context(args, actions)
    text = yaml.safe_dump({"maps": actions.to_definition()}, sort_keys=False)
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        print(f"Wrote {out_path}")
    else:
        print(text, end="")
    return 0


def _cmd_autosave(args: argparse.Namespace) -> int:
    ctx = _context(args)
    enabled = ctx.orchestrator.toggle_auto_save()
    ctx.orchestrator.save_confirmed_changes()
    print(f"autosave: {'on' if enabled else 'off'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rebindkit", description="Inspect and edit persisted keybinds")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--actions", required=True, help="Action-map definition (YAML)")
    p.add_argument("--config", default=None, help="Rebind config overrides (YAML)")
    p.add_argument("--data-dir", default=None, help="Storage root (defaults to the platform data dir)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("show", help="List every bindable slot and its binding")
    s.set_defaults(func=_cmd_show)

    d = sub.add_parser("diff", help="List keybinds that differ from the defaults")
    d.set_defaults(func=_cmd_diff)

    b = sub.add_parser("bind", help="Assign a binding path to a slot")
    b.add_argument("slot", type=_slot, help="Map/Action[/part]")
    b.add_argument("path", help="Binding path, e.g. <Keyboard>/k")
    b.set_defaults(func=_cmd_bind)

    c = sub.add_parser("capture", help="Simulate an interactive rebind with the given input events")
    c.add_argument("slot", type=_slot, help="Map/Action[/part]")
    c.add_argument("inputs", nargs="+", help="Control paths in the order they are pressed")
    c.add_argument("--tick", type=float, default=1.0 / 60.0, help="Seconds per simulated frame")
    c.set_defaults(func=_cmd_capture)

    r = sub.add_parser("reset", help="Reset one slot, or everything, to the defaults")
    r.add_argument("slot", type=_slot, nargs="?", default=None, help="Map/Action[/part]")
    r.set_defaults(func=_cmd_reset)

    e = sub.add_parser("export", help="Write the action maps with the current keybinds folded in")
    e.add_argument("--out", help="Optional output file (YAML)")
    e.set_defaults(func=_cmd_export)

    a = sub.add_parser("autosave", help="Toggle keybind autosave")
    a.set_defaults(func=_cmd_autosave)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.WARNING, debug=args.debug)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
