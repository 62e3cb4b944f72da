"""Command line entry point for wavepanel (headless + GUI)."""
from __future__ import annotations

import argparse
import json
import sys
from typing import List

from .config import CONFIG_PATH, load_config, save_config
from .derived import sweep_points
from .deps import HAVE_PYVISA, HAVE_QT, INSTALL_HINTS, dep_msg, list_visa_resources
from .errors import ConfigurationError, DeviceCommunicationError, ParseError
from .features import FEATURES, get_feature
from .logging import get_logger, setup_logging
from .units import DEFAULT_REGISTRY, format_quantity, parse_number

# -------------------- Command Handlers -----------------------------------


def _cmd_units(args):
    try:
        family = DEFAULT_REGISTRY.family(args.family)
        value = parse_number(args.value)
        if args.unit is not None:
            unit = DEFAULT_REGISTRY.lookup(args.unit)
            if unit not in family:
                raise ConfigurationError(f"Unit '{unit.name}' not in family '{family.name}'")
            value = DEFAULT_REGISTRY.to_base(value, unit)
    except (ParseError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print(format_quantity(value, family, DEFAULT_REGISTRY, args.min_decimals))
    return 0


def _cmd_features(args):
    if args.name:
        try:
            d = get_feature(args.name)
        except KeyError as e:
            print(f"Error: {e.args[0]}", file=sys.stderr)
            return 2
        print(f"{d.name}: {d.title}")
        print(f"  state query: {d.state_query}")
        for tpl in d.activate:
            print(f"  on:  {tpl}")
        for tpl in d.deactivate:
            print(f"  off: {tpl}")
        if d.trigger:
            print(f"  trigger: {d.trigger}")
        for c in d.choices:
            print(f"  [{c.id}] {c.label}: {', '.join(c.tags())}  {c.command or '(local)'}")
        for f in d.fields:
            rng = ""
            if f.minimum is not None or f.maximum is not None:
                rng = f" [{f.minimum}, {f.maximum}]"
            print(f"  {f.id} ({f.family.base or '-'}){rng}: {f.command or '(local)'}")
        return 0
    for name, d in FEATURES.items():
        print(f"{name:10s} {d.title}")
    return 0


def _cmd_sweep(args):
    try:
        freqs = sweep_points(args.start, args.stop, args.points, args.mode)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    for f in freqs:
        print(float(f))
    return 0


def _cmd_diag(_args):
    print("Dependency status:", dep_msg())
    if HAVE_PYVISA:
        try:
            resources = list_visa_resources()
            print("VISA:", ", ".join(resources) if resources else "(none)")
        except Exception as e:  # pragma: no cover
            print("VISA error:", e)
    else:
        print("pyvisa missing ->", INSTALL_HINTS["pyvisa"])
    if not HAVE_QT:
        print("PySide6 missing ->", INSTALL_HINTS["pyside6"])
    return 0


def _cmd_config_dump(_args):
    cfg = load_config()
    print(json.dumps(cfg, indent=2, sort_keys=True))
    return 0


def _cmd_config_reset(_args):
    try:
        save_config({})
        print("Config reset ->", CONFIG_PATH)
        return 0
    except OSError as e:  # pragma: no cover
        print("Config reset error:", e, file=sys.stderr)
        return 3


def _cmd_refresh(args):
    from .device import VisaDeviceProxy
    from .session import PanelSession

    cfg = dict(load_config())
    if args.channel is not None:
        cfg["active_channel"] = args.channel
    try:
        feature = get_feature(args.feature)
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return 2
    proxy = VisaDeviceProxy(args.resource or cfg.get("visa_resource"),
                            timeout_ms=int(cfg.get("visa_timeout_ms", 5000)))
    try:
        idn = proxy.connect()
    except DeviceCommunicationError as e:
        print(f"Connect failed: {e}", file=sys.stderr)
        return 3
    try:
        session = PanelSession(proxy, cfg=cfg, features=[feature])
        ctrl = session[feature.name]
        ctrl.refresh()
        print(idn)
        print(f"{feature.title} on CH{ctrl.active_channel}: "
              f"{'ON' if ctrl.is_enabled else 'OFF'}")
        if ctrl.is_enabled:
            for c in ctrl.choices.values():
                if ctrl.is_item_active(c.id):
                    print(f"  {c.label}: {c.definition.label_for(c.selected_tag)}")
            for f in ctrl.fields.values():
                if ctrl.is_item_active(f.id):
                    print(f"  {f.label}: {f.display()}")
            for r in feature.readouts:
                print(f"  {r.label}: {ctrl.readout(r.id)}")
        session.close()
    finally:
        proxy.disconnect()
    return 0


def _cmd_gui(_args):
    if not HAVE_QT:
        print("GUI not available (PySide6 missing). Install with extras:",
              INSTALL_HINTS["pyside6"], file=sys.stderr)
        return 4
    from .gui import run_gui

    return run_gui()


# -------------------- Main / Argparse ------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wavepanel",
        description="Parameter panel for SCPI waveform generators (headless + GUI).",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd")

    sp = sub.add_parser("units", help="Auto-range a value for display")
    sp.add_argument("value")
    sp.add_argument("--family", default="frequency",
                    choices=[f.name for f in DEFAULT_REGISTRY.families()])
    sp.add_argument("--unit", default=None, help="Unit of VALUE (default: family base)")
    sp.add_argument("--min-decimals", type=int, default=0)
    sp.set_defaults(func=_cmd_units)

    sp = sub.add_parser("features", help="List feature tables")
    sp.add_argument("name", nargs="?", help="Show one feature in detail")
    sp.set_defaults(func=_cmd_features)

    sp = sub.add_parser("sweep", help="Frequencies a sweep visits (stdout)")
    sp.add_argument("--start", type=float, required=True)
    sp.add_argument("--stop", type=float, required=True)
    sp.add_argument("--points", type=int, required=True)
    sp.add_argument("--mode", choices=["LIN", "LOG"], default="LIN")
    sp.set_defaults(func=_cmd_sweep)

    sp = sub.add_parser("diag", help="Show dependency/VISA status")
    sp.set_defaults(func=_cmd_diag)

    sp = sub.add_parser("config-dump", help="Print current persisted config JSON")
    sp.set_defaults(func=_cmd_config_dump)

    sp = sub.add_parser("config-reset", help="Reset config to defaults")
    sp.set_defaults(func=_cmd_config_reset)

    sp = sub.add_parser("refresh", help="Read one feature's settings from the generator")
    sp.add_argument("feature", choices=list(FEATURES))
    sp.add_argument("--resource", default=None, help="VISA resource (default: config)")
    sp.add_argument("--channel", type=int, default=None)
    sp.set_defaults(func=_cmd_refresh)

    sp = sub.add_parser("gui", help="Launch Qt GUI (if available)")
    sp.set_defaults(func=_cmd_gui)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    # No args: show help and exit 2 (argparse error convention)
    if argv is None and len(sys.argv) == 1:
        parser.print_help(sys.stderr)
        return 2
    if argv is not None and len(argv) == 0:
        parser.print_help(sys.stderr)
        return 2
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)
    log = get_logger()
    log.debug("Args: %s", args)
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return 2
    rc = args.func(args)
    log.debug("Exit code: %s", rc)
    return rc


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
