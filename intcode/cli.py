#!/usr/bin/env python3
"""
intcode CLI — run, network and inspect comma-separated Intcode programs
Commands: run · network · amplify · disasm · version
"""

import argparse
import logging
import sys

from intcode import __version__
from intcode.runtime.network import DEFAULT_NETWORK_SIZE


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _load(path: str):
    """Read a program file, exiting with a message on bad input."""
    from intcode.loader import load_program, ProgramFormatError
    try:
        return load_program(path)
    except (OSError, ProgramFormatError) as e:
        print(f"❌ Cannot load {path}: {e}", file=sys.stderr)
        sys.exit(1)


def _configure_logging(args):
    level = logging.WARNING
    if getattr(args, "verbose", False):
        level = logging.INFO
    if getattr(args, "trace", False):
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _unescape(text: str) -> str:
    """Expand backslash escapes such as ``\\n`` in command-line text."""
    return text.encode("latin-1", "backslashreplace").decode("unicode_escape")


def _parse_phases(text: str):
    try:
        return [int(p) for p in text.split(",") if p.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"phases must be comma-separated integers: {text!r}")


# ---------------------------------------------------------------------------
# sub-command handlers
# ---------------------------------------------------------------------------

def cmd_run(args):
    """intcode run program.txt [-i N ...] [--ascii TEXT] [--feedback]"""
    from intcode.vm import Machine, MachineError
    program = _load(args.input)
    text = None
    if args.ascii is not None:
        try:
            text = _unescape(args.ascii)
        except UnicodeDecodeError as e:
            print(f"❌ Bad --ascii text: {e}", file=sys.stderr)
            sys.exit(1)
    try:
        vm = Machine(program, trace=args.trace, max_steps=args.max_steps)
        if text is not None:
            vm.push_ascii(text)
        if args.feedback:
            vm.push_inputs(args.inputs)
            out = vm.run_to_completion()
        else:
            out = vm.run(args.inputs)
    except MachineError as e:
        print(f"❌ Runtime error: {e}", file=sys.stderr)
        sys.exit(1)
    if args.ascii is not None:
        print(vm.ascii_output(), end="")
        tail = [v for v in out if not 0 <= v < 128]
        for value in tail:
            print(value)
    else:
        print(",".join(str(v) for v in out))
    if args.verbose:
        print(f"\n[VM] steps={vm.steps} ip={vm.ip} memory={len(vm.memory)} cells")


def cmd_network(args):
    """intcode network program.txt [-n 50] [--first]"""
    from intcode.runtime.network import Network
    from intcode.vm import MachineError
    program = _load(args.input)
    try:
        net = Network(program, size=args.size, max_ticks=args.max_ticks)
        if args.first:
            x, y = net.first_monitor_packet()
            print(y)
        else:
            print(net.run())
    except (MachineError, ValueError) as e:
        print(f"❌ Network error: {e}", file=sys.stderr)
        sys.exit(1)
    if args.verbose:
        print(f"\n[NET] ticks={net.ticks}")
        print(net.monitor.report())


def cmd_amplify(args):
    """intcode amplify program.txt [--phases 0,1,2,3,4] [--feedback]"""
    from intcode.runtime.amplifier import (
        AmplifierChain, best_phase_sequence, FEEDBACK_PHASES, LINEAR_PHASES,
    )
    from intcode.vm import MachineError
    program = _load(args.input)
    try:
        if args.phases:
            chain = AmplifierChain(program, args.phases)
            signal = chain.run_feedback() if args.feedback else chain.run()
            phases = tuple(args.phases)
        else:
            values = FEEDBACK_PHASES if args.feedback else LINEAR_PHASES
            signal, phases = best_phase_sequence(program, values, feedback=args.feedback)
    except MachineError as e:
        print(f"❌ Runtime error: {e}", file=sys.stderr)
        sys.exit(1)
    print(signal)
    if args.verbose:
        print(f"[AMP] phases={','.join(str(p) for p in phases)}")


def cmd_disasm(args):
    """intcode disasm program.txt"""
    from intcode.isa import disassemble
    print(disassemble(_load(args.input)))


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------

def build_parser():
    parser = argparse.ArgumentParser(
        prog="intcode",
        description=(
            f"intcode {__version__} — stored-program integer machine\n\n"
            "  run        Run a program to halt\n"
            "  network    Run a packet-routing network of machines\n"
            "  amplify    Run a phase-primed amplifier chain\n"
            "  disasm     Print a program listing\n"
            "  version    Show version info\n"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"intcode {__version__}")

    sub = parser.add_subparsers(dest="cmd", required=True)

    # ── run ────────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a program to halt")
    p_run.add_argument("input", help="comma-separated program file")
    p_run.add_argument("-i", "--input-value", dest="inputs", type=int, action="append",
                       default=[], metavar="N", help="Queue an input value (repeatable)")
    p_run.add_argument("--ascii", metavar="TEXT",
                       help="Queue TEXT as character codes; print output as text")
    p_run.add_argument("--feedback", action="store_true",
                       help="Feed every output back in as the next input")
    p_run.add_argument("--max-steps", type=int, default=None, metavar="N")
    p_run.add_argument("--trace", action="store_true", help="Log every instruction")
    p_run.add_argument("-v", "--verbose", action="store_true", help="Show machine summary")
    p_run.set_defaults(func=cmd_run)

    # ── network ────────────────────────────────────────────────────────────
    p_net = sub.add_parser("network", help="Run a network of machines")
    p_net.add_argument("input", help="comma-separated program file")
    p_net.add_argument("-n", "--size", type=int, default=DEFAULT_NETWORK_SIZE, metavar="N")
    p_net.add_argument("--first", action="store_true",
                       help="Stop at the first packet sent to the monitor")
    p_net.add_argument("--max-ticks", type=int, default=None, metavar="N")
    p_net.add_argument("-v", "--verbose", action="store_true", help="Show monitor summary")
    p_net.set_defaults(func=cmd_network)

    # ── amplify ────────────────────────────────────────────────────────────
    p_amp = sub.add_parser("amplify", help="Run an amplifier chain")
    p_amp.add_argument("input", help="comma-separated program file")
    p_amp.add_argument("--phases", type=_parse_phases, default=None,
                       help="Fixed phase settings, e.g. 4,3,2,1,0 (default: search)")
    p_amp.add_argument("--feedback", action="store_true", help="Loop the chain")
    p_amp.add_argument("-v", "--verbose", action="store_true", help="Show phase order")
    p_amp.set_defaults(func=cmd_amplify)

    # ── disasm ─────────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Print a program listing")
    p_dis.add_argument("input", help="comma-separated program file")
    p_dis.set_defaults(func=cmd_disasm)

    # ── version ────────────────────────────────────────────────────────────
    p_ver = sub.add_parser("version", help="Show version info")
    p_ver.set_defaults(func=lambda _: print(f"intcode {__version__}"))

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    _configure_logging(args)
    args.func(args)


if __name__ == "__main__":
    main()
