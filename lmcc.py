#!/usr/bin/env python3
"""
lmcc: Little Man Computer assembler and runner CLI

Usage:
    python lmcc.py <input.lmc> [-o output] [--format grid|listing]
                               [--tokens] [--ast]
                               [--run] [--input N ...] [--speed NAME]
                               [--max-steps N] [--trace] [-v] [-q]

Output format is auto-detected from the -o extension:
    .lst       → listing with address, word and disassembly
    anything   → 10x10 mailbox grid (default)

Examples:
    python lmcc.py add.lmc                         # mailbox grid to stdout
    python lmcc.py add.lmc -o add.lst              # listing
    python lmcc.py add.lmc --run --input 3 4       # assemble and execute
    python lmcc.py countdown.lmc --run --speed slow --trace -v
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import lmc_compiler
from lmc_compiler import compile_source
from lmc_compiler.lexer import Lexer, InvalidCharacter
from lmc_compiler.parser import Parser, ParseError
from lmc_compiler.codegen import CodeGenError
from lmc_emulator import LMCEmulator, RuntimeFault, StopReason
from lmc_emulator.runtime import DEFAULT_SPEED, RUN_SPEEDS, run_source

log = logging.getLogger("lmcc")


def setup_logging(args):
    """Configure logging from -v / -q / --log-file."""
    if args.quiet:
        level = logging.ERROR
    elif args.verbose == 0:
        level = logging.WARNING
    elif args.verbose == 1:
        level = logging.INFO
    else:  # -vv or more
        level = logging.DEBUG

    handlers = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('[lmcc] %(levelname)s: %(message)s'))
    handlers.append(console)

    if args.log_file:
        log_path = Path(args.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if args.log_file else level,
        handlers=handlers,
        force=True
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lmcc",
        description="Little Man Computer assembler and emulator",
        epilog="Speeds: " + ", ".join(
            f"{name} ({p['description']})" for name, p in RUN_SPEEDS.items()),
    )
    parser.add_argument("input", help="Input LMC source file")
    parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    parser.add_argument("--format", choices=["grid", "listing"], default=None,
                        help="Output format (auto-detected from -o extension if not set)")
    parser.add_argument("--tokens", action="store_true",
                        help="Dump token stream and exit (debug)")
    parser.add_argument("--ast", action="store_true",
                        help="Dump parsed program and exit (debug)")
    parser.add_argument("--run", action="store_true",
                        help="Execute the program after assembling it")
    parser.add_argument("--input", dest="inputs", type=int, nargs="*", default=[],
                        metavar="N", help="Values for successive INP instructions")
    parser.add_argument("--speed", default=None, choices=list(RUN_SPEEDS.keys()),
                        help="Step through the runtime at this speed "
                             f"(default: run directly; '{DEFAULT_SPEED}' is the runtime default)")
    parser.add_argument("--max-steps", type=int, default=LMCEmulator.DEFAULT_MAX_STEPS,
                        help="Instruction budget for --run (default: %(default)s)")
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction (needs -vv)")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Suppress everything except errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    parser.add_argument("--version", action="version",
                        version=f"lmcc {lmc_compiler.__version__}")
    return parser


def _output_format(args) -> str:
    if args.format:
        return args.format
    if args.output and os.path.splitext(args.output)[1].lower() == ".lst":
        return "listing"
    return "grid"


def _run_direct(image, args) -> int:
    emu = LMCEmulator()
    emu.load(image)
    emu.enable_trace(args.trace)
    reason = emu.run(max_steps=args.max_steps, inputs=args.inputs, on_output=print)
    log.info("stopped: %s after %d step(s); %s", reason.value, emu.steps, emu.regs.display())
    if reason is StopReason.INPUT:
        print("Error: program asked for more input than was given", file=sys.stderr)
        return 1
    if reason is StopReason.TIMEOUT:
        print(f"Error: no halt within {args.max_steps} steps", file=sys.stderr)
        return 1
    return 0


def _run_stepped(source: str, args) -> int:
    result = asyncio.run(run_source(source, speed=args.speed,
                                    inputs=args.inputs, max_steps=args.max_steps))
    for line in result.outputs:
        print(line)
    if result.error:
        print(result.error, file=sys.stderr)
        return 1
    log.info("stopped: %s after %d step(s); %s", result.reason.value, result.steps,
             result.state.display() if result.state else "-")
    if result.reason is not StopReason.HALT:
        print(f"Error: run ended with {result.reason.value}", file=sys.stderr)
        return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args)

    # Read input
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            source = f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    log.info("input: %s", args.input)

    try:
        # Token dump mode
        if args.tokens:
            for tok in Lexer(source).tokenize():
                print(repr(tok))
            return 0

        # AST dump mode
        if args.ast:
            program = Parser(Lexer(source).tokenize(), source).parse()
            for slot, node in enumerate(program.instructions):
                print(f"{slot:02d}: {node}")
            for name, slot in sorted(program.labels.items(), key=lambda kv: kv[1]):
                print(f"label {name} = {slot:02d}")
            return 0

        if args.run:
            if args.speed:
                return _run_stepped(source, args)
            return _run_direct(compile_source(source), args)

        out_format = _output_format(args)
        result = compile_source(source, output=out_format)

        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(result)
                f.write("\n")
            log.info("output: %s (%s)", args.output, out_format)
        else:
            print(result)
        return 0

    except InvalidCharacter as e:
        print(f"Lexer error: {e}", file=sys.stderr)
        return 1
    except ParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 1
    except CodeGenError as e:
        print(f"Code generation error: {e}", file=sys.stderr)
        return 1
    except RuntimeFault as e:
        print(e, file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
