#!/usr/bin/env -S uv run
"""
Command-line driver for the bug reducer tester pass.

Builds a module by calling a factory, runs the pass over it and prints the
resulting IR.

Usage:
    bug-reducer-tester [options] path/to/program.py:build_module > output.ll
    bug-reducer-tester [options] -o output.ll package.module:build_module

Options:
    --bug-reducer-tester-target-func NAME     Function whose first call to break
    --bug-reducer-tester-failure-kind KIND    none, optimizer-abort,
                                              runtime-miscompile, runtime-crash
    --bug-reducer-tester-guard-scope SCOPE    run (default) or function
    --functions LIST                          Comma-separated functions to visit
    --no-verify                               Skip module verification
    -o FILE                                   Output file (default: stdout)

The optimizer-abort failure kind exits with status 134 when the target call
is found. Any other error exits with status 1.
"""

import argparse
import importlib
import importlib.util
import sys
from pathlib import Path

from llvmlite import ir

from bug_reducer_tester.config import add_arguments, config_from_args
from bug_reducer_tester.errors import BugReducerTesterError
from bug_reducer_tester.ir_utils import verify_module
from bug_reducer_tester.tester import run_on_module


def load_module_factory(spec: str):
    """Resolve `path/to/file.py:callable` or `package.module:callable`."""
    location, sep, attr = spec.rpartition(":")
    if not sep or not location or not attr:
        raise BugReducerTesterError(
            f"module factory '{spec}' must look like 'file.py:callable' "
            "or 'package.module:callable'"
        )

    if location.endswith(".py"):
        path = Path(location)
        if not path.exists():
            raise BugReducerTesterError(f"no such file: {path}")
        module_spec = importlib.util.spec_from_file_location(path.stem, path)
        source = importlib.util.module_from_spec(module_spec)
        try:
            module_spec.loader.exec_module(source)
        except Exception as e:
            raise BugReducerTesterError(
                f"cannot load '{path}': {type(e).__name__}: {e}"
            ) from e
    else:
        try:
            source = importlib.import_module(location)
        except Exception as e:
            raise BugReducerTesterError(
                f"cannot import '{location}': {type(e).__name__}: {e}"
            ) from e

    factory = getattr(source, attr, None)
    if not callable(factory):
        raise BugReducerTesterError(f"'{attr}' in '{location}' is not callable")
    return factory


def build_module(spec: str) -> ir.Module:
    factory = load_module_factory(spec)
    try:
        module = factory()
    except BugReducerTesterError:
        raise
    except Exception as e:
        raise BugReducerTesterError(
            f"'{spec}' failed: {type(e).__name__}: {e}"
        ) from e
    if not isinstance(module, ir.Module):
        raise BugReducerTesterError(
            f"'{spec}' returned {type(module).__name__}, expected llvmlite.ir.Module"
        )
    return module


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bug-reducer-tester",
        description="Break the first call to a target function to exercise "
        "bug reduction tools",
    )
    parser.add_argument(
        "factory",
        metavar="MODULE_FACTORY",
        help="'file.py:callable' or 'package.module:callable' returning an "
        "llvmlite.ir.Module",
    )
    parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    parser.add_argument(
        "--functions",
        help="Comma-separated list of function names to process (default: all)",
    )
    parser.add_argument(
        "--verify",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Verify the module after the pass (default: on)",
    )
    add_arguments(parser)
    return parser


def main(argv=None) -> int:
    parser = make_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        mod = build_module(args.factory)

        target_funcs = None
        if args.functions:
            target_funcs = [name for name in args.functions.split(",") if name]

        guard = run_on_module(mod, config, functions=target_funcs)

        if args.verify:
            verify_module(mod)
    except BugReducerTesterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if config.enabled and not guard.injected:
        print(
            f"; bug-reducer-tester: no call to '{config.target_func}' found",
            file=sys.stderr,
        )

    output = str(mod)
    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
            f.write("\n")
    else:
        print(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
