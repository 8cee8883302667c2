"""
Configuration for the bug reducer tester pass.

The pass is driven by two settings: the name of the function whose first call
site should be broken, and the kind of failure to inject there. A third
setting decides how long the "already injected" guard lives.

Settings come from the command line (option names match the
compiler's ``-bug-reducer-tester-*`` flags) or from the environment. An empty target
name disables the pass.
"""

import argparse
import enum
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

TARGET_FUNC_ENV = "BUG_REDUCER_TESTER_TARGET_FUNC"
FAILURE_KIND_ENV = "BUG_REDUCER_TESTER_FAILURE_KIND"
GUARD_SCOPE_ENV = "BUG_REDUCER_TESTER_GUARD_SCOPE"


class FailureKind(enum.Enum):
    NONE = "none"
    OPTIMIZER_ABORT = "optimizer-abort"
    RUNTIME_MISCOMPILE = "runtime-miscompile"
    RUNTIME_CRASH = "runtime-crash"

    @classmethod
    def parse(cls, text: str) -> "FailureKind":
        """Parse a failure kind, accepting the legacy spellings."""
        key = text.strip().lower()
        if key in _FAILURE_KIND_ALIASES:
            return _FAILURE_KIND_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(failure_kind_choices())
            raise ConfigError(
                f"unknown failure kind '{text}' (expected one of: {choices})"
            ) from None

    @property
    def is_destructive(self) -> bool:
        """True for the kinds that rewrite the IR instead of aborting."""
        return self in (FailureKind.RUNTIME_MISCOMPILE, FailureKind.RUNTIME_CRASH)


_FAILURE_KIND_ALIASES = {
    "opt-crasher": FailureKind.OPTIMIZER_ABORT,
    "miscompile": FailureKind.RUNTIME_MISCOMPILE,
    "runtime-crasher": FailureKind.RUNTIME_CRASH,
}


class GuardScope(enum.Enum):
    # One guard for the whole run: exactly one site per module.
    RUN = "run"
    # A fresh guard per function, as if each function got its own pass object.
    FUNCTION = "function"

    @classmethod
    def parse(cls, text: str) -> "GuardScope":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(scope.value for scope in cls)
            raise ConfigError(
                f"unknown guard scope '{text}' (expected one of: {choices})"
            ) from None


def failure_kind_choices() -> list[str]:
    return [kind.value for kind in FailureKind] + list(_FAILURE_KIND_ALIASES)


@dataclass(frozen=True)
class TesterConfig:
    """Immutable settings for one run of the pass."""

    target_func: str = ""
    failure_kind: FailureKind = FailureKind.NONE
    guard_scope: GuardScope = GuardScope.RUN

    @property
    def enabled(self) -> bool:
        return bool(self.target_func) and self.failure_kind is not FailureKind.NONE


def _parse_option(parse, text):
    # argparse reports ArgumentTypeError as a usage error
    try:
        return parse(text)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the pass options on an argument parser."""
    group = parser.add_argument_group("bug reducer tester")
    group.add_argument(
        "--bug-reducer-tester-target-func",
        dest="target_func",
        metavar="NAME",
        help="Function that, when called, makes the pass blow up or miscompile "
        "the first call site it visits",
    )
    group.add_argument(
        "--bug-reducer-tester-failure-kind",
        dest="failure_kind",
        type=lambda text: _parse_option(FailureKind.parse, text),
        metavar="KIND",
        help="The type of failure to perform: "
        + ", ".join(failure_kind_choices()),
    )
    group.add_argument(
        "--bug-reducer-tester-guard-scope",
        dest="guard_scope",
        type=lambda text: _parse_option(GuardScope.parse, text),
        metavar="SCOPE",
        help="Inject once per run (default) or once per function",
    )


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> TesterConfig:
    """Build a configuration from BUG_REDUCER_TESTER_* environment variables."""
    if environ is None:
        environ = os.environ

    failure_kind = FailureKind.NONE
    if environ.get(FAILURE_KIND_ENV):
        failure_kind = FailureKind.parse(environ[FAILURE_KIND_ENV])

    guard_scope = GuardScope.RUN
    if environ.get(GUARD_SCOPE_ENV):
        guard_scope = GuardScope.parse(environ[GUARD_SCOPE_ENV])

    return TesterConfig(
        target_func=environ.get(TARGET_FUNC_ENV, ""),
        failure_kind=failure_kind,
        guard_scope=guard_scope,
    )


def config_from_args(
    args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None
) -> TesterConfig:
    """Merge parsed command-line options over the environment configuration."""
    base = config_from_env(environ)
    return TesterConfig(
        target_func=(
            args.target_func if args.target_func is not None else base.target_func
        ),
        failure_kind=args.failure_kind or base.failure_kind,
        guard_scope=args.guard_scope or base.guard_scope,
    )
