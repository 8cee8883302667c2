"""
Deterministic fault injection for testing bug reduction tools.

Breaks the first call to a named function in an llvmlite IR module, either by
aborting on the spot, by deleting the call (a silent miscompile) or by
replacing it with a call to a trap stub (a crash at runtime).
"""

from .config import FailureKind, GuardScope, TesterConfig
from .errors import (
    BugReducerTesterError,
    ConfigError,
    GuardError,
    OptimizerCrash,
    StubConflictError,
    VerificationError,
)
from .injector import (
    CRASH_STUB_NAME,
    InjectionOutcome,
    get_or_create_crash_stub,
    inject,
)
from .matcher import CallSite, find_target_call
from .tester import InjectionGuard, run_on_function, run_on_module

__all__ = [
    "CRASH_STUB_NAME",
    "BugReducerTesterError",
    "CallSite",
    "ConfigError",
    "FailureKind",
    "GuardError",
    "GuardScope",
    "InjectionGuard",
    "InjectionOutcome",
    "OptimizerCrash",
    "StubConflictError",
    "TesterConfig",
    "VerificationError",
    "find_target_call",
    "get_or_create_crash_stub",
    "inject",
    "run_on_function",
    "run_on_module",
]
