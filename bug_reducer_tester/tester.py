"""
The bug reducer tester pass.

This pass exists to test bug reduction tools. When it visits a function that
calls the configured target, it either crashes the "optimizer" right there or
quietly breaks the call so that the compiled program misbehaves or traps when
run.

Only one call site is ever broken per guard. The guard is an explicit value:
`run_on_function` takes one and returns the (possibly updated) guard, and
`run_on_module` decides whether a single guard spans the whole module or a new
one is used for every function.
"""

import sys
from dataclasses import dataclass
from typing import Iterable, Optional, TextIO

from llvmlite import ir

from .config import GuardScope, TesterConfig
from .errors import GuardError
from .injector import InjectionOutcome, inject
from .matcher import find_target_call


@dataclass(frozen=True)
class InjectionGuard:
    """Run-scoped record of whether a fault has been injected yet."""

    injected: bool = False
    outcome: Optional[InjectionOutcome] = None

    def record(self, outcome: InjectionOutcome) -> "InjectionGuard":
        if self.injected:
            raise GuardError(
                f"a fault was already injected in @{self.outcome.function_name}"
            )
        if not outcome.injected:
            return self
        return InjectionGuard(injected=True, outcome=outcome)


def run_on_function(
    func: ir.Function,
    config: TesterConfig,
    guard: Optional[InjectionGuard] = None,
    sink: Optional[TextIO] = None,
) -> InjectionGuard:
    """Run the pass over one function and return the updated guard."""
    if guard is None:
        guard = InjectionGuard()

    # Nothing to do without a target, or once we already broke something.
    if not config.enabled or guard.injected:
        return guard

    site = find_target_call(func, config.target_func)
    if site is None:
        return guard

    return guard.record(inject(func.module, site, config.failure_kind, sink=sink))


def run_on_module(
    module: ir.Module,
    config: TesterConfig,
    functions: Optional[Iterable[str]] = None,
    sink: Optional[TextIO] = None,
) -> InjectionGuard:
    """
    Run the pass over every defined function of the module, in module order.

    `functions` restricts the run to the named functions. Functions the pass
    itself creates (the crash stub) are not visited.

    With GuardScope.RUN the returned guard covers the whole run. With
    GuardScope.FUNCTION each function starts from a fresh guard and the last
    guard that recorded an injection is returned.
    """
    if sink is None:
        sink = sys.stderr

    selected = set(functions) if functions is not None else None
    worklist = [
        func
        for func in module.functions
        if not func.is_declaration and (selected is None or func.name in selected)
    ]

    guard = InjectionGuard()
    last_injected = guard
    for func in worklist:
        if config.guard_scope is GuardScope.FUNCTION:
            guard = InjectionGuard()
        guard = run_on_function(func, config, guard, sink=sink)
        if guard.injected:
            last_injected = guard

    return last_injected
