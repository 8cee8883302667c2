"""
Failure injection at a matched call site.

Each failure kind is a strategy taking the module, the matched call site and
the diagnostic sink:

- optimizer-abort: report the call and abort before touching anything
- runtime-miscompile: delete the call, its uses read undef
- runtime-crash: call a trap stub first, then delete the call
- none: do nothing
"""

import sys
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from llvmlite import ir

from .config import FailureKind
from .errors import OptimizerCrash
from .ir_utils import (
    declare_trap,
    dump_function,
    erase_from_parent,
    get_or_create_shared_function,
    replace_all_uses_with,
    undef_of,
)
from .matcher import CallSite

CRASH_STUB_NAME = "bug_reducer_runtime_crasher_func"

# Keep the stub body exactly as built: no inlining, no optimization.
CRASH_STUB_ATTRIBUTES = ("noinline", "nounwind", "optnone")


@dataclass(frozen=True)
class InjectionOutcome:
    failure_kind: FailureKind
    injected: bool
    function_name: str
    block_name: str
    index: int
    stub: Optional[ir.Function] = None
    stub_call: Optional[ir.CallInstr] = None


def _define_crash_stub(func: ir.Function) -> None:
    trap = declare_trap(func.module)
    builder = ir.IRBuilder(func.append_basic_block("entry"))
    builder.call(trap, [])
    builder.unreachable()


def get_or_create_crash_stub(module: ir.Module) -> ir.Function:
    """
    Return the module's trap stub, defining it on first use.

    The stub is `void bug_reducer_runtime_crasher_func()` with internal
    linkage and a single block: `call void @llvm.trap()` then `unreachable`.
    """
    return get_or_create_shared_function(
        module,
        CRASH_STUB_NAME,
        ir.FunctionType(ir.VoidType(), []),
        _define_crash_stub,
        linkage="internal",
        attributes=CRASH_STUB_ATTRIBUTES,
    )


def _outcome(site: CallSite, kind: FailureKind, injected: bool, **extra):
    return InjectionOutcome(
        failure_kind=kind,
        injected=injected,
        function_name=site.function.name,
        block_name=site.block.name,
        index=site.index,
        **extra,
    )


def _delete_call(call: ir.CallInstr) -> None:
    if not isinstance(call.type, ir.VoidType):
        replace_all_uses_with(call, undef_of(call.type))
    erase_from_parent(call)


def _abort_at(module: ir.Module, site: CallSite, sink: TextIO) -> InjectionOutcome:
    print(f"Found the target! {site.describe()}", file=sink)
    raise OptimizerCrash(site)


def _miscompile_at(
    module: ir.Module, site: CallSite, sink: TextIO
) -> InjectionOutcome:
    _delete_call(site.call)
    return _outcome(site, FailureKind.RUNTIME_MISCOMPILE, True)


def _crash_at(module: ir.Module, site: CallSite, sink: TextIO) -> InjectionOutcome:
    stub = get_or_create_crash_stub(module)
    print("Runtime Crasher Func!", file=sink)
    dump_function(stub, sink)

    builder = ir.IRBuilder(site.block)
    builder.position_before(site.call)
    stub_call = builder.call(stub, [])

    _delete_call(site.call)
    return _outcome(
        site, FailureKind.RUNTIME_CRASH, True, stub=stub, stub_call=stub_call
    )


def _leave_alone(module: ir.Module, site: CallSite, sink: TextIO) -> InjectionOutcome:
    return _outcome(site, FailureKind.NONE, False)


_STRATEGIES: dict[FailureKind, Callable[..., InjectionOutcome]] = {
    FailureKind.OPTIMIZER_ABORT: _abort_at,
    FailureKind.RUNTIME_MISCOMPILE: _miscompile_at,
    FailureKind.RUNTIME_CRASH: _crash_at,
    FailureKind.NONE: _leave_alone,
}


def inject(
    module: ir.Module,
    site: CallSite,
    failure_kind: FailureKind,
    sink: Optional[TextIO] = None,
) -> InjectionOutcome:
    """Apply `failure_kind` at `site`. Raises OptimizerCrash for optimizer-abort."""
    if sink is None:
        sink = sys.stderr
    return _STRATEGIES[failure_kind](module, site, sink)
