"""
Locate the call site the tester should break.

A call site matches when it is a plain `call` (not `invoke`) whose callee is a
statically known function with the target's name. Calls through a pointer are
never matched, even if the pointer ends up holding the target at runtime.
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from llvmlite import ir

from .ir_utils import is_direct_call


@dataclass(frozen=True)
class CallSite:
    """A direct call instruction and where it lives."""

    call: ir.CallInstr
    block: ir.Block
    index: int
    callee: ir.Function

    @property
    def function(self) -> ir.Function:
        return self.block.parent

    def describe(self) -> str:
        return (
            f"call to @{self.callee.name} in function @{self.function.name}, "
            f"block '{self.block.name}', instruction #{self.index}: "
            f"{str(self.call).strip()}"
        )


def iter_direct_calls(func: ir.Function) -> Iterator[CallSite]:
    """Yield direct call sites in block order, then program order."""
    for bb in func.blocks:
        for index, inst in enumerate(bb.instructions):
            if is_direct_call(inst):
                yield CallSite(call=inst, block=bb, index=index, callee=inst.callee)


def find_target_call(func: ir.Function, target_name: str) -> Optional[CallSite]:
    """Return the first direct call to `target_name` in `func`, if any."""
    if not target_name:
        return None
    for site in iter_direct_calls(func):
        if site.callee.name == target_name:
            return site
    return None
