"""
Small IR editing helpers on top of llvmlite.ir.

llvmlite's IR layer is a plain Python object graph: a Function owns a list of
Blocks, a Block owns a list of Instructions and remembers its terminator.
There is no use-list, so replacing uses means walking the owning function.
"""

import sys
from typing import Callable, Iterable, Optional, TextIO

from llvmlite import binding, ir

from .errors import StubConflictError, VerificationError

TRAP_INTRINSIC = "llvm.trap"


def undef_of(ty: ir.Type) -> ir.Constant:
    """Return an undef placeholder of the given (non-void) type."""
    return ir.Constant(ty, ir.Undefined)


def owning_function(inst: ir.Instruction) -> ir.Function:
    return inst.parent.parent


# Instructions that print from fields kept next to `operands`.
_OPERAND_FIELDS = {
    ir.GEPInstr: ("pointer", "indices"),
    ir.ExtractValue: ("aggregate",),
    ir.InsertValue: ("aggregate", "value"),
}


def _uses(inst: ir.Instruction, value: ir.Value) -> bool:
    if isinstance(inst, ir.PhiInstr):
        return any(incoming is value for incoming, _ in inst.incomings)
    return any(op is value for op in inst.operands)


def _rewrite_use(inst: ir.Instruction, value: ir.Value, replacement: ir.Value):
    inst.replace_usage(value, replacement)

    for field in _OPERAND_FIELDS.get(type(inst), ()):
        current = getattr(inst, field)
        if isinstance(current, (list, tuple)):
            setattr(
                inst,
                field,
                type(current)(replacement if v is value else v for v in current),
            )
        elif current is value:
            setattr(inst, field, replacement)

    # Instructions cache their text; phi nodes never drop it on their own
    inst._clear_string_cache()


def replace_all_uses_with(value: ir.Instruction, replacement: ir.Value) -> int:
    """
    Replace every use of `value` inside its function with `replacement`.

    Returns the number of instructions that were rewritten.
    """
    rewritten = 0
    for bb in owning_function(value).blocks:
        for inst in bb.instructions:
            if inst is not value and _uses(inst, value):
                _rewrite_use(inst, value, replacement)
                rewritten += 1
    return rewritten


def erase_from_parent(inst: ir.Instruction) -> None:
    """Remove a non-terminator instruction from its block."""
    bb = inst.parent
    if bb.terminator is inst:
        raise ValueError(f"refusing to erase terminator of block '{bb.name}'")
    bb.instructions.remove(inst)


def is_direct_call(inst: ir.Instruction) -> bool:
    """True for a `call` whose callee is statically a named function."""
    return (
        isinstance(inst, ir.CallInstr)
        and not isinstance(inst, ir.InvokeInstr)
        and isinstance(inst.callee, ir.Function)
    )


def is_trap(inst: ir.Instruction) -> bool:
    return is_direct_call(inst) and inst.callee.name == TRAP_INTRINSIC


def declare_trap(module: ir.Module) -> ir.Function:
    """Get or declare `void @llvm.trap()` in the module."""
    return module.declare_intrinsic(
        TRAP_INTRINSIC, fnty=ir.FunctionType(ir.VoidType(), [])
    )


def get_or_create_shared_function(
    module: ir.Module,
    name: str,
    fnty: ir.FunctionType,
    define: Callable[[ir.Function], None],
    linkage: str = "",
    attributes: Iterable[str] = (),
) -> ir.Function:
    """
    Find or create a function keyed by name.

    An existing definition is returned untouched. Otherwise the function is
    created (or an existing declaration reused), given its linkage and
    attributes, and `define` is called exactly once to build its body.
    """
    existing = module.globals.get(name)
    if existing is None:
        func = ir.Function(module, fnty, name=name)
    elif not isinstance(existing, ir.Function):
        raise StubConflictError(
            f"global '{name}' already exists and is not a function"
        )
    elif existing.ftype != fnty:
        raise StubConflictError(
            f"function '{name}' already exists with type {existing.ftype}, "
            f"expected {fnty}"
        )
    else:
        func = existing

    if not func.is_declaration:
        return func

    func.linkage = linkage
    for attr in attributes:
        func.attributes.add(attr)
    define(func)
    return func


def dump_function(func: ir.Function, sink: Optional[TextIO] = None) -> None:
    """Print the textual IR of a function to the diagnostic sink."""
    if sink is None:
        sink = sys.stderr
    print(str(func), end="", file=sink)


def verify_module(module: ir.Module) -> None:
    """Round-trip the module through LLVM and run the verifier."""
    try:
        parsed = binding.parse_assembly(str(module))
        parsed.verify()
    except RuntimeError as e:
        raise VerificationError(str(e)) from e
