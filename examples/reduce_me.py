#!/usr/bin/env -S uv run
"""
A small program for trying out the bug reducer tester.

`build_module` is a module factory for the command line:

    bug-reducer-tester examples/reduce_me.py:build_module \
        --bug-reducer-tester-target-func=checksum \
        --bug-reducer-tester-failure-kind=runtime-crash

Running this file directly prints the @main function after each destructive
failure kind.
"""

import io

from llvmlite import ir

from bug_reducer_tester import FailureKind, TesterConfig, run_on_module


def build_module() -> ir.Module:
    mod = ir.Module(name="reduce_me")
    i32 = ir.IntType(32)

    checksum = ir.Function(mod, ir.FunctionType(i32, [i32, i32]), name="checksum")
    a, b = checksum.args
    builder = ir.IRBuilder(checksum.append_basic_block("entry"))
    mixed = builder.xor(builder.mul(a, i32(31), name="scaled"), b, name="mixed")
    builder.ret(mixed)

    main = ir.Function(mod, ir.FunctionType(i32, [i32]), name="main")
    entry = main.append_basic_block("entry")
    loop = main.append_basic_block("loop")
    done = main.append_basic_block("done")

    builder = ir.IRBuilder(entry)
    builder.branch(loop)

    builder.position_at_end(loop)
    i = builder.phi(i32, name="i")
    acc = builder.phi(i32, name="acc")
    next_acc = builder.call(checksum, [acc, i], name="next_acc")
    next_i = builder.add(i, i32(1), name="next_i")
    more = builder.icmp_signed("<", next_i, main.args[0], name="more")
    builder.cbranch(more, loop, done)

    i.add_incoming(i32(0), entry)
    i.add_incoming(next_i, loop)
    acc.add_incoming(i32(7), entry)
    acc.add_incoming(next_acc, loop)

    builder.position_at_end(done)
    builder.ret(next_acc)
    return mod


def main():
    for kind in (FailureKind.RUNTIME_MISCOMPILE, FailureKind.RUNTIME_CRASH):
        mod = build_module()
        guard = run_on_module(mod, TesterConfig("checksum", kind), sink=io.StringIO())
        print(f"; {kind.value}: injected at @{guard.outcome.function_name}")
        print(mod.get_global("main"))


if __name__ == "__main__":
    main()
