"""
Tests for the bug-reducer-tester command line.
"""

from pathlib import Path

from bug_reducer_tester.errors import OPTIMIZER_CRASH_EXIT_CODE
from bug_reducer_tester.injector import CRASH_STUB_NAME
from bug_reducer_tester.main import main

SAMPLES = Path(__file__).parent / "ir_samples.py"


def _factory(name):
    return f"{SAMPLES}:{name}"


def test_disabled_run_prints_module(capsys):
    code = main([_factory("build_single_caller")])

    out = capsys.readouterr().out
    assert code == 0
    assert '; ModuleID = "single_caller"' in out
    assert 'call i32 @"target"' in out


def test_runtime_crash_writes_output_file(tmp_path, capsys):
    output = tmp_path / "out.ll"

    code = main(
        [
            _factory("build_two_callers"),
            "--bug-reducer-tester-target-func",
            "target",
            "--bug-reducer-tester-failure-kind",
            "runtime-crash",
            "-o",
            str(output),
        ]
    )

    assert code == 0
    text = output.read_text()
    assert f'define internal void @"{CRASH_STUB_NAME}"()' in text
    assert text.count(f'call void @"{CRASH_STUB_NAME}"()') == 1
    assert text.count('call i32 @"target"') == 2

    err = capsys.readouterr().err
    assert "Runtime Crasher Func!" in err


def test_optimizer_abort_exits_with_abort_status(capsys):
    argv = [
        _factory("build_single_caller"),
        "--bug-reducer-tester-target-func=target",
        "--bug-reducer-tester-failure-kind=opt-crasher",
    ]
    try:
        main(argv)
        assert False, "Expected the process to abort"
    except SystemExit as e:
        assert e.code == OPTIMIZER_CRASH_EXIT_CODE

    captured = capsys.readouterr()
    assert "Found the target!" in captured.err
    assert captured.out == "", "Nothing may be printed after the abort"


def test_functions_filter(capsys):
    code = main(
        [
            _factory("build_two_callers"),
            "--bug-reducer-tester-target-func=target",
            "--bug-reducer-tester-failure-kind=miscompile",
            "--functions",
            "second",
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    # @first keeps its call, @second loses its first one
    assert out.count('call i32 @"target"') == 2
    assert '%"b" = call i32 @"target"(i32 undef)' in out


def test_missing_target_is_reported(capsys):
    code = main(
        [
            _factory("build_no_target"),
            "--bug-reducer-tester-target-func=target",
            "--bug-reducer-tester-failure-kind=runtime-crash",
        ]
    )

    captured = capsys.readouterr()
    assert code == 0
    assert "no call to 'target' found" in captured.err
    assert CRASH_STUB_NAME not in captured.out


def test_bad_factory(capsys):
    assert main(["no_colon_here"]) == 1
    assert "must look like" in capsys.readouterr().err

    assert main([f"{SAMPLES.parent / 'missing.py'}:build"]) == 1
    assert "no such file" in capsys.readouterr().err

    assert main([_factory("TARGET")]) == 1
    assert "is not callable" in capsys.readouterr().err


def test_factory_must_return_module(capsys):
    assert main(["collections:OrderedDict"]) == 1
    assert "expected llvmlite.ir.Module" in capsys.readouterr().err


def test_broken_factory_file_is_reported(tmp_path, capsys):
    broken = tmp_path / "broken.py"
    broken.write_text("def build_module(:\n")

    assert main([f"{broken}:build_module"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: cannot load")
    assert "SyntaxError" in err


def test_failing_factory_is_reported(tmp_path, capsys):
    failing = tmp_path / "failing.py"
    failing.write_text(
        "def build_module():\n"
        "    raise RuntimeError('no IR today')\n"
    )

    assert main([f"{failing}:build_module"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "RuntimeError: no IR today" in err
