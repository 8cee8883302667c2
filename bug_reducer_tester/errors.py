"""
Exception types raised by bug_reducer_tester.

Everything the tool reports as a failure derives from BugReducerTesterError,
except OptimizerCrash: that one is the deliberate abort requested with
``--bug-reducer-tester-failure-kind=optimizer-abort`` and derives from
SystemExit so that ``except Exception`` handlers never swallow it.
"""

# Exit status of an aborting process (128 + SIGABRT)
OPTIMIZER_CRASH_EXIT_CODE = 134


class BugReducerTesterError(Exception):
    """Base class for bug_reducer_tester errors."""


class ConfigError(BugReducerTesterError, ValueError):
    """An option value could not be parsed."""


class StubConflictError(BugReducerTesterError, TypeError):
    """A global with the stub's name exists but is not a compatible function."""


class VerificationError(BugReducerTesterError):
    """LLVM rejected the module."""


class GuardError(BugReducerTesterError):
    """A run guard was asked to record a second injection."""


class OptimizerCrash(SystemExit):
    """The target call was visited with failure kind optimizer-abort."""

    def __init__(self, call_site):
        super().__init__(OPTIMIZER_CRASH_EXIT_CODE)
        self.call_site = call_site

    def __str__(self):
        return f"Found the target! {self.call_site.describe()}"
