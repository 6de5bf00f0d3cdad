"""Process supervision: preps, daemons and the pen that groups them."""

from tend.core.config import Config, ConfigData, ConfigError, DaemonConfig, PrepConfig
from tend.core.daemon import MIN_RESTART, Daemon, DaemonPen, DaemonState, RetryPolicy
from tend.core.prep import run_preps
from tend.core.proc import ExecutionResult, ManagedProcess, ProcError, run_proc
from tend.core.session import Session
from tend.core.shutdown import ShutdownHandler

__all__ = [
    "Config",
    "ConfigData",
    "ConfigError",
    "Daemon",
    "DaemonConfig",
    "DaemonPen",
    "DaemonState",
    "ExecutionResult",
    "MIN_RESTART",
    "ManagedProcess",
    "PrepConfig",
    "ProcError",
    "RetryPolicy",
    "Session",
    "ShutdownHandler",
    "run_preps",
    "run_proc",
]
