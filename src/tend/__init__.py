"""
tend - run preps and tend daemons during development

Runs one-shot shell commands to completion and keeps long-running ones
alive, streaming everything they print into a labeled log.
"""

__version__ = "0.1.0"

from tend.core.config import Config
from tend.core.daemon import DaemonPen
from tend.core.prep import run_preps
from tend.core.proc import ProcError, run_proc

__all__ = ["Config", "DaemonPen", "ProcError", "__version__", "run_preps", "run_proc"]
