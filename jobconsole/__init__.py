"""
jobconsole - Background job control console

Lists, stops, inspects and renames jobs held by a job registry, and
launches payload handlers as jobs from a handful of command options.
"""

__version__ = "0.1.0"


__all__ = [
    "CommandRouter",
    "CommandResult",
    "ConsoleConfig",
    "load_config",
    "get_jobconsole_home",
    "expand_range",
]

from .config import ConsoleConfig, load_config, get_jobconsole_home
from .ranges import expand_range
from .router import CommandRouter, CommandResult
