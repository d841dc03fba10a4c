"""Host snapshot for status commands.

Key classes:
    SystemInfo: Dataclass snapshot of the host the bot runs on.

Key functions:
    collect_system_info: Take a snapshot using psutil.
    format_duration: Render a number of seconds as "1d 2h 3m 4s".
"""

import platform
from dataclasses import dataclass

import psutil
import structlog

logger = structlog.get_logger("acephar.bot")

_UNITS = (("d", 86400), ("h", 3600), ("m", 60), ("s", 1))


@dataclass
class SystemInfo:
    """Snapshot of host resources.

    Attributes:
        platform: OS name (e.g. "Linux").
        arch: Machine architecture (e.g. "x86_64").
        python_version: Interpreter version string.
        cpu_count: Number of logical CPUs.
        memory_used_gb: Used RAM in GiB.
        memory_total_gb: Total RAM in GiB.
        memory_percent: Used RAM percentage.
    """
    platform: str
    arch: str
    python_version: str
    cpu_count: int
    memory_used_gb: float
    memory_total_gb: float
    memory_percent: float


def collect_system_info() -> SystemInfo:
    """Collect a host snapshot. Memory figures are zero if psutil fails."""
    used_gb = total_gb = percent = 0.0
    cpu_count = 1
    try:
        mem = psutil.virtual_memory()
        used_gb = (mem.total - mem.available) / (1024 ** 3)
        total_gb = mem.total / (1024 ** 3)
        percent = mem.percent
        cpu_count = psutil.cpu_count() or 1
    except Exception as e:
        logger.warning("system_info_error", error=str(e))

    return SystemInfo(
        platform=platform.system(),
        arch=platform.machine(),
        python_version=platform.python_version(),
        cpu_count=cpu_count,
        memory_used_gb=round(used_gb, 2),
        memory_total_gb=round(total_gb, 2),
        memory_percent=percent,
    )


def format_duration(seconds: float) -> str:
    """Format seconds as "1d 2h 3m 4s", skipping zero units ("0s" for zero)."""
    remaining = max(0, int(seconds))
    parts = []
    for name, size in _UNITS:
        value, remaining = divmod(remaining, size)
        if value:
            parts.append(f"{value}{name}")
    return " ".join(parts) if parts else "0s"
