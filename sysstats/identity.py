"""Static host identity and our own resource usage (header/footer data)."""

from __future__ import annotations

import platform
import resource
from dataclasses import dataclass


@dataclass(frozen=True)
class SystemIdentity:
    system: str
    node: str
    version: str
    release: str
    machine: str


def self_memory_kb() -> int:
    """Peak resident set size of this process, in kilobytes (Linux units)."""
    return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss


def system_identity() -> SystemIdentity:
    u = platform.uname()
    return SystemIdentity(
        system=u.system,
        node=u.node,
        version=u.version,
        release=u.release,
        machine=u.machine,
    )
