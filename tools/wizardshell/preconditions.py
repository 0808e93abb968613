"""Environment checks run before the first real page transition.

A failed check terminates a silent run with its own exit code; the
interactive wizard offers a retry instead.
"""

import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .resources import ExitCode

logger = logging.getLogger(__name__)

DRM_CLASS_DIR = "/sys/class/drm"
SUPPORTED_SYSTEMS = ("Linux",)


@dataclass
class Precondition:
    name: str
    check: Callable[[], bool]
    exit_code: ExitCode
    message: str


def cpu_flags(path: str = "/proc/cpuinfo") -> list[str]:
    """Feature flags of the first processor listed in *path*."""
    try:
        text = Path(path).read_text()
    except OSError:
        return []
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "flags":
            return value.split()
    return []


def gpu_present(drm_dir: str = DRM_CLASS_DIR) -> bool:
    # card0, card1, ... but not connector entries like card0-HDMI-A-1
    try:
        return any(
            entry.name.startswith("card") and "-" not in entry.name
            for entry in Path(drm_dir).iterdir()
        )
    except OSError:
        return False


def system_supported() -> bool:
    return platform.system() in SUPPORTED_SYSTEMS


def virtualization_supported() -> bool:
    return bool({"vmx", "svm"} & set(cpu_flags()))


PRECONDITIONS: dict[str, Precondition] = {
    "gpu": Precondition(
        "gpu", gpu_present, ExitCode.GPU_NOT_EXIST,
        "No graphics adapter was found on this machine.",
    ),
    "system": Precondition(
        "system", system_supported, ExitCode.SYSTEM_NOT_SUPPORTED,
        "This operating system is not supported.",
    ),
    "virtualization": Precondition(
        "virtualization", virtualization_supported, ExitCode.VIRTUALIZATION_MISSING,
        "Hardware virtualization (VT-x / AMD-V) is not available.",
    ),
}


def resolve_preconditions(names: list[str]) -> list[Precondition]:
    checks = []
    for name in names:
        if name not in PRECONDITIONS:
            raise ValueError(f"Unknown precondition: {name}")
        checks.append(PRECONDITIONS[name])
    return checks


def first_failure(checks: list[Precondition]) -> Precondition | None:
    """Run *checks* in order and return the first one that fails."""
    for precondition in checks:
        if not precondition.check():
            logger.warning("Precondition %s failed: %s", precondition.name, precondition.message)
            return precondition
        logger.debug("Precondition %s passed", precondition.name)
    return None
