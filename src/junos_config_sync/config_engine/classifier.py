"""Existence and disabled-state classification of interface dumps."""
from typing import Optional

from .parser import config_lines
from .schema import Classification

NC_LINES = {"set description NC", "set disable"}


def _interface_lines(dump: Optional[str], logical: bool) -> list[str]:
    lines = []
    for line in config_lines(dump):
        if logical:
            if "ethernet-switching" in line:
                continue
        elif line.startswith("set unit") and "ethernet-switching" not in line:
            # unit parameters belong to the logical interfaces
            continue
        lines.append(line)
    return lines


def _bare(line: str) -> bool:
    return line.rstrip() == "set"


def classify_interface(dump: Optional[str], *, logical: bool = False, group: str = "") -> Classification:
    """Classify ``show configuration interfaces X | display set relative``.

    Args:
        dump: Raw query output for the interface scope
        logical: The scope is a ``<physical>.<unit>`` interface
        group: Name of the placeholder group applied instead of
            ``disable description NC``, if any

    Returns:
        UNCONFIGURED when nothing (or only a bare unit) is configured,
        ADMINISTRATIVELY_DISABLED when only the NC placeholder is present,
        CONFIGURED otherwise.
    """
    lines = _interface_lines(dump, logical)
    if not lines or all(_bare(line) for line in lines):
        return Classification.UNCONFIGURED
    if group and lines == [f"set apply-groups {group}"]:
        return Classification.ADMINISTRATIVELY_DISABLED
    if len(lines) == 2 and set(lines) == NC_LINES:
        return Classification.ADMINISTRATIVELY_DISABLED
    return Classification.CONFIGURED


def is_bare_unit(dump: Optional[str]) -> bool:
    """True when a logical dump holds only the bare ``set`` line the device materialises."""
    lines = _interface_lines(dump, logical=True)
    return bool(lines) and all(_bare(line) for line in lines)


def contains_logical_unit(dump: Optional[str]) -> bool:
    """True when a physical dump has unit configuration other than ethernet-switching."""
    for line in config_lines(dump):
        if line.startswith("set unit") and "ethernet-switching" not in line:
            return True
    return False
