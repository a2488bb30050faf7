"""Identifier allocation for aggregated interfaces and tunnel units.

Every function here is pure: it reads a device snapshot captured by the
caller (under the session's read guard, with the device lock held) and
computes an identifier. Nothing is remembered between calls.
"""
import re
from typing import Mapping, Optional

from ..errors import AllocationExhausted, StructuralConstraintViolation
from .classifier import classify_interface
from .parser import config_lines
from .schema import Classification

# st0 unit numbers scanned before giving up
TUNNEL_UNIT_CEILING = 1073741824

# Placeholder parent name meaning "no aggregated parent"
NO_AGGREGATE = "ae-1"

AE_CHILD = re.compile(r"ether-options 802\.3ad ae\d+$")
AE_PARENT = re.compile(r"^set ae\d+ ")
TUNNEL_UNIT_LINE = re.compile(r"^set unit (\d+)(?: |$)")


def ae_index(name: str) -> int:
    """Numeric part of an aggregated interface name (``ae-1`` gives -1)."""
    if not name.startswith("ae"):
        raise StructuralConstraintViolation(
            f"failed to convert ae interface '{name}' to integer", field="ether802_3ad"
        )
    try:
        return int(name[2:])
    except ValueError:
        raise StructuralConstraintViolation(
            f"failed to convert ae interface '{name}' to integer", field="ether802_3ad"
        ) from None


def is_last_aggregated_child(interfaces_config: Optional[str], ae: str, interface: str) -> bool:
    """True when no interface other than ``interface`` is a member of ``ae``."""
    suffix = f"ether-options 802.3ad {ae}"
    for line in config_lines(interfaces_config):
        line = line.rstrip()
        if line.endswith(suffix) and not line.startswith(f"set {interface} "):
            return False
    return True


def aggregated_device_count(
    interfaces_config: Optional[str],
    new_ae: str,
    old_ae: str,
    interface: str,
) -> str:
    """Value for ``chassis aggregated-devices ethernet device-count``.

    Args:
        interfaces_config: ``show configuration interfaces | display set relative``
        new_ae: Parent being added, ``ae-1`` for none
        old_ae: Parent being released, ``ae-1`` for none
        interface: Interface the change is made for. Equal to ``old_ae``
            when the parent itself is deleted, so its children still count.

    Returns:
        The count as a string; ``"0"`` means the count should be removed.
    """
    base = ae_index(new_ae)
    found: list[str] = []
    for line in config_lines(interfaces_config):
        line = line.rstrip()
        if AE_CHILD.search(line):
            ae = line.split()[-1]
            if interface == old_ae or ae != old_ae:
                found.append(ae)
        elif AE_PARENT.match(line):
            ae = line.split()[1]
            if interface != old_ae or ae != old_ae:
                found.append(ae)
    if not is_last_aggregated_child(interfaces_config, old_ae, interface):
        found.append(old_ae)
    if found:
        highest = max(ae_index(ae) for ae in found)
        if highest > base:
            return str(highest + 1)
    return str(base + 1)


def device_count_directive(count: str) -> str:
    if count == "0":
        return "delete chassis aggregated-devices ethernet device-count"
    return f"set chassis aggregated-devices ethernet device-count {count}"


def tunnel_units_present(terse: Optional[str]) -> set[int]:
    """Unit numbers listed by ``show interfaces st0 terse``."""
    units = set()
    for line in (terse or "").splitlines():
        if not line.startswith("st0."):
            continue
        unit = line.split()[0][len("st0."):]
        if unit.isdigit():
            units.add(int(unit))
    return units


def tunnel_unit_states(st0_config: Optional[str], group: str = "") -> dict[int, Classification]:
    """Classify each unit of ``show configuration interfaces st0 | display set relative``."""
    grouped: dict[int, list[str]] = {}
    for line in config_lines(st0_config):
        match = TUNNEL_UNIT_LINE.match(line)
        if not match:
            continue
        unit = int(match.group(1))
        rest = line[match.end():].rstrip()
        grouped.setdefault(unit, []).append(f"set {rest}")
    return {
        unit: classify_interface("\n".join(lines), logical=True, group=group)
        for unit, lines in grouped.items()
    }


def first_absent_slot(used: set[int], start: int = 0) -> int:
    """Lowest unit number >= ``start`` that does not exist at all."""
    for slot in range(start, TUNNEL_UNIT_CEILING):
        if slot not in used:
            return slot
    raise AllocationExhausted("no free st0 unit left", field="bind_interface")


def first_reusable_slot(states: Mapping[int, Classification], start: int = 0) -> int:
    """Lowest unit number >= ``start`` that is absent, unconfigured or NC-disabled."""
    for slot in range(start, TUNNEL_UNIT_CEILING):
        state = states.get(slot)
        if state is None or state != Classification.CONFIGURED:
            return slot
    raise AllocationExhausted("no free st0 unit left", field="bind_interface")
