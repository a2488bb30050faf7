"""Config Engine core: compile, parse, classify, allocate, commit.

The pieces are usable without a device:

    from junos_config_sync.config_engine import LineCompiler, StateParser, Selector, ResourceKind

    batch = LineCompiler().compile(LogicalInterface(name="ge-0/0/3.100"))
    state = StateParser().parse(dump, Selector(ResourceKind.INTERFACE_LOGICAL, name="ge-0/0/3.100"))
"""

from .schema import (
    Classification,
    DeviceContext,
    DirectiveBatch,
    ResourceKind,
    Selector,
)
from .compiler import LineCompiler, interface_path, split_interface_name
from .parser import StateParser, PrefixTable
from .classifier import classify_interface, is_bare_unit, contains_logical_unit
from .allocator import (
    aggregated_device_count,
    is_last_aggregated_child,
    tunnel_units_present,
    tunnel_unit_states,
    first_absent_slot,
    first_reusable_slot,
)
from .guard import ReadGuard
from .transaction import Transaction, TransactionState

__all__ = [
    # Data types
    "Classification",
    "DeviceContext",
    "DirectiveBatch",
    "ResourceKind",
    "Selector",
    # Compiler / parser
    "LineCompiler",
    "interface_path",
    "split_interface_name",
    "StateParser",
    "PrefixTable",
    # Classifier
    "classify_interface",
    "is_bare_unit",
    "contains_logical_unit",
    # Allocators
    "aggregated_device_count",
    "is_last_aggregated_child",
    "tunnel_units_present",
    "tunnel_unit_states",
    "first_absent_slot",
    "first_reusable_slot",
    # Transactions
    "ReadGuard",
    "Transaction",
    "TransactionState",
]
