"""Tests for interface existence classification."""
from junos_config_sync.config_engine.classifier import (
    classify_interface,
    contains_logical_unit,
    is_bare_unit,
)
from junos_config_sync.config_engine.schema import Classification
from junos_config_sync.devices.base import EMPTY_SENTINEL


class TestClassifyInterface:
    """Tests for classify_interface."""

    def test_empty_sentinel(self):
        assert classify_interface(EMPTY_SENTINEL) == Classification.UNCONFIGURED

    def test_nc_placeholder(self):
        """disable plus description NC, in any order."""
        assert classify_interface("set disable\nset description NC\n") == (
            Classification.ADMINISTRATIVELY_DISABLED
        )

    def test_nc_with_more_lines(self):
        """Anything beside the placeholder is real configuration."""
        dump = "set description NC\nset disable\nset vlan-tagging\n"
        assert classify_interface(dump) == Classification.CONFIGURED

    def test_group_placeholder(self):
        """The placeholder group counts as disabled only when it is configured."""
        dump = "set apply-groups NC-GROUP\n"
        assert classify_interface(dump, group="NC-GROUP") == Classification.ADMINISTRATIVELY_DISABLED
        assert classify_interface(dump) == Classification.CONFIGURED

    def test_physical_ignores_units(self):
        """A physical port with only unit configuration is itself unconfigured."""
        dump = "set unit 100 family inet address 192.0.2.1/24\n"
        assert classify_interface(dump) == Classification.UNCONFIGURED

    def test_physical_keeps_switching(self):
        dump = "set unit 0 family ethernet-switching vlan members v10\n"
        assert classify_interface(dump) == Classification.CONFIGURED

    def test_logical_bare_unit(self):
        """The bare line a device materializes for a unit is not configuration."""
        assert classify_interface("set \n", logical=True) == Classification.UNCONFIGURED

    def test_envelope(self):
        """Envelope markers around a dump are ignored."""
        dump = "<configuration-output>\nset description NC\nset disable\n</configuration-output>"
        assert classify_interface(dump) == Classification.ADMINISTRATIVELY_DISABLED


class TestUnitHelpers:
    """Tests for is_bare_unit and contains_logical_unit."""

    def test_is_bare_unit(self):
        assert is_bare_unit("set \n")
        assert not is_bare_unit(EMPTY_SENTINEL)
        assert not is_bare_unit("set family inet\n")

    def test_contains_logical_unit(self):
        assert contains_logical_unit("set unit 10 family inet\n")
        assert not contains_logical_unit("set unit 0 family ethernet-switching interface-mode trunk\n")
        assert not contains_logical_unit("set description uplink\n")
