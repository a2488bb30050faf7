"""junos-config-sync: declarative configuration of Junos devices over NETCONF."""

__version__ = "0.1.0"
