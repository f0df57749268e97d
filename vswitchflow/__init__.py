"""OpenFlow match expressions, match flows and flow bundle requests for Open vSwitch."""

__version__ = "0.1.0"

__all__ = ["base", "common", "datalink", "matchflow", "network", "openflow", "parser", "transport"]