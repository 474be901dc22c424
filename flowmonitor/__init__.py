"""FlowMonitor — flow-state monitoring engine with a PySide6 front end."""

__version__ = "0.1.0"
