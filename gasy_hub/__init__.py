"""
Gasy Hub - community safety alerts.

Citizens submit SOS alerts, neighbours confirm or reject them, and
confirmed alerts are resolved by their authors.
"""

__version__ = "0.1.0"
