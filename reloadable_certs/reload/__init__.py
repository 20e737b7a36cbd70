"""
Out-of-band reload triggering for certificate stores.
"""

from .manager import ReloadManager
from .triggers import Channel, ManualTrigger, SignalTrigger, Trigger

__all__ = [
    "ReloadManager",
    "Channel",
    "Trigger",
    "ManualTrigger",
    "SignalTrigger"
]
