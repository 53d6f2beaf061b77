"""
Lock inspector for finding and releasing stuck locks.
"""

from joblock.inspector.main import LockInspector

__all__ = ["LockInspector"]
