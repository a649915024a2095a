"""
Core API for the buildit setup system.

This package provides a clean, interface-agnostic API that can be used
by the CLI, the status server, or any other interface.
"""
from .provisioner import Provisioner

__all__ = ["Provisioner"]
