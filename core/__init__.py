"""
Core Module - buildit Setup Black Box

This is a pure library module with NO CLI or server code.
Import this in your CLI, server, or any other application.

Usage:
    from core import Provisioner

    # run() and verify() are async
    # await provisioner.run(); await provisioner.verify()
"""

from core.api import Provisioner
from core.settings import Settings

__all__ = ["Provisioner", "Settings"]
