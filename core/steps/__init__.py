"""Setup steps package.

Each step module exposes a `build_<name>_steps(context)` function returning `SetupStep`s.
`factory.get_setup_steps` assembles them in execution order.
"""

from .factory import get_setup_steps

__all__ = ["get_setup_steps"]
