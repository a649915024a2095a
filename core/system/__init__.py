"""Process execution for provisioning steps"""
from .runner import CommandError, CommandResult, CommandRunner, format_command

__all__ = ["CommandError", "CommandResult", "CommandRunner", "format_command"]
