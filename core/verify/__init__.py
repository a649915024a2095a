"""Verification of a provisioned machine"""
from .checks import SetupVerifier

__all__ = ["SetupVerifier"]
