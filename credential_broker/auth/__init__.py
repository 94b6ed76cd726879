"""AWS role assumption.

This module provides the STS client used for role-assumed credentials.
"""

from .role_manager import MfaToken, RoleManager

__all__ = ["MfaToken", "RoleManager"]
