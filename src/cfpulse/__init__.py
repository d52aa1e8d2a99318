"""
cfpulse - Cloud Foundry operations exposed as agent tools
"""

__version__ = "0.1.0"

from .core import CfApplicationCloner, build_operations
from .errors import CfPulseError, CloneError

__all__ = ["CfApplicationCloner", "CfPulseError", "CloneError", "build_operations"]
