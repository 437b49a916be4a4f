"""
CLI module for solloc commands.
"""

from .main import main

__all__ = [
    'main',
]
