"""
Terminal visualization for training runs.
"""

from .terminal_display import TerminalTrainingDisplay

__all__ = ['TerminalTrainingDisplay']
