"""
BASICloader Command-Line Interface
==================================

This package provides the ``basicloader`` command, a Click-based front
end to the conversion pipeline, and the shared CLI error handling.
"""

__all__ = ["basicloader"]
