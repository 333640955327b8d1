"""
CZar Command-Line Interface
===========================

- **cz**: translate .cz sources to C header/source pairs

The tool is a Click application; see `cz --help`.
"""

__all__ = ["cz"]
