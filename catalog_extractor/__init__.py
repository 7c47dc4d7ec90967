"""Supplier catalog extraction and Brickfox export"""

__version__ = "0.1.0"
