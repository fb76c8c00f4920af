"""
OPTICS cluster ordering and cluster extraction.
"""

__version__ = "1.0.0"
