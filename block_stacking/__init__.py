"""
Sequential pick-and-place block stacking pipeline.
"""

__version__ = "0.1.0"
