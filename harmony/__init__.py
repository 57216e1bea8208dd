"""
Harmony Memory Service
Encrypted semantic memory for the Harmony creative assistant
"""

__version__ = "0.1.0"
