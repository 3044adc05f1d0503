"""
LCU relay: bridges the League client's local API to browser consumers
"""

__version__ = "0.1.0"
