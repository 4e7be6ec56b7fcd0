"""
Leader Tracker for Polymarket

A tool to find traders who consistently trade first in the markets they share
with other traders, by aligning trade histories per market and measuring who
got in earlier and by how much.
"""

__version__ = "0.1.0"
