"""
wlansim - Wireless echo scenario simulator

Grid-placed, random-walking wireless nodes exchanging UDP echo traffic,
driven by a single discrete-event scheduler.
"""

__version__ = "0.1.0"
