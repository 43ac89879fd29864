"""
slotengine - appointment slot finding and calendar layout for salon bookings.
"""

__version__ = "0.1.0"
