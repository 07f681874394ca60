"""
Chatravasa hostel meal opt-in service
"""

__version__ = "1.0.0"
