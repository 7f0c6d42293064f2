"""
Grab Serial Relay - Grab/release events from an XR scene to a serial device.

This package polls the grab capabilities attached to physical-feeling virtual
objects, turns their continuous state into discrete grab/release events, and
writes each event (hand, action, mass) as one ASCII line to a serial port
for haptic or motor controllers.

NO ENGINE DEPENDENCIES. Scene objects are wrapped by small adapters.
"""

__version__ = "1.0.0"
