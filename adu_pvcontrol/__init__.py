"""
adu-pvcontrol - Pantavisor revision updates for the device update agent.
"""

__version__ = "0.3.0"
__logo__ = "⇅"
