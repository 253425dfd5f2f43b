"""
Temporal Layer

Injectable time source for the catalog core.
"""

from .clock import LogicalClock, ClockExhausted, resolve_clock

__all__ = ['LogicalClock', 'ClockExhausted', 'resolve_clock']
