"""
Grab event schema and wire encoding.

Defines the ASCII line format sent to the hardware over the serial port:

    <hand>,<action>,<mass>\\n

hand is 0 (left) or 1 (right), action is 0 (release) or 1 (grab) and mass
is in grams with exactly two fraction digits. Example: ``0,1,150.00``.
"""

import math
from dataclasses import dataclass
from enum import IntEnum


class Hand(IntEnum):
    """Hand that performed an interaction. Value is the wire code."""
    LEFT = 0
    RIGHT = 1


class GrabAction(IntEnum):
    """Grab state transition. Value is the wire code."""
    RELEASE = 0
    GRAB = 1


def format_mass(mass_g: float) -> str:
    """Format a mass in grams as fixed-point with two fraction digits."""
    return f"{mass_g:.2f}"


@dataclass(frozen=True)
class GrabEvent:
    """
    A single grab/release transition sent to the hardware.
    
    Attributes:
        hand: Hand that grabbed or released the object
        action: GRAB or RELEASE
        mass_g: Object mass in grams (finite, >= 0)
    """
    hand: Hand
    action: GrabAction
    mass_g: float
    
    def __post_init__(self) -> None:
        if not math.isfinite(self.mass_g):
            raise ValueError(f"mass_g={self.mass_g} is not finite")
        if self.mass_g < 0:
            raise ValueError(f"mass_g={self.mass_g} is negative")
        # Normalize plain ints/bools to the enum types
        object.__setattr__(self, "hand", Hand(int(self.hand)))
        object.__setattr__(self, "action", GrabAction(int(self.action)))
    
    def to_line(self) -> str:
        """Serialize to a wire line, without the trailing newline."""
        return f"{int(self.hand)},{int(self.action)},{format_mass(self.mass_g)}"
    
    @classmethod
    def from_line(cls, line: str) -> 'GrabEvent':
        """
        Parse a wire line (trailing newline allowed).
        
        Raises:
            ValueError: if the line is not ``<hand>,<action>,<mass>``
        """
        parts = line.strip().split(",")
        if len(parts) != 3:
            raise ValueError(f"Expected 3 fields, got {len(parts)}: {line!r}")
        hand_s, action_s, mass_s = parts
        if hand_s not in ("0", "1") or action_s not in ("0", "1"):
            raise ValueError(f"Invalid hand/action codes: {line!r}")
        return cls(
            hand=Hand(int(hand_s)),
            action=GrabAction(int(action_s)),
            mass_g=float(mass_s),
        )


def create_grab_event(hand: Hand, grabbed: bool, mass_g: float) -> GrabEvent:
    """
    Create a grab event from the new grabbed state.
    
    Args:
        hand: Hand that performed the transition
        grabbed: True for a grab, False for a release
        mass_g: Object mass in grams
        
    Returns:
        GrabEvent instance
    """
    action = GrabAction.GRAB if grabbed else GrabAction.RELEASE
    return GrabEvent(hand=hand, action=action, mass_g=mass_g)
