"""
Relay configuration.

Set once before the relay starts. Values can come from the environment:

Environment Variables:
    GRAB_RELAY_PORT: Serial device (default: COM8 on Windows, /dev/ttyUSB0 elsewhere)
    GRAB_RELAY_BAUD: Baud rate (default: 57600)
    GRAB_RELAY_MASS_G: Mass override in grams, used if > 0 (default: 0)
    GRAB_RELAY_RATE_HZ: Polling rate of the tick loop (default: 72)
"""

import math
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_PORT = "COM8" if sys.platform.startswith("win") else "/dev/ttyUSB0"
DEFAULT_BAUD_RATE = 57600
DEFAULT_TIMEOUT_S = 0.05
DEFAULT_RATE_HZ = 72.0


@dataclass(frozen=True)
class RelayConfig:
    """
    Configuration for one relay process.

    Attributes:
        port: Serial device name or pyserial URL
        baud_rate: Serial baud rate
        timeout_s: Serial read/write timeout in seconds
        mass_override_g: If > 0, used instead of the rigid-body mass
        left_anchor_name: Scene name of the left hand anchor
        right_anchor_name: Scene name of the right hand anchor
        rate_hz: Tick loop rate
    """
    port: str = DEFAULT_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    timeout_s: float = DEFAULT_TIMEOUT_S
    mass_override_g: float = 0.0
    left_anchor_name: str = "LeftHandAnchor"
    right_anchor_name: str = "RightHandAnchor"
    rate_hz: float = DEFAULT_RATE_HZ

    def __post_init__(self) -> None:
        if not self.port:
            raise ValueError("port must not be empty")
        if self.baud_rate <= 0:
            raise ValueError(f"baud_rate={self.baud_rate} must be positive")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s={self.timeout_s} must be positive")
        if not math.isfinite(self.mass_override_g):
            raise ValueError(f"mass_override_g={self.mass_override_g} must be finite")
        if self.rate_hz <= 0:
            raise ValueError(f"rate_hz={self.rate_hz} must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """
        Load configuration from environment variables.

        Raises:
            ValueError: if a variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        return cls(
            port=env.get("GRAB_RELAY_PORT", DEFAULT_PORT),
            baud_rate=int(env.get("GRAB_RELAY_BAUD", str(DEFAULT_BAUD_RATE))),
            mass_override_g=float(env.get("GRAB_RELAY_MASS_G", "0")),
            rate_hz=float(env.get("GRAB_RELAY_RATE_HZ", str(DEFAULT_RATE_HZ))),
        )
