#!/usr/bin/env python3
"""
Grab Serial Relay - Bench Driver

Plays a scripted grab/release sequence through the real relay pipeline
(probe, handedness, encoder, serial channel) so the hardware side can be
checked without the XR scene.

Usage:
    python -m grab_serial_relay.main --port /dev/ttyUSB0 --mass 150 --sequence 0110
    python -m grab_serial_relay.main --port COM8 --hand right --sequence 01010 --rate 2
    python -m grab_serial_relay.main --port loop:// --debug
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import List

from .capabilities import build_sources
from .config import RelayConfig
from .encoder import GrabEventEncoder, MonitoredObject
from .runner import TickLoop
from .serial_channel import SerialChannel

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@dataclass
class ScriptedInteractor:
    """Bench stand-in for an XR hand interactor."""
    handedness: str

    def __str__(self) -> str:
        return f"HandGrabInteractor({self.handedness})"


@dataclass
class ScriptedGrabbable:
    """
    Bench stand-in for a point-count backend.

    Each read of ``selecting_points_count`` consumes one step of the script;
    the last step repeats once the script is exhausted.
    """
    script: List[bool]
    interactor: ScriptedInteractor
    _step: int = field(default=0, init=False)

    @property
    def selecting_points_count(self) -> int:
        grabbed = self.script[min(self._step, len(self.script) - 1)]
        self._step += 1
        return 1 if grabbed else 0

    @property
    def selecting_interactors(self) -> List[ScriptedInteractor]:
        return [self.interactor]


@dataclass
class BenchRigidBody:
    mass: float


def parse_sequence(text: str) -> List[bool]:
    """Parse a string of 0/1 probe results ("0110")."""
    if not text or any(c not in "01" for c in text):
        raise argparse.ArgumentTypeError(f"sequence must be a non-empty string of 0/1, got {text!r}")
    return [c == "1" for c in text]


def main() -> None:
    """Main entry point."""
    try:
        env_config = RelayConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid environment configuration: {e}")
        sys.exit(2)

    parser = argparse.ArgumentParser(
        description="Grab Serial Relay bench driver",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--port",
        type=str,
        default=env_config.port,
        help="Serial device or pyserial URL",
    )
    parser.add_argument(
        "--baud",
        type=int,
        default=env_config.baud_rate,
        help="Baud rate",
    )
    parser.add_argument(
        "--mass",
        type=float,
        default=env_config.mass_override_g if env_config.mass_override_g > 0 else 100.0,
        help="Object mass in grams",
    )
    parser.add_argument(
        "--sequence",
        type=parse_sequence,
        default=parse_sequence("0110"),
        help="Probe results, one per tick (1 = grabbed)",
    )
    parser.add_argument(
        "--hand",
        choices=("left", "right"),
        default="left",
        help="Hand reported by the scripted interactor",
    )
    parser.add_argument(
        "--rate",
        type=float,
        default=2.0,
        help="Tick rate (Hz)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = RelayConfig(port=args.port, baud_rate=args.baud, rate_hz=args.rate)
    except ValueError as e:
        parser.error(str(e))

    grabbable = ScriptedGrabbable(args.sequence, ScriptedInteractor(args.hand))
    obj = MonitoredObject(
        name="BenchObject",
        sources=build_sources(grabbable=grabbable),
        rigid_body=BenchRigidBody(mass=args.mass),
    )

    channel = SerialChannel.from_config(config)
    channel.open()
    encoder = GrabEventEncoder.from_config(obj, channel, config)
    loop = TickLoop([encoder], rate_hz=config.rate_hz)

    try:
        loop.run(max_ticks=len(args.sequence))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        channel.close()
        logger.info(f"Encoder stats: {encoder.get_stats()}")
        logger.info(f"Channel stats: {channel.get_stats()}")


if __name__ == "__main__":
    main()
