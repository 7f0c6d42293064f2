"""
Grab Event Encoder - Edge-triggered grab/release events for one object.

Two-state machine (IDLE, GRABBED) advanced once per tick:
- IDLE    --grabbed-->     GRABBED  emits GRAB
- GRABBED --not grabbed--> IDLE     emits RELEASE
- anything else: no event, no side effect

Each event is written to the serial channel and logged. Mass is resolved
once in init() and reused for every event of the object.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .capabilities import CapabilitySource
from .config import RelayConfig
from .grab_probe import GrabStateProbe
from .handedness import (
    DEFAULT_LEFT_ANCHOR,
    DEFAULT_RIGHT_ANCHOR,
    HandAnchors,
    HandednessResolver,
    find_hand_anchors,
)
from .message import GrabEvent, create_grab_event
from .serial_channel import SerialChannel

logger = logging.getLogger(__name__)


class EncoderState(str, Enum):
    IDLE = "IDLE"
    GRABBED = "GRABBED"


@dataclass
class MonitoredObject:
    """
    A scene object whose grab state is relayed.

    The scene owns it; the encoder only borrows it while polling.

    Attributes:
        name: Object identity used in log lines
        sources: Capability adapters in probe priority order
        rigid_body: Object with a ``mass`` attribute in grams (optional)
        transform: Object with a ``position`` attribute (optional)
    """
    name: str
    sources: List[CapabilitySource] = field(default_factory=list)
    rigid_body: Optional[Any] = None
    transform: Optional[Any] = None

    def position(self) -> Optional[Any]:
        if self.transform is None:
            return None
        return self.transform.position


def resolve_mass(mass_override_g: float, rigid_body: Any) -> float:
    """
    Mass in grams sent with every event of an object.

    A positive, finite override wins. Otherwise the rigid-body mass, already
    in grams, clamped to >= 0. No rigid body or a non-finite mass gives 0.
    """
    if not math.isfinite(mass_override_g):
        logger.warning(f"Mass override {mass_override_g} is not finite, ignoring it")
    elif mass_override_g > 0:
        return float(mass_override_g)
    if rigid_body is None:
        return 0.0
    mass = float(rigid_body.mass)
    if not math.isfinite(mass):
        logger.warning(f"Rigid body mass {mass} is not finite, using 0")
        return 0.0
    return max(0.0, mass)


class GrabEventEncoder:
    """
    Converts polled grab state of one MonitoredObject into GrabEvents.

    Encoders are independent; each keeps its own last-known state. The
    serial channel is injected and may be shared by many encoders.
    """

    def __init__(
        self,
        obj: MonitoredObject,
        channel: Optional[SerialChannel],
        probe: Optional[GrabStateProbe] = None,
        resolver: Optional[HandednessResolver] = None,
        mass_override_g: float = 0.0,
        anchors: Optional[HandAnchors] = None,
        scene: Any = None,
        left_anchor_name: str = DEFAULT_LEFT_ANCHOR,
        right_anchor_name: str = DEFAULT_RIGHT_ANCHOR,
    ):
        """
        Initialize the encoder.

        Args:
            obj: Object to monitor
            channel: Serial channel for events (None = detect only)
            probe: Grab state probe (a new one if None)
            resolver: Handedness resolver (a new one if None)
            mass_override_g: If > 0, used instead of the rigid-body mass
            anchors: Explicit fallback hand anchors
            scene: Scene graph used to look up missing anchors by name
            left_anchor_name: Scene name of the left hand anchor
            right_anchor_name: Scene name of the right hand anchor
        """
        self.obj = obj
        self.channel = channel
        self.probe = probe or GrabStateProbe()
        self.resolver = resolver or HandednessResolver()
        self.mass_override_g = mass_override_g
        self.scene = scene
        self.left_anchor_name = left_anchor_name
        self.right_anchor_name = right_anchor_name

        self._anchors = anchors
        self._state = EncoderState.IDLE
        self._mass_g = 0.0
        self._initialized = False
        self._shut_down = False

        # Statistics
        self._ticks = 0
        self._events_emitted = 0
        self._events_dropped = 0

    @classmethod
    def from_config(
        cls,
        obj: MonitoredObject,
        channel: Optional[SerialChannel],
        config: RelayConfig,
        **kwargs: Any,
    ) -> "GrabEventEncoder":
        """Create an encoder using mass override and anchor names from config."""
        return cls(
            obj,
            channel,
            mass_override_g=config.mass_override_g,
            left_anchor_name=config.left_anchor_name,
            right_anchor_name=config.right_anchor_name,
            **kwargs,
        )

    @property
    def state(self) -> EncoderState:
        return self._state

    @property
    def mass_g(self) -> float:
        return self._mass_g

    @property
    def anchors(self) -> Optional[HandAnchors]:
        return self._anchors

    def init(self) -> None:
        """Cache the mass and look up missing hand anchors. Idempotent."""
        if self._initialized:
            return

        self._mass_g = resolve_mass(self.mass_override_g, self.obj.rigid_body)

        anchors = self._anchors or HandAnchors()
        if not anchors.complete:
            self._anchors = find_hand_anchors(
                self.scene,
                anchors,
                left_name=self.left_anchor_name,
                right_name=self.right_anchor_name,
            )

        self._initialized = True
        logger.debug(f"Encoder for {self.obj.name} initialized, mass={self._mass_g:.2f} g")

    def tick(self) -> Optional[GrabEvent]:
        """
        Poll the object once and emit an event on a grab state change.

        Safe at any cadence; runs init() first if it has not run.

        Returns:
            The emitted GrabEvent, or None if the state did not change
        """
        if self._shut_down:
            return None
        if not self._initialized:
            self.init()

        self._ticks += 1
        grabbed = self.probe.is_grabbed(self.obj.sources)
        if grabbed == (self._state is EncoderState.GRABBED):
            return None

        hand = self.resolver.resolve(self.obj.sources, self._object_position(), self._anchors)
        event = create_grab_event(hand, grabbed, self._mass_g)
        line = event.to_line()

        sent = self.channel.send(line) if self.channel is not None else False
        self._state = EncoderState.GRABBED if grabbed else EncoderState.IDLE

        self._events_emitted += 1
        if not sent:
            self._events_dropped += 1

        logger.info(f"[GrabSend] {self.obj.name} -> {line}")
        return event

    def shutdown(self) -> None:
        """Stop emitting. Later ticks are no-ops; the channel is left open."""
        if self._shut_down:
            return
        self._shut_down = True
        logger.debug(f"Encoder for {self.obj.name} shut down in state {self._state.value}")

    def _object_position(self) -> Optional[Any]:
        try:
            return self.obj.position()
        except Exception as e:
            logger.debug(f"Position of {self.obj.name} unavailable: {e}")
            return None

    def get_stats(self) -> dict:
        """Get encoder statistics."""
        return {
            "object": self.obj.name,
            "state": self._state.value,
            "ticks": self._ticks,
            "events_emitted": self._events_emitted,
            "events_dropped": self._events_dropped,
            "mass_g": self._mass_g,
        }
