"""
Handedness Resolver - Which hand grabbed or released an object.

Backend versions expose handedness under different names, or not at all,
so resolution cascades (first answer wins):
A) Interactors selecting the object: their handedness attribute, then
   their display text, matched for "left"/"right"
B) Distance from the left/right hand anchors to the object
C) Left
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from .capabilities import CapabilitySource, PointCountSource, canonical_state_name
from .message import Hand

logger = logging.getLogger(__name__)

DEFAULT_LEFT_ANCHOR = "LeftHandAnchor"
DEFAULT_RIGHT_ANCHOR = "RightHandAnchor"

HANDEDNESS_ATTRS = ("handedness", "Handedness")


# ============================================================================
# Geometry Helpers
# ============================================================================

def _vec3(value: Any) -> np.ndarray:
    """Convert a position-like value to a 3D vector."""
    p = np.asarray(value, dtype=np.float64).reshape(-1)
    if p.shape != (3,):
        raise ValueError(f"Expected a 3D position, got shape {p.shape}")
    return p


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(a - b))


def _match_text(text: Optional[str]) -> Optional[Hand]:
    """Case-insensitive substring match; "left" is tested first."""
    if not text:
        return None
    s = text.lower()
    if "left" in s:
        return Hand.LEFT
    if "right" in s:
        return Hand.RIGHT
    return None


# ============================================================================
# Anchors
# ============================================================================

@dataclass
class HandAnchors:
    """
    Fallback hand anchors (tracked transforms with a ``position``).

    Positions are read at resolve time, so the anchors follow the hands.
    """
    left: Optional[Any] = None
    right: Optional[Any] = None

    @property
    def complete(self) -> bool:
        """Both anchors are known."""
        return self.left is not None and self.right is not None


def find_hand_anchors(
    scene: Any,
    anchors: Optional[HandAnchors] = None,
    left_name: str = DEFAULT_LEFT_ANCHOR,
    right_name: str = DEFAULT_RIGHT_ANCHOR,
) -> HandAnchors:
    """
    Fill in missing anchors by well-known name from the scene graph.

    Anchors already set are kept. A missing scene, a failed lookup or an
    unknown name leaves that anchor unset.

    Args:
        scene: Object exposing ``find(name)`` (may be None)
        anchors: Explicitly configured anchors
        left_name: Name of the left hand anchor in the scene
        right_name: Name of the right hand anchor in the scene

    Returns:
        HandAnchors with whatever could be found
    """
    anchors = anchors if anchors is not None else HandAnchors()
    if scene is None:
        return anchors

    def lookup(name: str) -> Optional[Any]:
        try:
            return scene.find(name)
        except Exception as e:
            logger.debug(f"Anchor lookup failed for {name}: {e}")
            return None

    left = anchors.left if anchors.left is not None else lookup(left_name)
    right = anchors.right if anchors.right is not None else lookup(right_name)

    if left is None or right is None:
        logger.info(f"Hand anchors incomplete (left={left is not None}, right={right is not None})")

    return HandAnchors(left=left, right=right)


# ============================================================================
# Resolver
# ============================================================================

class HandednessResolver:
    """
    Total function from interaction facts to a Hand. Never raises.
    """

    def __init__(self):
        self._by_source: dict = {
            "interactor": 0,
            "anchor": 0,
            "default": 0,
        }

    def resolve(
        self,
        sources: Sequence[CapabilitySource],
        object_position: Any = None,
        anchors: Optional[HandAnchors] = None,
    ) -> Hand:
        """
        Resolve which hand is interacting with the object.

        Args:
            sources: Capability adapters attached to the object
            object_position: Object position (3-vector), used with anchors
            anchors: Fallback hand anchors

        Returns:
            Hand.LEFT or Hand.RIGHT
        """
        hand = self._from_interactors(sources)
        if hand is not None:
            self._by_source["interactor"] += 1
            return hand

        hand = self._from_anchors(object_position, anchors)
        if hand is not None:
            self._by_source["anchor"] += 1
            return hand

        self._by_source["default"] += 1
        return Hand.LEFT

    def _from_interactors(self, sources: Sequence[CapabilitySource]) -> Optional[Hand]:
        """Step A: handedness attribute, then display text, per interactor."""
        primary = next((s for s in sources if isinstance(s, PointCountSource) and s.present), None)
        if primary is None:
            return None

        try:
            interactors: Iterable[Any] = primary.selecting_interactors()
            for interactor in interactors:
                # Only the first attribute that exists is read, even if it is None.
                attr = next((a for a in HANDEDNESS_ATTRS if hasattr(interactor, a)), None)
                value = getattr(interactor, attr) if attr is not None else None
                if value is not None:
                    hand = _match_text(canonical_state_name(value))
                    if hand is not None:
                        return hand

                hand = _match_text(str(interactor))
                if hand is not None:
                    return hand
        except Exception as e:
            logger.debug(f"Interactor handedness lookup failed on {primary!r}: {e}")

        return None

    def _from_anchors(self, object_position: Any, anchors: Optional[HandAnchors]) -> Optional[Hand]:
        """Step B: nearest anchor; ties go to the left hand."""
        if anchors is None or not anchors.complete or object_position is None:
            return None

        try:
            obj = _vec3(object_position)
            dl = _distance(_vec3(anchors.left.position), obj)
            dr = _distance(_vec3(anchors.right.position), obj)
        except Exception as e:
            logger.debug(f"Anchor distance failed: {e}")
            return None

        return Hand.LEFT if dl <= dr else Hand.RIGHT

    def get_stats(self) -> dict:
        """How often each cascade step produced the answer."""
        return dict(self._by_source)
