"""
Capability adapters - Narrow views over the interaction backends.

Each XR interaction backend version exposes grab state differently:
- Grabbable: count of points currently selecting the object
- GrabInteractable / HandGrabInteractable: a "state" value (Select, Hover, ...)

The engine objects stay opaque. Every backend is wrapped in one adapter that
answers a single question through ``query()``:
- True: the backend reports the object as grabbed
- False: the backend reports the object as not grabbed
- None: the backend is absent or does not expose the accessor

Accessor errors raised by the backend propagate out of ``query()``. The
probe and the handedness resolver are where they get recovered.
"""

import logging
import numbers
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class CapabilitySource(ABC):
    """
    Base adapter for one interaction backend.

    Attributes:
        label: Name used in log lines (e.g. "Grabbable")
        authoritative: If True, a definite False from this source ends
            grab evaluation instead of falling through to the next source
    """

    authoritative: bool = False

    def __init__(self, backend: Any, label: str):
        self.backend = backend
        self.label = label

    @property
    def present(self) -> bool:
        """Whether a backend object is attached."""
        return self.backend is not None

    @abstractmethod
    def query(self) -> Optional[bool]:
        """Return the backend's grabbed answer, or None if it has none."""

    def selecting_interactors(self) -> Iterable[Any]:
        """Interactors currently selecting the object, in backend order."""
        return ()

    def _read(self, attr: str) -> Any:
        """Read an accessor from the backend, _MISSING if unavailable."""
        if self.backend is None:
            return _MISSING
        return getattr(self.backend, attr, _MISSING)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label})"


class PointCountSource(CapabilitySource):
    """
    Adapter for backends exposing a selecting-points count.

    Grabbed iff count > 0. This is the most granular signal, so its answer
    is authoritative. It is also the only source that enumerates the
    interactors holding the object.
    """

    authoritative = True

    def __init__(
        self,
        backend: Any,
        label: str = "Grabbable",
        attr: str = "selecting_points_count",
        interactors_attr: str = "selecting_interactors",
    ):
        """
        Initialize PointCountSource.

        Args:
            backend: Engine object (may be None)
            label: Name used in log lines
            attr: Name of the point-count accessor
            interactors_attr: Name of the selecting-interactors accessor
        """
        super().__init__(backend, label)
        self.attr = attr
        self.interactors_attr = interactors_attr

    def query(self) -> Optional[bool]:
        count = self._read(self.attr)
        if count is _MISSING:
            return None
        if callable(count):
            count = count()
        if isinstance(count, bool) or not isinstance(count, numbers.Integral):
            raise TypeError(f"{self.label}.{self.attr} is {type(count).__name__}, expected an integer")
        return int(count) > 0

    def selecting_interactors(self) -> Iterable[Any]:
        interactors = self._read(self.interactors_attr)
        if interactors is _MISSING or interactors is None:
            return ()
        if callable(interactors):
            interactors = interactors()
        return interactors


def canonical_state_name(state: Any) -> str:
    """Name of a backend state value ("Select" for InteractableState.Select)."""
    if isinstance(state, Enum):
        return state.name
    return str(state)


class SelectStateSource(CapabilitySource):
    """
    Adapter for backends exposing an interactable state.

    Grabbed iff the state's canonical name is "select" (case-insensitive).
    """

    SELECT = "select"

    def __init__(self, backend: Any, label: str = "GrabInteractable", attr: str = "state"):
        super().__init__(backend, label)
        self.attr = attr

    def query(self) -> Optional[bool]:
        state = self._read(self.attr)
        if state is _MISSING:
            return None
        if callable(state):
            state = state()
        if state is None:
            return None
        return canonical_state_name(state).lower() == self.SELECT


def build_sources(
    grabbable: Any = None,
    grab_interactable: Any = None,
    hand_grab_interactable: Any = None,
) -> List[CapabilitySource]:
    """
    Wrap the backends attached to an object, in probe priority order.

    Absent backends (None) are skipped.

    Args:
        grabbable: Backend exposing a selecting-points count
        grab_interactable: Backend exposing a state
        hand_grab_interactable: Second, independently typed state backend

    Returns:
        Ordered list of adapters
    """
    sources: List[CapabilitySource] = []
    if grabbable is not None:
        sources.append(PointCountSource(grabbable))
    if grab_interactable is not None:
        sources.append(SelectStateSource(grab_interactable, label="GrabInteractable"))
    if hand_grab_interactable is not None:
        sources.append(SelectStateSource(hand_grab_interactable, label="HandGrabInteractable"))
    logger.debug(f"Built capability sources: {sources}")
    return sources
