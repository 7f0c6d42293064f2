from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import pytest

from grab_serial_relay.serial_channel import SerialChannel


class InteractableState(Enum):
    Normal = 0
    Hover = 1
    Select = 2
    Disabled = 3


@dataclass
class FakeInteractor:
    """Hand interactor with an optional handedness attribute."""
    name: str = "Interactor"
    handedness: Optional[Any] = None

    def __str__(self) -> str:
        return self.name


@dataclass
class FakeGrabbable:
    selecting_points_count: int = 0
    selecting_interactors: List[Any] = field(default_factory=list)


@dataclass
class FakeInteractable:
    state: Any = InteractableState.Normal


class BrokenBackend:
    """Backend whose accessors raise."""

    @property
    def selecting_points_count(self) -> int:
        raise RuntimeError("backend torn down")

    @property
    def selecting_interactors(self) -> List[Any]:
        raise RuntimeError("backend torn down")

    @property
    def state(self) -> Any:
        raise RuntimeError("backend torn down")


@dataclass
class FakeTransform:
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class FakeRigidBody:
    mass: float = 0.0


class FakeScene:
    """Scene graph with lookup by name."""

    def __init__(self, objects: Optional[Dict[str, Any]] = None) -> None:
        self.objects = objects or {}
        self.lookups: List[str] = []

    def find(self, name: str) -> Optional[Any]:
        self.lookups.append(name)
        return self.objects.get(name)


class RecordingChannel:
    """Channel double recording every line; can be told to drop."""

    def __init__(self, accept: bool = True) -> None:
        self.lines: List[str] = []
        self.accept = accept

    def send(self, line: str) -> bool:
        self.lines.append(line)
        return self.accept


@pytest.fixture(autouse=True)
def release_serial_owner():
    """Each test starts with no process owner of the serial port."""
    SerialChannel._owner = None
    yield
    owner = SerialChannel._owner
    if owner is not None:
        owner.close()
    SerialChannel._owner = None


@pytest.fixture
def recording_channel() -> RecordingChannel:
    return RecordingChannel()
