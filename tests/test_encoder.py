import math
import random

import pytest

from grab_serial_relay.capabilities import build_sources
from grab_serial_relay.config import RelayConfig
from grab_serial_relay.encoder import EncoderState, GrabEventEncoder, MonitoredObject, resolve_mass
from grab_serial_relay.handedness import HandAnchors
from grab_serial_relay.message import GrabAction, Hand

from .conftest import (
    FakeGrabbable,
    FakeInteractable,
    FakeInteractor,
    FakeRigidBody,
    FakeScene,
    FakeTransform,
    RecordingChannel,
)


def make_object(mass=200.0, interactors=None, transform=None):
    grabbable = FakeGrabbable(selecting_interactors=list(interactors or []))
    obj = MonitoredObject(
        name="Cube",
        sources=build_sources(grabbable=grabbable),
        rigid_body=FakeRigidBody(mass=mass),
        transform=transform,
    )
    return obj, grabbable


def drive(encoder, grabbable, sequence):
    events = []
    for grabbed in sequence:
        grabbable.selecting_points_count = 1 if grabbed else 0
        events.append(encoder.tick())
    return events


def test_grab_then_release_scenario():
    obj, grabbable = make_object(mass=200.0)
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel)

    events = drive(encoder, grabbable, [False, True, True, False])

    assert events[0] is None
    assert events[2] is None
    assert events[1].action is GrabAction.GRAB
    assert events[3].action is GrabAction.RELEASE
    assert channel.lines == ["0,1,200.00", "0,0,200.00"]
    assert encoder.state is EncoderState.IDLE


def test_one_event_per_flip_for_random_sequences():
    rng = random.Random(1234)
    for _ in range(50):
        sequence = [rng.random() < 0.5 for _ in range(rng.randint(0, 40))]
        obj, grabbable = make_object()
        channel = RecordingChannel()
        encoder = GrabEventEncoder(obj, channel)
        drive(encoder, grabbable, sequence)

        flips = sum(1 for prev, cur in zip([False] + sequence, sequence) if prev != cur)
        assert len(channel.lines) == flips
        # Actions strictly alternate, starting with a grab
        actions = [line.split(",")[1] for line in channel.lines]
        assert actions == ["1", "0"] * (flips // 2) + ["1"] * (flips % 2)


def test_repeated_results_emit_nothing():
    obj, grabbable = make_object()
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel)
    drive(encoder, grabbable, [False] * 10)
    assert channel.lines == []
    drive(encoder, grabbable, [True] * 10)
    assert len(channel.lines) == 1


def test_hand_comes_from_interactor():
    obj, grabbable = make_object(mass=72.5, interactors=[FakeInteractor(handedness="Right")])
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel)
    drive(encoder, grabbable, [True])
    assert channel.lines == ["1,1,72.50"]


def test_hand_from_scene_anchors_found_by_name():
    scene = FakeScene({
        "LeftHandAnchor": FakeTransform((-1.0, 0.0, 0.0)),
        "RightHandAnchor": FakeTransform((1.0, 0.0, 0.0)),
    })
    obj, grabbable = make_object(mass=10.0, transform=FakeTransform((0.9, 0.0, 0.0)))
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel, scene=scene)
    drive(encoder, grabbable, [True, False])
    assert channel.lines == ["1,1,10.00", "1,0,10.00"]
    assert scene.lookups == ["LeftHandAnchor", "RightHandAnchor"]


def test_anchor_lookup_happens_once():
    scene = FakeScene()
    obj, grabbable = make_object()
    encoder = GrabEventEncoder(obj, RecordingChannel(), scene=scene)
    drive(encoder, grabbable, [True, False, True])
    encoder.init()
    assert scene.lookups == ["LeftHandAnchor", "RightHandAnchor"]


def test_explicit_anchors_skip_scene_lookup():
    scene = FakeScene()
    anchors = HandAnchors(left=FakeTransform((5.0, 0.0, 0.0)), right=FakeTransform((-5.0, 0.0, 0.0)))
    obj, grabbable = make_object(transform=FakeTransform((-4.0, 0.0, 0.0)))
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel, anchors=anchors, scene=scene)
    drive(encoder, grabbable, [True])
    assert scene.lookups == []
    assert channel.lines[0].startswith("1,")


def test_mass_override_wins():
    obj, grabbable = make_object(mass=200.0)
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel, mass_override_g=150.0)
    drive(encoder, grabbable, [True])
    assert channel.lines == ["0,1,150.00"]


def test_non_finite_mass_override_uses_rigid_body():
    obj, grabbable = make_object(mass=8.0)
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel, mass_override_g=math.inf)
    drive(encoder, grabbable, [True, False])
    assert channel.lines == ["0,1,8.00", "0,0,8.00"]
    assert encoder.state is EncoderState.IDLE


def test_mass_is_cached_at_init():
    obj, grabbable = make_object(mass=50.0)
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel)
    encoder.init()
    obj.rigid_body.mass = 999.0
    drive(encoder, grabbable, [True])
    assert channel.lines == ["0,1,50.00"]


@pytest.mark.parametrize(
    "override, body, expected",
    [
        (0.0, FakeRigidBody(mass=3.0), 3.0),
        (0.0, FakeRigidBody(mass=-4.0), 0.0),
        (-1.0, FakeRigidBody(mass=8.0), 8.0),
        (12.5, FakeRigidBody(mass=8.0), 12.5),
        (0.0, None, 0.0),
        (0.0, FakeRigidBody(mass=math.nan), 0.0),
        (math.inf, FakeRigidBody(mass=8.0), 8.0),
        (math.nan, FakeRigidBody(mass=8.0), 8.0),
    ],
)
def test_resolve_mass(override, body, expected):
    assert resolve_mass(override, body) == expected


def test_tick_without_init_initializes():
    obj, grabbable = make_object(mass=3.0)
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel)
    grabbable.selecting_points_count = 1
    event = encoder.tick()
    assert event is not None and event.mass_g == 3.0
    assert channel.lines == ["0,1,3.00"]


def test_dropped_sends_are_counted_and_state_still_advances():
    obj, grabbable = make_object()
    channel = RecordingChannel(accept=False)
    encoder = GrabEventEncoder(obj, channel)
    drive(encoder, grabbable, [True, True, False])
    stats = encoder.get_stats()
    assert stats["events_emitted"] == 2
    assert stats["events_dropped"] == 2
    assert stats["ticks"] == 3
    assert encoder.state is EncoderState.IDLE


def test_without_channel_detects_only():
    obj, grabbable = make_object()
    encoder = GrabEventEncoder(obj, None)
    events = drive(encoder, grabbable, [True])
    assert events[0].action is GrabAction.GRAB
    assert encoder.get_stats()["events_dropped"] == 1


def test_shutdown_stops_emission():
    obj, grabbable = make_object()
    channel = RecordingChannel()
    encoder = GrabEventEncoder(obj, channel)
    encoder.shutdown()
    drive(encoder, grabbable, [True, False])
    assert channel.lines == []


def test_state_backend_and_unreadable_position():
    class ExplodingTransform:
        @property
        def position(self):
            raise RuntimeError("destroyed")

    interactable = FakeInteractable(state="Select")
    obj = MonitoredObject(
        name="Mug",
        sources=build_sources(grab_interactable=interactable),
        rigid_body=FakeRigidBody(mass=1.0),
        transform=ExplodingTransform(),
    )
    channel = RecordingChannel()
    scene = FakeScene({
        "LeftHandAnchor": FakeTransform((-1.0, 0.0, 0.0)),
        "RightHandAnchor": FakeTransform((1.0, 0.0, 0.0)),
    })
    encoder = GrabEventEncoder(obj, channel, scene=scene)
    event = encoder.tick()
    assert event.hand is Hand.LEFT
    assert channel.lines == ["0,1,1.00"]


def test_encoders_are_independent():
    obj_a, grabbable_a = make_object(mass=1.0)
    obj_b, grabbable_b = make_object(mass=2.0)
    channel = RecordingChannel()
    a = GrabEventEncoder(obj_a, channel)
    b = GrabEventEncoder(obj_b, channel)
    grabbable_a.selecting_points_count = 1
    a.tick()
    b.tick()
    assert channel.lines == ["0,1,1.00"]
    assert a.state is EncoderState.GRABBED
    assert b.state is EncoderState.IDLE


def test_from_config():
    obj, grabbable = make_object(mass=5.0)
    config = RelayConfig(port="loop://", mass_override_g=42.0, left_anchor_name="L", right_anchor_name="R")
    scene = FakeScene()
    encoder = GrabEventEncoder.from_config(obj, RecordingChannel(), config, scene=scene)
    encoder.init()
    assert encoder.mass_g == 42.0
    assert scene.lookups == ["L", "R"]
