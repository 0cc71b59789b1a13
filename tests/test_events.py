import logging

from pendulum_game.events import ActivityChanged, EventBus, Phase, PhaseChanged, TimeTicked


def test_phase_names_and_terminal_flags():
    assert str(Phase.POSITION) == "Position"
    assert Phase.WINNER.is_terminal
    assert Phase.LOSER.is_terminal
    assert not Phase.POSITION.is_terminal
    assert not Phase.NOT_STARTED.is_terminal


def test_subscribe_and_unsubscribe():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(seen.append)
    bus.publish(TimeTicked())
    unsubscribe()
    bus.publish(TimeTicked())
    unsubscribe()
    assert seen == [TimeTicked()]


def test_failing_listener_does_not_block_others(caplog):
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(broken)
    bus.subscribe(seen.append)
    with caplog.at_level(logging.ERROR, logger="pendulum_game.events"):
        bus.publish(ActivityChanged(True))
    assert seen == [ActivityChanged(True)]
    assert "failed" in caplog.text


def test_queue_subscription_is_bounded():
    bus = EventBus()
    q, _ = bus.subscribe_queue(maxsize=2)
    bus.publish(PhaseChanged(Phase.NOT_STARTED, Phase.POSITION))
    bus.publish(TimeTicked())
    bus.publish(TimeTicked())
    assert q.qsize() == 2
    assert q.get_nowait() == PhaseChanged(Phase.NOT_STARTED, Phase.POSITION)
    assert q.get_nowait() == TimeTicked()


def test_queue_subscription_can_be_detached():
    bus = EventBus()
    q, unsubscribe = bus.subscribe_queue(maxsize=4)
    bus.publish(TimeTicked())
    unsubscribe()
    bus.publish(TimeTicked())
    assert q.qsize() == 1
