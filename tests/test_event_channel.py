"""EventChannel delivery semantics."""

from flowcanvas.workflow.event_channel import EventChannel


def test_fifo_delivery():
    channel = EventChannel("test")
    seen = []
    channel.subscribe(lambda e: seen.append(("a", e)))
    channel.subscribe(lambda e: seen.append(("b", e)))

    assert channel.publish(1) == 2
    assert seen == [("a", 1), ("b", 1)]


def test_failing_subscriber_does_not_block_others():
    channel = EventChannel("test")
    seen = []

    def boom(event):
        raise RuntimeError("subscriber failure")

    channel.subscribe(boom)
    channel.subscribe(seen.append)

    channel.publish("x")
    assert seen == ["x"]


def test_unsubscribe():
    channel = EventChannel("test")
    seen = []
    subscription = channel.subscribe(seen.append)

    subscription.close()
    channel.publish(1)

    assert seen == []
    assert not subscription.active
    assert channel.subscriber_count == 0


def test_subscription_as_context_manager():
    channel = EventChannel("test")
    seen = []
    with channel.subscribe(seen.append):
        channel.publish(1)
    channel.publish(2)
    assert seen == [1]


def test_unsubscribe_during_publish():
    channel = EventChannel("test")
    seen = []
    holder = {}

    def once(event):
        seen.append(event)
        holder["sub"].close()

    holder["sub"] = channel.subscribe(once)
    channel.publish(1)
    channel.publish(2)
    assert seen == [1]
