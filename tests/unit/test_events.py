import asyncio
import gc

from figmaflow.application.services.events import ErrorEvent, PipelineEventBus, ProgressEvent
from figmaflow.domain.types import Stage


def _progress(percent: float) -> ProgressEvent:
    return ProgressEvent(document_id="doc", stage=Stage.PARSING, percent=percent, message="Parsing")


def test_subscribers_receive_events_in_order():
    bus = PipelineEventBus()
    received = []
    bus.subscribe(received.append)
    bus.publish(_progress(10))
    bus.publish(_progress(20))
    assert [e.percent for e in received] == [10, 20]


def test_unsubscribe_stops_delivery():
    bus = PipelineEventBus()
    received = []
    unsubscribe = bus.subscribe(received.append)
    unsubscribe()
    unsubscribe()
    bus.publish(_progress(10))
    assert received == []


def test_failing_subscriber_does_not_block_others():
    bus = PipelineEventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(broken)
    bus.subscribe(received.append)
    bus.publish(ErrorEvent(document_id="doc", stage="images", error=ValueError("x"), recoverable=True))
    assert len(received) == 1


async def test_stream_yields_events_until_closed():
    bus = PipelineEventBus()
    stream = bus.stream()
    bus.publish(_progress(10))
    bus.publish(_progress(50))
    bus.close()
    events = [event async for event in stream]
    assert [e.percent for e in events] == [10, 50]


async def test_stream_consumer_running_concurrently():
    bus = PipelineEventBus()

    async def consume():
        return [event.percent async for event in bus.stream()]

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    bus.publish(_progress(30))
    bus.close()
    assert await task == [30]


async def test_abandoned_stream_stops_receiving_events():
    bus = PipelineEventBus()
    stream = bus.stream()
    assert bus.open_streams == 1
    del stream
    gc.collect()
    bus.publish(_progress(10))
    assert bus.open_streams == 0


async def test_aclose_detaches_stream_and_ends_iteration():
    bus = PipelineEventBus()
    stream = bus.stream()
    bus.publish(_progress(10))
    await stream.aclose()
    assert bus.open_streams == 0
    bus.publish(_progress(20))
    assert [event async for event in stream] == []
