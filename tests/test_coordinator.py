import asyncio
from dataclasses import dataclass, field

import pytest

from wtracker.context import Message
from wtracker.core import GenerationCoordinator, TransportRequest
from wtracker.errors import TransportError

ITEMS_SCHEMA = {"type": "object", "properties": {"items": {"type": "array", "items": {"type": "string"}}}}
MESSAGES = [Message(role="assistant", content="we reach the inn"), Message(role="user", content="track it")]


@dataclass
class PendingCall:
    request: TransportRequest
    cancel_event: asyncio.Event
    release: asyncio.Event = field(default_factory=asyncio.Event)
    response: str = ""

    def finish(self, response: str) -> None:
        self.response = response
        self.release.set()


class GatedTransport:
    """Holds every call open until the test releases it."""

    def __init__(self) -> None:
        self.calls: list[PendingCall] = []

    async def send(self, request: TransportRequest, cancel_event: asyncio.Event) -> str:
        call = PendingCall(request, cancel_event)
        self.calls.append(call)
        await call.release.wait()
        return call.response


class StubbornTransport(GatedTransport):
    """Ignores cancellation and answers with stale data anyway."""

    async def send(self, request: TransportRequest, cancel_event: asyncio.Event) -> str:
        try:
            return await super().send(request, cancel_event)
        except asyncio.CancelledError:
            return '{"items": ["stale"]}'


class StaticTransport:
    def __init__(self, response: str) -> None:
        self.response = response
        self.requests: list[TransportRequest] = []

    async def send(self, request: TransportRequest, cancel_event: asyncio.Event) -> str:
        self.requests.append(request)
        return self.response


class RaisingTransport:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    async def send(self, request: TransportRequest, cancel_event: asyncio.Event) -> str:
        raise self.exc


class Recorder:
    def __init__(self) -> None:
        self.notes: list[tuple[str, str]] = []
        self.busy: list[tuple[object, bool]] = []

    def notify(self, level: str, message: str) -> None:
        self.notes.append((level, message))

    def set_busy(self, turn_id: object, busy: bool) -> None:
        self.busy.append((turn_id, busy))


def _coordinator(transport, recorder: Recorder) -> GenerationCoordinator:
    return GenerationCoordinator(transport, notifier=recorder.notify, busy=recorder.set_busy)


async def _wait_for_calls(transport: GatedTransport, count: int) -> None:
    for _ in range(100):
        if len(transport.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} transport calls, saw {len(transport.calls)}")


@pytest.mark.asyncio
async def test_completed_generation_returns_parsed_value() -> None:
    transport = StaticTransport('```json\n{"items": ["lamp"]}\n```')
    recorder = Recorder()

    result = await _coordinator(transport, recorder).start_generation(3, MESSAGES, ITEMS_SCHEMA, "json")

    assert result.ok
    assert result.status == "completed"
    assert result.turn_id == 3
    assert result.value == {"items": ["lamp"]}
    assert recorder.busy == [(3, True), (3, False)]
    assert recorder.notes == []


@pytest.mark.asyncio
async def test_request_carries_transport_messages_and_limits() -> None:
    transport = StaticTransport('{"items": ["lamp"]}')
    coordinator = GenerationCoordinator(transport, max_tokens=512, temperature=0.2)

    await coordinator.start_generation(
        1,
        [*MESSAGES, {"is_user": True, "mes": "from the host", "name": "Mira"}],
        ITEMS_SCHEMA,
        "json",
        json_schema={"name": "SceneTracker", "strict": True, "value": ITEMS_SCHEMA},
    )

    request = transport.requests[0]
    assert request.messages == [
        {"role": "assistant", "content": "we reach the inn"},
        {"role": "user", "content": "track it"},
        {"role": "user", "content": "from the host", "name": "Mira"},
    ]
    assert request.max_tokens == 512
    assert request.temperature == 0.2
    assert request.json_schema == {"name": "SceneTracker", "strict": True, "value": ITEMS_SCHEMA}
    assert request.metadata == {"turn_id": 1}


@pytest.mark.asyncio
async def test_xml_generation_repairs_arrays() -> None:
    transport = StaticTransport("```xml\n<root><items>x</items></root>\n```")

    result = await GenerationCoordinator(transport).start_generation(0, MESSAGES, ITEMS_SCHEMA, "xml")

    assert result.value == {"items": ["x"]}


@pytest.mark.asyncio
async def test_second_call_cancels_first_for_same_turn() -> None:
    transport = GatedTransport()
    recorder = Recorder()
    coordinator = _coordinator(transport, recorder)

    first = asyncio.create_task(coordinator.start_generation(7, MESSAGES, ITEMS_SCHEMA, "json"))
    await _wait_for_calls(transport, 1)
    second = asyncio.create_task(coordinator.start_generation(7, MESSAGES, ITEMS_SCHEMA, "json"))
    await _wait_for_calls(transport, 2)

    first_result = await first
    assert first_result.status == "cancelled"
    assert first_result.value is None
    assert transport.calls[0].cancel_event.is_set()
    assert coordinator.is_pending(7)

    transport.calls[1].finish('{"items": ["fresh"]}')
    second_result = await second

    assert second_result.ok
    assert second_result.value == {"items": ["fresh"]}
    assert not coordinator.is_pending(7)
    assert recorder.busy == [(7, True), (7, True), (7, False)]
    assert recorder.notes == []


@pytest.mark.asyncio
async def test_cancelled_call_that_still_answers_is_discarded() -> None:
    transport = StubbornTransport()
    coordinator = GenerationCoordinator(transport)

    first = asyncio.create_task(coordinator.start_generation(7, MESSAGES, ITEMS_SCHEMA, "json"))
    await _wait_for_calls(transport, 1)
    second = asyncio.create_task(coordinator.start_generation(7, MESSAGES, ITEMS_SCHEMA, "json"))
    await _wait_for_calls(transport, 2)
    transport.calls[1].finish('{"items": ["fresh"]}')

    first_result, second_result = await asyncio.gather(first, second)

    assert first_result.status == "cancelled"
    assert first_result.value is None
    assert second_result.value == {"items": ["fresh"]}


@pytest.mark.asyncio
async def test_explicit_cancel_resolves_without_notification() -> None:
    transport = GatedTransport()
    recorder = Recorder()
    coordinator = _coordinator(transport, recorder)

    task = asyncio.create_task(coordinator.start_generation("scene", MESSAGES, ITEMS_SCHEMA, "json"))
    await _wait_for_calls(transport, 1)

    assert coordinator.pending_turns() == ["scene"]
    assert coordinator.cancel("scene") is True
    result = await task

    assert result.status == "cancelled"
    assert coordinator.cancel("scene") is False
    assert coordinator.pending_turns() == []
    assert recorder.busy == [("scene", True), ("scene", False)]
    assert recorder.notes == []


@pytest.mark.asyncio
async def test_different_turns_run_concurrently() -> None:
    transport = GatedTransport()
    coordinator = GenerationCoordinator(transport)

    first = asyncio.create_task(coordinator.start_generation(1, MESSAGES, ITEMS_SCHEMA, "json"))
    second = asyncio.create_task(coordinator.start_generation(2, MESSAGES, ITEMS_SCHEMA, "json"))
    await _wait_for_calls(transport, 2)

    assert sorted(coordinator.pending_turns()) == [1, 2]
    assert not any(call.cancel_event.is_set() for call in transport.calls)

    transport.calls[0].finish('{"items": ["one"]}')
    transport.calls[1].finish('{"items": ["two"]}')
    results = await asyncio.gather(first, second)

    assert sorted(result.value["items"][0] for result in results) == ["one", "two"]


@pytest.mark.asyncio
async def test_transport_error_is_reported_verbatim() -> None:
    recorder = Recorder()
    coordinator = _coordinator(RaisingTransport(TransportError("rate limited")), recorder)

    result = await coordinator.start_generation(4, MESSAGES, ITEMS_SCHEMA, "json")

    assert result.status == "failed"
    assert result.error == "rate limited"
    assert recorder.notes == [("error", "Tracker generation failed: rate limited")]
    assert recorder.busy == [(4, True), (4, False)]


@pytest.mark.asyncio
async def test_unexpected_transport_exception_becomes_failure() -> None:
    recorder = Recorder()
    coordinator = _coordinator(RaisingTransport(RuntimeError("socket closed")), recorder)

    result = await coordinator.start_generation(4, MESSAGES, ITEMS_SCHEMA, "json")

    assert result.status == "failed"
    assert result.error == "transport_error: socket closed"
    assert not coordinator.is_pending(4)


@pytest.mark.asyncio
async def test_malformed_response_fails_with_raw_text() -> None:
    recorder = Recorder()
    coordinator = _coordinator(StaticTransport("{items: lamp"), recorder)

    result = await coordinator.start_generation(5, MESSAGES, ITEMS_SCHEMA, "json")

    assert result.status == "failed"
    assert result.raw_text == "{items: lamp"
    assert result.error is not None
    assert result.error.startswith("Model response is not valid JSON")
    assert recorder.notes[0][1].startswith("Tracker generation failed: Model response is not valid JSON")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "error"),
    [
        ("", "No response content received."),
        ("   \n", "No response content received."),
        ("{}", "Empty response from tracker."),
        ("```json\n[]\n```", "Empty response from tracker."),
    ],
)
async def test_empty_responses_fail(response: str, error: str) -> None:
    recorder = Recorder()

    result = await _coordinator(StaticTransport(response), recorder).start_generation(6, MESSAGES, None, "json")

    assert result.status == "failed"
    assert result.error == error
    assert recorder.notes == [("error", f"Tracker generation failed: {error}")]


@pytest.mark.asyncio
async def test_malformed_schema_mapping_fails_without_calling_transport() -> None:
    transport = StaticTransport('{"items": ["lamp"]}')
    recorder = Recorder()
    coordinator = _coordinator(transport, recorder)

    result = await coordinator.start_generation(1, MESSAGES, {"type": "object", "properties": ["a"]}, "json")

    assert result.status == "failed"
    assert result.error == "properties at $ must be an object"
    assert recorder.notes == [("error", "Tracker generation failed: properties at $ must be an object")]
    assert recorder.busy == []
    assert transport.requests == []
    assert not coordinator.is_pending(1)
