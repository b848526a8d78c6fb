import logging

import pytest

import reverie.event_emitter


def test_on_and_emit () -> None:

	"""Registered callbacks are called on emit."""

	emitter = reverie.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on("tick", lambda v: received.append(v))
	emitter.emit("tick", 42)

	assert received == [42]


def test_off_removes_only_the_target () -> None:

	emitter = reverie.event_emitter.EventEmitter()
	a: list[int] = []
	b: list[int] = []

	def cb_a (v: int) -> None:
		a.append(v)

	def cb_b (v: int) -> None:
		b.append(v)

	emitter.on("tick", cb_a)
	emitter.on("tick", cb_b)
	emitter.off("tick", cb_a)
	emitter.emit("tick", 1)

	assert a == []
	assert b == [1]


def test_off_unregistered_raises () -> None:

	emitter = reverie.event_emitter.EventEmitter()

	with pytest.raises(ValueError):
		emitter.off("tick", print)


def test_async_callbacks_are_rejected () -> None:

	emitter = reverie.event_emitter.EventEmitter()

	async def handler () -> None:
		pass

	with pytest.raises(ValueError):
		emitter.on("tick", handler)


def test_failing_listener_does_not_stop_the_others (caplog: pytest.LogCaptureFixture) -> None:

	emitter = reverie.event_emitter.EventEmitter()
	received: list[str] = []

	def broken (v: str) -> None:
		raise RuntimeError("boom")

	emitter.on("chord", broken)
	emitter.on("chord", received.append)

	with caplog.at_level(logging.WARNING):
		emitter.emit("chord", "C4")

	assert received == ["C4"]
	assert "chord" in caplog.text


def test_emit_without_listeners () -> None:

	reverie.event_emitter.EventEmitter().emit("nothing", 1)
