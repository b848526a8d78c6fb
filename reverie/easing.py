"""Easing curves for tempo and filter ramps.

An easing function maps normalised progress *t* in [0, 1] to an eased
output in [0, 1].  The clock uses them to shape tempo ramps and the MIDI
filter uses them to shape cutoff sweeps.

Available shapes:

	"linear"      Constant rate.
	"ease_in_out" Hermite smoothstep S-curve; the default for tempo changes.
	"exponential" Constant ratio per unit time; the natural curve for
	              frequencies, applied by :func:`interpolate`.

All functions satisfy f(0) = 0 and f(1) = 1.
"""

import math
import typing


EasingFn = typing.Callable[[float], float]


def linear (t: float) -> float:

	return t


def ease_in_out (t: float) -> float:

	"""Hermite smoothstep: smooth start and end, faster in the middle."""

	return t * t * (3.0 - 2.0 * t)


EASING_FUNCTIONS: typing.Dict[str, EasingFn] = {
	"linear": linear,
	"ease_in_out": ease_in_out,
	# Exponential ramps interpolate geometrically; see interpolate().
	"exponential": linear,
}


def get_easing (shape: typing.Union[str, EasingFn]) -> EasingFn:

	"""Return the easing function for ``shape`` (a name or a callable).

	Raises :class:`ValueError` for unknown names.
	"""

	if callable(shape):
		return shape

	if shape not in EASING_FUNCTIONS:
		available = ", ".join(f'"{k}"' for k in sorted(EASING_FUNCTIONS))
		raise ValueError(f"Unknown easing shape {shape!r}. Available shapes: {available}")

	return EASING_FUNCTIONS[shape]


def interpolate (start: float, end: float, t: float, shape: typing.Union[str, EasingFn] = "linear") -> float:

	"""Return the value ``t`` of the way from ``start`` to ``end``.

	The ``"exponential"`` shape moves by a constant ratio, so a sweep from
	200 Hz to 800 Hz passes 400 Hz halfway.  It requires both endpoints to
	be positive.
	"""

	t = max(0.0, min(1.0, t))

	if shape == "exponential":
		if start <= 0 or end <= 0:
			raise ValueError("Exponential interpolation requires positive endpoints")
		return start * math.exp(math.log(end / start) * t)

	return start + (end - start) * get_easing(shape)(t)


class Ramp:

	"""A value moving from ``start`` to ``end`` over ``duration`` seconds of clock time."""

	def __init__ (
		self,
		start: float,
		end: float,
		start_time: float,
		duration: float,
		shape: typing.Union[str, EasingFn] = "linear"
	) -> None:

		if duration < 0:
			raise ValueError("Ramp duration cannot be negative")

		get_easing(shape)

		self.start = start
		self.end = end
		self.start_time = start_time
		self.duration = duration
		self.shape = shape


	def value_at (self, now: float) -> float:

		if self.duration == 0:
			return self.end

		return interpolate(self.start, self.end, (now - self.start_time) / self.duration, self.shape)


	def finished (self, now: float) -> bool:

		return now >= self.start_time + self.duration
