"""Musical time specs.

Voices describe their timing musically and the clock resolves each spec to
seconds against the tempo at the moment it is used, so a tempo ramp
stretches every later interval.

Accepted specs:

	"4n"   a quarter note (one beat); "8n" an eighth, "1n" a whole note
	"2n."  dotted: one and a half times the plain value
	"8t"   triplet: two thirds of the plain value
	"1m"   one measure of 4/4; "16m" sixteen measures
	1.5    a plain number is already seconds

Example:
	```python
	to_seconds("8n", 120)    # 0.25
	to_seconds("1m", 60)     # 4.0
	to_seconds("2n.", 120)   # 1.5
	```
"""

import re
import typing


BEATS_PER_MEASURE = 4

TimeSpec = typing.Union[str, float, int]

_SPEC_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)([nmt])(\.?)$")


def to_beats (spec: str) -> float:

	"""Convert a musical spec string to a number of quarter-note beats."""

	match = _SPEC_PATTERN.match(spec.strip())

	if match is None:
		raise ValueError(f"Invalid time spec: {spec!r}")

	count, unit, dotted = match.groups()
	value = float(count)

	if value <= 0:
		raise ValueError(f"Time spec must be positive: {spec!r}")

	if unit == "m":
		if dotted:
			raise ValueError(f"Measures cannot be dotted: {spec!r}")
		return value * BEATS_PER_MEASURE

	beats = BEATS_PER_MEASURE / value

	if unit == "t":
		beats *= 2.0 / 3.0

	if dotted:
		beats *= 1.5

	return beats


def to_seconds (spec: TimeSpec, bpm: float) -> float:

	"""Resolve a time spec to seconds at the given tempo."""

	if isinstance(spec, bool):
		raise ValueError(f"Invalid time spec: {spec!r}")

	if isinstance(spec, (int, float)):
		if spec < 0:
			raise ValueError(f"Time spec cannot be negative: {spec!r}")
		return float(spec)

	if bpm <= 0:
		raise ValueError("BPM must be positive")

	return to_beats(spec) * 60.0 / bpm
