"""Engine configuration.

:class:`Config` holds the handful of musical parameters that drive an
engine.  Everything else the voices need (note probability, variation
threshold, evolution timing and rhythm pattern weights) is derived from it
on demand by :func:`derive_settings`, so derived values can never drift
from their source.

Keys may be given in snake_case (``melody_enabled``) or in the camelCase
spelling used by host applications (``melodyEnabled``).

Example:
	```python
	config = Config.from_mapping({"scale": "minor", "root": "A", "mood": "calm"})
	config = config.replace(density=80)
	derive_settings(config).note_probability   # 0.78
	```

YAML files are read with :func:`load_config`::

	engine:
	  scale: dorian
	  root: D
	  mood: mysterious
	midi:
	  device_name: "IAC Driver Bus 1"
	  channels: {melody: 0, drone: 1, rhythm: 9, ambience: 2}
	osc:
	  receive_port: 9000
"""

import dataclasses
import logging
import os
import typing

import yaml

import reverie.errors
import reverie.moods
import reverie.notes
import reverie.scales


logger = logging.getLogger(__name__)


VOICE_NAMES: typing.Tuple[str, ...] = ("melody", "drone", "rhythm", "ambience")

FIELD_ALIASES: typing.Dict[str, str] = {
	"melodyEnabled": "melody_enabled",
	"droneEnabled": "drone_enabled",
	"rhythmEnabled": "rhythm_enabled",
	"ambienceEnabled": "ambience_enabled",
}

PERCENT_FIELDS: typing.Tuple[str, ...] = ("density", "variation", "evolution")

SPARSE_PATTERN_WEIGHTS: typing.Tuple[float, float, float] = (0.6, 0.3, 0.1)
DENSE_PATTERN_WEIGHTS: typing.Tuple[float, float, float] = (0.1, 0.3, 0.6)


@dataclasses.dataclass(frozen=True)
class Config:

	"""Engine input parameters.

	Attributes:
		scale: Scale pattern name (built-in or registered).
		root: Root note name (``"C"``, ``"F#"``, ``"Bb"``...).
		mood: Mood profile name.
		density: 0-100, how often the melody plays.
		variation: 0-100, how often phrases trigger a variation.
		evolution: 0-100, how fast the engine evolves its own parameters.
	"""

	scale: str = "major"
	root: str = "C"
	mood: str = "calm"
	density: float = 60
	variation: float = 50
	evolution: float = 40
	melody_enabled: bool = True
	drone_enabled: bool = True
	rhythm_enabled: bool = True
	ambience_enabled: bool = True


	def validate (self) -> None:

		"""Raise ``ConfigurationError`` if any field is unusable."""

		reverie.notes.key_name_to_pc(self.root)
		reverie.scales.get_pattern(self.scale)
		reverie.moods.get_profile(self.mood)

		for name in PERCENT_FIELDS:

			value = getattr(self, name)

			if isinstance(value, bool) or not isinstance(value, (int, float)):
				raise reverie.errors.ConfigurationError(f"{name} must be a number, got {value!r}")

			if value < 0 or value > 100:
				raise reverie.errors.ConfigurationError(f"{name} must be between 0 and 100, got {value}")

		for voice in VOICE_NAMES:

			value = getattr(self, f"{voice}_enabled")

			if not isinstance(value, bool):
				raise reverie.errors.ConfigurationError(f"{voice}_enabled must be a bool, got {value!r}")


	def replace (self, **changes: typing.Any) -> "Config":

		"""Return a validated copy with ``changes`` applied; aliases are accepted."""

		updated = dataclasses.replace(self, **normalise_keys(changes))
		updated.validate()

		return updated


	def diff (self, other: "Config") -> typing.List[str]:

		"""Return the names of fields whose values differ from ``other``."""

		return [
			field.name
			for field in dataclasses.fields(self)
			if getattr(self, field.name) != getattr(other, field.name)
		]


	def enabled (self, voice: str) -> bool:

		return bool(getattr(self, f"{voice}_enabled"))


	@classmethod
	def from_mapping (cls, mapping: typing.Optional[typing.Mapping[str, typing.Any]] = None) -> "Config":

		"""Build a validated config from a (possibly partial) mapping."""

		config = cls(**normalise_keys(mapping or {}))
		config.validate()

		return config


def normalise_keys (mapping: typing.Mapping[str, typing.Any]) -> typing.Dict[str, typing.Any]:

	"""Translate camelCase aliases and reject unknown keys."""

	known = {field.name for field in dataclasses.fields(Config)}
	result: typing.Dict[str, typing.Any] = {}

	for key, value in mapping.items():

		name = FIELD_ALIASES.get(key, key)

		if name not in known:
			raise reverie.errors.ConfigurationError(f"Unknown config key: {key!r}")

		result[name] = value

	return result


@dataclasses.dataclass(frozen=True)
class DerivedSettings:

	"""Values computed from a :class:`Config`; never stored separately."""

	note_probability: float
	variation_threshold: int
	evolution_rate: int
	evolution_interval: float
	pattern_weights: typing.Tuple[float, float, float]


def pattern_weights (density: float) -> typing.Tuple[float, float, float]:

	"""Blend rhythm pattern weights (sparse, medium, dense) by density."""

	t = density / 100.0

	sparse, medium, dense = (
		low + (high - low) * t
		for low, high in zip(SPARSE_PATTERN_WEIGHTS, DENSE_PATTERN_WEIGHTS)
	)

	return (sparse, medium, dense)


def derive_settings (config: Config) -> DerivedSettings:

	"""Compute the settings that depend on density, variation and evolution."""

	evolution_rate = max(1, round(32 * (100 - config.evolution) / 100))

	return DerivedSettings(
		note_probability = 0.3 + 0.6 * config.density / 100,
		variation_threshold = max(1, round(16 * (100 - config.variation) / 100)),
		evolution_rate = evolution_rate,
		evolution_interval = 3.0 + 0.5 * evolution_rate,
		pattern_weights = pattern_weights(config.density),
	)


def load_config (config_path: str = "reverie.yaml") -> typing.Dict[str, typing.Any]:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise reverie.errors.ConfigurationError(f"Config file {config_path} must contain a mapping")

	return data
