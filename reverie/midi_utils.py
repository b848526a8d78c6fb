import logging
import typing

import mido


logger = logging.getLogger(__name__)


def prompt_for_output (names: typing.List[str]) -> str:

	"""Ask on the terminal which of several MIDI outputs to use."""

	print("\nMIDI outputs:\n")

	for number, name in enumerate(names, start=1):
		print(f"  {number}. {name}")

	print()

	while True:

		try:
			picked = int(input(f"Output to play through (1-{len(names)}): "))
		except (ValueError, EOFError):
			picked = 0

		if 1 <= picked <= len(names):
			return names[picked - 1]

		print(f"Please type a number from 1 to {len(names)}.")


def choose_output_name (names: typing.List[str], wanted: typing.Optional[str] = None) -> typing.Optional[str]:

	"""Pick an output name: the wanted one, the only one, or the user's choice."""

	if not names:
		logger.error("No MIDI outputs available")
		return None

	if wanted is not None:

		if wanted in names:
			return wanted

		logger.error(f"MIDI output {wanted!r} not found; available: {names}")
		return None

	if len(names) == 1:
		logger.info(f"Using the only MIDI output, {names[0]!r}")
		return names[0]

	chosen = prompt_for_output(names)

	print("\nNext time, skip this question with:\n")
	print(f"  python -m reverie --device \"{chosen}\"\n")

	return chosen


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open a MIDI output port for the engine's synths.

	Returns:
		``(name, port)``, or ``(None, None)`` when no port could be opened.
	"""

	try:
		names = mido.get_output_names()
		logger.debug(f"MIDI outputs: {names}")

		name = choose_output_name(names, device_name)

		if name is None:
			return None, None

		port = mido.open_output(name)

	except Exception as e:
		logger.error(f"Could not open a MIDI output: {e}")
		return None, None

	logger.info(f"Playing through MIDI output {name!r}")

	return name, port
