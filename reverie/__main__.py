"""Command-line entry point: play an engine through a MIDI output.

	python -m reverie --mood mysterious --scale dorian --root D
	python -m reverie --config reverie.yaml --device "IAC Driver Bus 1" --osc

Command-line options override values from the YAML file.
"""

import argparse
import asyncio
import logging
import sys
import typing

import reverie.config
import reverie.display
import reverie.engine
import reverie.errors
import reverie.midi_synth
import reverie.midi_utils
import reverie.osc
import reverie.sequencer


logger = logging.getLogger(__name__)


DEFAULT_CHANNELS: typing.Dict[str, int] = {
	"melody": 0,
	"drone": 1,
	"rhythm": 9,
	"ambience": 2,
}


def parse_args (argv: typing.Optional[typing.List[str]] = None) -> argparse.Namespace:

	parser = argparse.ArgumentParser(prog="reverie", description="Procedural composition engine with MIDI output")
	parser.add_argument("--config", default="reverie.yaml", help="YAML config file (default: reverie.yaml)")
	parser.add_argument("--mood", help="Mood: calm, melancholic, intense, playful, mysterious")
	parser.add_argument("--scale", help="Scale name, e.g. major, minor, dorian, pentatonic")
	parser.add_argument("--root", help="Root note, e.g. C, F#, Bb")
	parser.add_argument("--density", type=float, help="0-100")
	parser.add_argument("--variation", type=float, help="0-100")
	parser.add_argument("--evolution", type=float, help="0-100")
	parser.add_argument("--device", help="MIDI output device name")
	parser.add_argument("--osc", action="store_true", help="Enable the OSC control server")
	parser.add_argument("--no-display", action="store_true", help="Disable the terminal status line")
	parser.add_argument("--verbose", action="store_true", help="Log per-note detail")

	return parser.parse_args(argv)


def engine_settings (raw: typing.Dict[str, typing.Any], args: argparse.Namespace) -> typing.Dict[str, typing.Any]:

	"""Merge the YAML ``engine:`` mapping with command-line overrides."""

	settings = dict(raw.get("engine") or {})

	for name in ("mood", "scale", "root", "density", "variation", "evolution"):
		value = getattr(args, name)
		if value is not None:
			settings[name] = value

	return settings


async def _run (args: argparse.Namespace, raw: typing.Dict[str, typing.Any]) -> int:

	midi_config = raw.get("midi") or {}
	osc_config = raw.get("osc") or {}
	channels = {**DEFAULT_CHANNELS, **(midi_config.get("channels") or {})}

	engine = reverie.engine.Engine(engine_settings(raw, args))

	_, port = reverie.midi_utils.select_output_device(args.device or midi_config.get("device_name"))

	if port is None:
		return 1

	clock = reverie.sequencer.Sequencer(initial_bpm=engine.initial_tempo)
	synths = {name: reverie.midi_synth.MidiSynth(port, clock, channel=channels[name]) for name in DEFAULT_CHANNELS}
	midi_filter = reverie.midi_synth.MidiFilter(port, clock, channel=channels["melody"])

	display = None if args.no_display else reverie.display.Display(engine)
	osc_server = None

	if args.osc or osc_config:
		osc_server = reverie.osc.OscServer(
			engine,
			receive_port = osc_config.get("receive_port", 9000),
			send_port = osc_config.get("send_port", 9001),
			send_host = osc_config.get("send_host", "127.0.0.1")
		)
		await osc_server.start()

	if display is not None:
		display.start()

	try:
		engine.start(synths, midi_filter, clock=clock, visualizer=display)
		await clock.run()

	finally:
		engine.stop()

		if display is not None:
			display.stop()

		if osc_server is not None:
			await osc_server.stop()

		port.close()

	return 0


def main () -> None:

	"""
	Main entry point for the reverie application.
	"""

	args = parse_args()

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	try:
		raw = reverie.config.load_config(args.config)
		status = asyncio.run(_run(args, raw))

	except reverie.errors.ConfigurationError as e:
		logger.error(f"Configuration error: {e}")
		status = 2

	except KeyboardInterrupt:
		logger.info("Stopping...")
		status = 0

	sys.exit(status)


if __name__ == "__main__":
	main()
