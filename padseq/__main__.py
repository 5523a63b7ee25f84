import argparse
import logging
import sys
import typing

import mido

import padseq.config
import padseq.errors
import padseq.session


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="padseq", description="Terminal pad sequencer and sample trigger.")

	parser.add_argument("--config", default=padseq.config.DEFAULT_CONFIG_PATH, help="YAML configuration file (default: %(default)s)")
	parser.add_argument("--generate-config", metavar="PATH", help="write an example configuration to PATH and exit")
	parser.add_argument("--list-outputs", action="store_true", help="list MIDI output devices and exit")
	parser.add_argument("--debug", action="store_true", help="log at DEBUG level")

	return parser


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the padseq application.
	"""

	args = build_parser().parse_args(argv)

	if args.debug:
		logging.getLogger().setLevel(logging.DEBUG)

	if args.generate_config:
		padseq.config.generate_example(args.generate_config)
		return 0

	if args.list_outputs:
		for name in mido.get_output_names():
			print(name)
		return 0

	try:
		config = padseq.config.load_config(args.config)
		session = padseq.session.Session(config)
	except padseq.errors.ConfigError as e:
		logger.error(f"Configuration error: {e}")
		return 2

	logger.info("padseq starting...")
	session.play()
	logger.info("Stopped.")

	return 0


if __name__ == "__main__":
	sys.exit(main())
