import argparse
import shlex
import sys
from pathlib import Path
from typing import Sequence

from .app import pipeline
from .config import Config
from .server import ServerOptions, run
from .utils.logging import LogLevel, info, setLevel


def parse(args: Sequence[str] | None = None, config: Config | None = None) -> Config:
	"""Parses the command line arguments on top of the configuration
	resolved from the environment."""
	base = config or Config.FromEnv()
	parser = argparse.ArgumentParser(
		prog="exhibit",
		description="Serves the example pages, rebuilding the bundle on change",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"-H", "--host", action="store", dest="host", default=base.host, help="Host to bind to"
	)
	parser.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		default=base.port,
		help="Port to listen on (PORT)",
	)
	parser.add_argument(
		"-r",
		"--root",
		action="store",
		dest="root",
		type=Path,
		default=base.root,
		help="Directory of the static assets (EXHIBIT_ROOT)",
	)
	parser.add_argument(
		"-b",
		"--build",
		action="store",
		dest="build",
		default=None,
		help="Build command run when sources change (EXHIBIT_BUILD_COMMAND)",
	)
	parser.add_argument(
		"-o",
		"--build-output",
		action="store",
		dest="buildOutput",
		type=Path,
		default=base.buildOutput,
		help="Directory the build writes to (EXHIBIT_BUILD_OUTPUT)",
	)
	parser.add_argument(
		"-l",
		"--log-level",
		action="store",
		dest="logLevel",
		type=str.capitalize,
		choices=list(LogLevel.__members__),
		default=base.logLevel,
		help="Minimum level of the logged entries (EXHIBIT_LOG_LEVEL)",
	)
	parser.add_argument(
		"-q",
		"--quiet",
		action="store_true",
		dest="quiet",
		help="Does not log requests",
	)
	options = parser.parse_args(args)
	return base._replace(
		host=options.host,
		port=options.port,
		root=options.root,
		buildOutput=options.buildOutput,
		buildCommand=(
			tuple(shlex.split(options.build)) if options.build else base.buildCommand
		),
		# Sources default to the root, which may have changed
		buildSources=(
			(options.root,)
			if base.buildSources == (base.root,)
			else base.buildSources
		),
		logRequests=base.logRequests and not options.quiet,
		logLevel=options.logLevel,
	)


def main(args: Sequence[str] | None = None) -> int:
	config = parse(args)
	if config.logLevel:
		setLevel(LogLevel[config.logLevel])
	info("Starting Exhibit", Root=str(config.root.absolute()), Port=config.port)
	try:
		run(
			pipeline(config),
			ServerOptions(
				host=config.host, port=config.port, logRequests=config.logRequests
			),
		)
	except OSError:
		# Bind failures are logged by the server
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
