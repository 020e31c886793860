import os
import shlex
from pathlib import Path
from typing import Mapping, NamedTuple

DEFAULT_HOST: str = "0.0.0.0"  # nosec: B104
DEFAULT_PORT: int = 8080


def parsePort(value: str | None, default: int = DEFAULT_PORT) -> int:
	"""Parses a TCP port, returning `default` when the value is unset, not
	a number or outside of the valid port range."""
	text = value.strip() if value else ""
	if not (text.isascii() and text.isdigit()):
		return default
	port = int(text)
	return port if 0 < port < 65536 else default


def parseFlag(value: str | None, default: bool) -> bool:
	if value is None or not value.strip():
		return default
	return value.strip().lower() not in ("0", "false", "no", "off")


class Config(NamedTuple):
	"""The server configuration, resolved once at startup."""

	host: str = DEFAULT_HOST
	port: int = DEFAULT_PORT
	root: Path = Path(".")
	logRequests: bool = True
	buildOutput: Path | None = None
	buildCommand: tuple[str, ...] = ()
	buildSources: tuple[Path, ...] = ()
	# `None` keeps the level set by `EXHIBIT_LOG_LEVEL`
	logLevel: str | None = None

	@property
	def buildPath(self) -> Path:
		"""Where the dev build writes its output, `__build__` in the root
		unless configured."""
		return self.buildOutput or self.root / "__build__"

	@staticmethod
	def FromEnv(environ: Mapping[str, str] | None = None) -> "Config":
		"""Resolves the configuration from the given environment, which is
		`os.environ` by default."""
		env: Mapping[str, str] = os.environ if environ is None else environ
		root = Path(env.get("EXHIBIT_ROOT") or ".")
		output = env.get("EXHIBIT_BUILD_OUTPUT")
		sources = env.get("EXHIBIT_BUILD_SOURCES")
		return Config(
			host=env.get("HOST") or DEFAULT_HOST,
			port=parsePort(env.get("PORT")),
			root=root,
			logRequests=parseFlag(env.get("EXHIBIT_LOG_REQUESTS"), True),
			buildOutput=Path(output) if output else None,
			buildCommand=tuple(shlex.split(env.get("EXHIBIT_BUILD_COMMAND", ""))),
			buildSources=(
				tuple(Path(_) for _ in sources.split(os.pathsep) if _)
				if sources
				else (root,)
			),
		)


# EOF
