import io
import os
from pathlib import Path

import pytest

from exhibit.__main__ import parse
from exhibit.config import DEFAULT_PORT, Config, parseFlag, parsePort
from exhibit.utils import logging


@pytest.mark.parametrize(
	"value,expected",
	[
		(None, DEFAULT_PORT),
		("", DEFAULT_PORT),
		("3000", 3000),
		(" 3000 ", 3000),
		("abc", DEFAULT_PORT),
		("-1", DEFAULT_PORT),
		("0", DEFAULT_PORT),
		("65536", DEFAULT_PORT),
		("65535", 65535),
		("80.5", DEFAULT_PORT),
		("²", DEFAULT_PORT),
		("٨٠", DEFAULT_PORT),
	],
)
def test_parse_port(value, expected):
	assert parsePort(value) == expected


def test_parse_flag():
	assert parseFlag(None, True) is True
	assert parseFlag("", False) is False
	assert parseFlag("0", True) is False
	assert parseFlag("off", True) is False
	assert parseFlag("yes", False) is True


def test_defaults():
	config = Config.FromEnv({})
	assert config.port == 8080
	assert config.root == Path(".")
	assert config.buildPath == Path(".") / "__build__"
	assert config.buildCommand == ()
	assert config.buildSources == (Path("."),)
	assert config.logRequests


def test_from_env():
	config = Config.FromEnv(
		{
			"PORT": "9000",
			"HOST": "127.0.0.1",
			"EXHIBIT_ROOT": "examples",
			"EXHIBIT_BUILD_COMMAND": "npx esbuild 'src/index.ts' --bundle",
			"EXHIBIT_BUILD_OUTPUT": "dist",
			"EXHIBIT_BUILD_SOURCES": os.pathsep.join(("src", "lib")),
			"EXHIBIT_LOG_REQUESTS": "0",
		}
	)
	assert config.port == 9000
	assert config.host == "127.0.0.1"
	assert config.root == Path("examples")
	assert config.buildPath == Path("dist")
	assert config.buildCommand == ("npx", "esbuild", "src/index.ts", "--bundle")
	assert config.buildSources == (Path("src"), Path("lib"))
	assert not config.logRequests


def test_command_line_overrides_env():
	base = Config.FromEnv({"PORT": "9000", "EXHIBIT_ROOT": "examples"})
	config = parse(["-p", "7000", "--root", "site", "-b", "make bundle", "-q"], base)
	assert config.port == 7000
	assert config.root == Path("site")
	assert config.buildPath == Path("site") / "__build__"
	assert config.buildSources == (Path("site"),)
	assert config.buildCommand == ("make", "bundle")
	assert not config.logRequests


def test_command_line_keeps_env():
	base = Config.FromEnv({"PORT": "9000", "EXHIBIT_BUILD_SOURCES": "src"})
	config = parse([], base)
	assert config == base


def test_command_line_log_level():
	assert parse([], Config()).logLevel is None
	assert parse(["--log-level", "debug"], Config()).logLevel == "Debug"
	with pytest.raises(SystemExit):
		parse(["-l", "verbose"], Config())


def test_log_level_filters_entries(monkeypatch):
	stream = io.StringIO()
	monkeypatch.setattr(logging, "ERR", stream)
	monkeypatch.setattr(logging, "LOG_LEVEL", logging.LOG_LEVEL)
	logging.setLevel(logging.LogLevel.Warning)
	logging.info("Hidden entry")
	logging.warning("Shown entry")
	assert "Hidden entry" not in stream.getvalue()
	assert "Shown entry" in stream.getvalue()


# EOF
