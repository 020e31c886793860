import subprocess  # nosec: B404
from pathlib import Path
from typing import Sequence

# --
# # Shell Utils
#
# Runs the external commands (typically the bundler) that the dev build
# relies on.


class ShellCommandError(RuntimeError):
	"""Wrapper for a shell command error."""

	__slots__ = ["command", "status", "error"]

	def __init__(self, command: Sequence[str], status: int, error: bytes):
		super().__init__()
		self.command: list[str] = list(command)
		self.status: int = status
		self.error: bytes = error

	def __str__(self) -> str:
		return f"{self.__class__.__name__}: '{' '.join(self.command)}', failed with status {self.status}: {self.error.decode('utf8', 'replace')}"


def shell(
	command: Sequence[str],
	cwd: Path | str | None = None,
	input: bytes | None = None,
) -> bytes:
	"""Runs a shell command, and returns the stdout as a byte output"""
	try:
		res = subprocess.run(  # nosec: B603
			list(command),
			stdout=subprocess.PIPE,
			stderr=subprocess.PIPE,
			input=input,
			cwd=str(cwd) if cwd else None,
		)
	except OSError as e:
		# The command could not be started at all (missing executable)
		raise ShellCommandError(command, 127, str(e).encode("utf8")) from e
	if res.returncode == 0:
		return res.stdout
	else:
		raise ShellCommandError(command, res.returncode, res.stderr)


# EOF
