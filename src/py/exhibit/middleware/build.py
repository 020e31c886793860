import asyncio
from pathlib import Path
from typing import AsyncIterator, Callable, NamedTuple

from ..http.model import HTTPRequest, HTTPResponse
from ..pipeline import TNext
from ..utils.files import resolveUnder
from ..utils.logging import error, info
from ..utils.shell import ShellCommandError, shell

# --
# The dev build and live reload middleware stand for the bundler's own
# development middleware. The pipeline only sees them as middleware: the
# dev build runs whatever build command it is configured with, and the
# live reload tells the pages it has a new build.


class BuildConfig(NamedTuple):
	"""The externally supplied build configuration."""

	outputPath: Path
	publicPath: str = "/__build__/"
	command: tuple[str, ...] = ()
	sources: tuple[Path, ...] = ()


# -----------------------------------------------------------------------------
#
# DEV BUILD
#
# -----------------------------------------------------------------------------


class DevBuildMiddleware:
	"""Serves the bundle output under the public path, running the build
	command first whenever one of the sources changed since the last
	build."""

	def __init__(self, config: BuildConfig) -> None:
		self.config: BuildConfig = config
		self.outputPath: Path = Path(config.outputPath).resolve()
		self.builtAt: float | None = None
		self.listeners: list[Callable[[], None]] = []
		self._lock: asyncio.Lock | None = None

	def onBuild(self, callback: Callable[[], None]) -> "DevBuildMiddleware":
		"""Registers a callback invoked after each successful build."""
		self.listeners.append(callback)
		return self

	def changedAt(self) -> float:
		"""Returns the latest modification time of the sources, ignoring
		the build output."""
		latest: float = 0.0
		for source in self.config.sources:
			paths = (
				source.rglob("*") if source.is_dir() else [source] if source.exists() else []
			)
			for path in paths:
				if path.is_file() and self.outputPath not in path.resolve().parents:
					latest = max(latest, path.stat().st_mtime)
		return latest

	async def build(self) -> bool:
		"""Runs the build command if needed, returning `True` when a build
		happened. Concurrent requests wait for the same build."""
		if not self.config.command:
			return False
		if self._lock is None:
			self._lock = asyncio.Lock()
		async with self._lock:
			loop = asyncio.get_running_loop()
			changed = await loop.run_in_executor(None, self.changedAt)
			if self.builtAt is not None and changed <= self.builtAt:
				return False
			started = loop.time()
			info("Building", Command=" ".join(self.config.command))
			await loop.run_in_executor(None, shell, self.config.command)
			# Sources changed during the build trigger another one
			self.builtAt = changed
			info("Build complete", Duration=loop.time() - started)
		for callback in self.listeners:
			callback()
		return True

	async def __call__(self, request: HTTPRequest, next: TNext) -> HTTPResponse:
		if not request.path.startswith(self.config.publicPath):
			return await next()
		try:
			await self.build()
		except ShellCommandError as e:
			error("Build failed", "BUILDERR", Status=e.status, Output=e.error.decode("utf8", "replace"))
			return request.respondText("Build failed", status=500)
		artifact = resolveUnder(
			self.outputPath, request.path[len(self.config.publicPath) :]
		)
		if artifact is None or not artifact.is_file():
			return request.notFound()
		return request.respondFile(artifact, headers={"Cache-Control": "no-store"})

	def __repr__(self) -> str:
		return f"(DevBuildMiddleware {self.config.publicPath} {self.outputPath})"


# -----------------------------------------------------------------------------
#
# LIVE RELOAD
#
# -----------------------------------------------------------------------------


class LiveReloadMiddleware:
	"""Keeps a server-sent events stream open for each connected page, and
	pushes a `reload` event to all of them on `notify()`."""

	def __init__(self, path: str = "/__reload__", heartbeat: float = 10.0) -> None:
		self.path: str = path
		self.heartbeat: float = heartbeat
		self.clients: set[asyncio.Queue[str]] = set()

	def notify(self, name: str = "reload") -> int:
		"""Pushes the event to every connected client, returning how many
		were notified."""
		for queue in self.clients:
			queue.put_nowait(name)
		return len(self.clients)

	async def stream(self, queue: "asyncio.Queue[str]") -> AsyncIterator[str]:
		# Registered on the first write, a stream that never starts is never notified
		self.clients.add(queue)
		try:
			yield "retry: 1000\n\n"
			while True:
				try:
					name = await asyncio.wait_for(queue.get(), timeout=self.heartbeat)
				except asyncio.TimeoutError:
					# Comments keep intermediaries from closing the connection
					yield ":\n\n"
					continue
				yield f"event: {name}\ndata: {name}\n\n"
		finally:
			self.clients.discard(queue)

	async def __call__(self, request: HTTPRequest, next: TNext) -> HTTPResponse:
		if request.method != "GET" or request.path != self.path:
			return await next()
		return request.respond(
			self.stream(asyncio.Queue()),
			contentType="text/event-stream",
			headers={"Cache-Control": "no-cache"},
		)

	def __repr__(self) -> str:
		return f"(LiveReloadMiddleware {self.path})"


# EOF
