import asyncio
import socket
import threading
from dataclasses import dataclass, field
from pathlib import Path
from signal import SIGINT, SIGTERM
from typing import Any, NamedTuple

from .config import DEFAULT_HOST, DEFAULT_PORT
from .http.model import (
	BODY_READ_TIMEOUT,
	HTTPBodyReader,
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
)
from .http.parser import HTTPParser
from .pipeline import Pipeline
from .utils.logging import LogLevel, debug, error, event, exception, info, logged, warning

# -----------------------------------------------------------------------------
#
# OPTIONS & STATE
#
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class ServerState:
	"""The state of a running server, which can be stopped from another
	thread. `ready` is set once the server listens, `port` being then the
	actual port (useful when binding to port 0)."""

	isRunning: bool = True
	port: int | None = None
	ready: threading.Event = field(default_factory=threading.Event)

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = DEFAULT_HOST
	port: int = DEFAULT_PORT
	backlog: int = 1_000
	# Bounds the time it takes for the accept loop to notice a stop
	polling: float = 0.5
	readsize: int = 4_096
	keepalive: float = 30.0
	logRequests: bool = True
	stopSignals: bool = True


SERVER_BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Length: 0\r\n"
	b"Connection: close\r\n"
	b"\r\n"
)
SERVER_LENGTH_REQUIRED: bytes = (
	b"HTTP/1.1 411 Length Required\r\n"
	b"Content-Length: 0\r\n"
	b"Connection: close\r\n"
	b"\r\n"
)

# -----------------------------------------------------------------------------
#
# SOCKET IO
#
# -----------------------------------------------------------------------------


class SocketReader(HTTPBodyReader):
	"""Reads the rest of request bodies from a non-blocking client socket."""

	__slots__ = ["client", "loop", "size"]

	def __init__(
		self,
		client: socket.socket,
		loop: asyncio.AbstractEventLoop,
		size: int = 64_000,
	) -> None:
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop
		self.size: int = size

	async def read(self, size: int, timeout: float = BODY_READ_TIMEOUT) -> bytes:
		if logged(LogLevel.Debug):
			debug(
				"Reading body", Client=f"{id(self.client):x}", Size=size, Timeout=timeout
			)
		return await asyncio.wait_for(
			self.loop.sock_recv(self.client, min(size, self.size)), timeout=timeout
		)


class SocketWriter(HTTPBodyWriter):
	"""Writes responses to a non-blocking client socket, files being sent
	with `sendfile` where the platform supports it."""

	def __init__(self, client: socket.socket, loop: asyncio.AbstractEventLoop) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(self, chunk: bytes) -> None:
		if chunk:
			await self.loop.sock_sendall(self.client, chunk)

	async def _writeFile(self, path: Path, size: int = 64_000) -> None:
		with open(path, "rb") as f:
			await self.loop.sock_sendfile(self.client, f)


# -----------------------------------------------------------------------------
#
# SERVER
#
# -----------------------------------------------------------------------------


class AIOSocketServer:
	"""An asyncio server working with sockets directly, with one task per
	client connection."""

	@classmethod
	async def OnClient(
		cls,
		pipeline: Pipeline,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Serves the requests of a client until it closes the connection,
		the keep-alive delay expires or a response ends the connection."""
		buffer = bytearray(options.readsize)
		parser = HTTPParser()
		reader = SocketReader(client, loop)
		writer = SocketWriter(client, loop)
		status = HTTPProcessingStatus.Processing
		try:
			while status is HTTPProcessingStatus.Processing:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer), timeout=options.keepalive
					)
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					status = HTTPProcessingStatus.NoData
					break
				# A single read may hold more than one request (pipelining)
				for atom in parser.feed(bytes(buffer[:n])):
					if atom is HTTPProcessingStatus.BadFormat:
						await writer.write(SERVER_BAD_REQUEST)
						status = atom
						break
					elif atom is HTTPProcessingStatus.NoLength:
						# Chunked bodies are not supported
						await writer.write(SERVER_LENGTH_REQUIRED)
						status = atom
						break
					elif isinstance(atom, HTTPRequest):
						if not await cls.Respond(atom, pipeline, reader, writer, options):
							status = HTTPProcessingStatus.NoData
							break
			if status is HTTPProcessingStatus.NoData and parser.isPending:
				warning("Client closed the connection during a request")
		except ConnectionError:
			pass
		except Exception as e:
			exception(e, "Client connection failed")
		finally:
			client.close()

	@staticmethod
	async def Respond(
		request: HTTPRequest,
		pipeline: Pipeline,
		reader: HTTPBodyReader,
		writer: HTTPBodyWriter,
		options: ServerOptions,
	) -> bool:
		"""Runs the request through the pipeline and writes the response,
		returning `False` when the connection needs to be closed."""
		request._reader = reader
		if options.logRequests:
			event(request.method, request.path)
		response = await pipeline.handle(request)
		try:
			await writer.write(response.head())
			if request.method != "HEAD":
				await writer.write(response.body)
		except ConnectionError:
			return False
		return not (
			writer.shouldClose
			or response.shouldClose
			or request.protocol == "HTTP/1.0"
			or (request.header("Connection") or "").lower() == "close"
			# The unread body would be parsed as the next request
			or not request.isLoaded
		)

	@classmethod
	async def Serve(
		cls,
		pipeline: Pipeline,
		options: ServerOptions = ServerOptions(),
		state: ServerState | None = None,
	) -> None:
		"""Listens and serves clients until the state is stopped. Failing to
		bind is logged and raised."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			server.close()
			error(
				f"Unable to bind to {options.host}:{options.port}: {e.strerror or e}",
				"HOSTPORTERR",
			)
			raise
		server.listen(options.backlog)
		server.setblocking(False)

		loop = asyncio.get_running_loop()
		state = state or ServerState()
		state.port = server.getsockname()[1]
		# Signal handlers can only be installed from the main thread
		if options.stopSignals and threading.current_thread() is threading.main_thread():
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)

		info(
			f"Exhibit server listening on http://localhost:{state.port}",
			icon="🚀",
			Host=options.host,
			Port=state.port,
		)
		state.ready.set()
		tasks: set[asyncio.Task[None]] = set()
		try:
			while state.isRunning:
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# EMFILE: too many open files, waiting for clients to close
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e, "Unable to accept client")
					continue
				task = loop.create_task(
					cls.OnClient(pipeline, client, loop=loop, options=options)
				)
				tasks.add(task)
				task.add_done_callback(tasks.discard)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			state.ready.clear()


def run(pipeline: Pipeline, options: ServerOptions = ServerOptions()) -> None:
	"""Runs the server until it is interrupted."""
	try:
		asyncio.run(AIOSocketServer.Serve(pipeline, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
