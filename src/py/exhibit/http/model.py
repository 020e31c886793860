import asyncio
import inspect
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, AsyncGenerator, NamedTuple, TypeAlias, Union

from ..utils.io import DEFAULT_ENCODING, asWritable
from ..utils.logging import warning
from .api import ResponseFactory
from .status import HTTP_NO_BODY, HTTP_STATUS

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, cache: dict[str, str] = {}) -> str:
	"""Returns the header name as `Kebab-Case`, which is how header names
	are stored in requests and responses. The default `cache` argument is
	shared between calls."""
	key: str = name.lower()
	res: str | None = cache.get(key)
	if res is None:
		res = cache[key] = "-".join(_.capitalize() for _ in key.split("-"))
	return res


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""The first line of a request, with the query kept unparsed."""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""The headers of a request or response, along with the ones that
	drive the body processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""The states that the parser and the connection loop report."""

	Processing = 0
	Body = 1
	Timeout = 10
	NoData = 11
	BadFormat = 12
	NoLength = 13


HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class HTTPRequestError(Exception):
	"""Base class for errors that map to an HTTP status. These are converted
	to a response at the pipeline boundary, where the message is logged but
	never sent to the client."""

	STATUS: int = 500

	def __init__(self, message: str, status: int | None = None):
		super().__init__(message)
		self.message: str = message
		self.status: int = self.STATUS if status is None else status


class MalformedBodyError(HTTPRequestError):
	"""The request body could not be decoded according to its content type."""

	STATUS = 400


class HandlerError(HTTPRequestError):
	"""A route handler or middleware failed while processing the request."""

	STATUS = 500


class NotFoundError(HTTPRequestError):
	"""No middleware nor route produced a response for the request."""

	STATUS = 404


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------

BODY_READ_TIMEOUT: float = 1.0


class HTTPBodyBlob(NamedTuple):
	"""Body bytes held in memory. The parser may only get the beginning of
	a request body, in which case `remaining` is the number of bytes that
	are still to be received from the client."""

	payload: bytes = b""
	length: int = 0
	remaining: int | None = None

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))

	@property
	def raw(self) -> bytes:
		return self.payload


class HTTPBodyFile(NamedTuple):
	"""A body streamed from a file on disk."""

	path: Path

	@property
	def length(self) -> int:
		return self.path.stat().st_size


class HTTPBodyAsyncStream(NamedTuple):
	"""A body produced by an async generator, of unknown length."""

	stream: AsyncGenerator[str | bytes, Any]


THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile | HTTPBodyAsyncStream


class HTTPBodyReader(ABC):
	"""Receives the rest of a request body from the client."""

	@abstractmethod
	async def read(self, size: int, timeout: float = BODY_READ_TIMEOUT) -> bytes:
		"""Returns at most `size` bytes, and an empty result when the client
		closed the connection."""

	async def load(self, size: int, timeout: float = BODY_READ_TIMEOUT) -> bytes:
		"""Reads `size` bytes, or less when the client stops sending."""
		data = bytearray()
		while len(data) < size:
			try:
				chunk = await self.read(size - len(data), timeout)
			except asyncio.TimeoutError:
				warning("Request body loading timed out", Expected=size, Read=len(data))
				break
			if not chunk:
				break
			data += chunk
		return bytes(data)


class HTTPBodyWriter(ABC):
	"""Writes response heads and bodies to the client. Once a body of
	unknown length is written, `shouldClose` is set as the end of the
	connection is the only way to delimit it."""

	__slots__ = ["shouldClose"]

	def __init__(self) -> None:
		self.shouldClose: bool = False

	async def write(self, body: THTTPBody | bytes | None) -> None:
		if body is None:
			return
		elif isinstance(body, bytes):
			await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFile):
			await self._writeFile(body.path)
		elif isinstance(body, HTTPBodyAsyncStream):
			self.shouldClose = True
			try:
				async for chunk in body.stream:
					await self._writeBytes(asWritable(chunk))
			finally:
				await body.stream.aclose()
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, path: Path, size: int = 64_000) -> None:
		with open(path, "rb") as f:
			while chunk := f.read(size):
				await self._writeBytes(chunk)

	@abstractmethod
	async def _writeBytes(self, chunk: bytes) -> None: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""A request parsed from the client, which also creates the responses.
	Middleware annotate requests through `data`, which holds the decoded
	body once the body decoder ran."""

	__slots__ = [
		"method",
		"path",
		"query",
		"protocol",
		"data",
		"_headers",
		"_body",
		"_reader",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self.data: Any = None
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob = body or HTTPBodyBlob(b"", 0, 0)
		# Set by the server when the body may need to be read from the client
		self._reader: HTTPBodyReader | None = None

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def param(self, name: str, default: str | None = None) -> str | None:
		return self.query.get(name, default) if self.query else default

	@property
	def contentType(self) -> str | None:
		return self._headers.contentType

	@property
	def contentLength(self) -> int | None:
		return self._headers.contentLength

	@property
	def body(self) -> HTTPBodyBlob:
		"""The body as received so far, see `load()` for the whole body."""
		return self._body

	@property
	def isLoaded(self) -> bool:
		"""Tells if the whole body was received from the client."""
		return not self._body.remaining

	async def load(self) -> bytes:
		"""Returns the whole raw body, reading what's left of it from the
		client on the first call."""
		body = self._body
		if body.remaining:
			if not self._reader:
				raise RuntimeError("Request has no reader, can't load body")
			rest: bytes = await self._reader.load(body.remaining)
			payload = body.payload + rest
			self._body = body = HTTPBodyBlob(
				payload, len(payload), body.remaining - len(rest)
			)
		return body.payload

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			headers=headers,
			status=status,
			message=message,
			protocol=self.protocol,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""A response, with its head serialized by `head()` and its body
	written by an `HTTPBodyWriter`."""

	__slots__ = ["protocol", "status", "message", "headers", "body", "shouldClose"]

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Creates a response from bytes, text, a file path or an async
		generator. Statuses that allow a body always get one, so that an
		empty response still has a `Content-Length: 0`."""
		if content is None and status not in HTTP_NO_BODY:
			content = b""
		elif isinstance(content, str):
			content = content.encode(DEFAULT_ENCODING)
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, bytes):
			body = HTTPBodyBlob.FromBytes(content)
			contentLength = body.length
		elif isinstance(content, Path):
			body = HTTPBodyFile(content.absolute())
			contentLength = body.length
		elif inspect.isasyncgen(content):
			body = HTTPBodyAsyncStream(content)
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		fields: dict[str, str] = {
			headername(k): v for k, v in (headers or {}).items()
		}
		if contentType is not None:
			fields["Content-Type"] = contentType
		if contentLength is not None:
			fields["Content-Length"] = str(contentLength)
		return HTTPResponse(
			protocol=protocol,
			status=status,
			message=message,
			headers=HTTPHeaders(fields, fields.get("Content-Type"), contentLength),
			body=body,
			shouldClose=isinstance(body, HTTPBodyAsyncStream),
		)

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str = message or HTTP_STATUS.get(status, "Unknown status")
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	@property
	def payload(self) -> bytes | None:
		"""The body bytes, when the body is held in memory."""
		return self.body.payload if isinstance(self.body, HTTPBodyBlob) else None

	def head(self) -> bytes:
		"""Returns the status line and headers, as sent to the client."""
		lines: list[str] = [f"{self.protocol} {self.status} {self.message}"]
		lines += [f"{k}: {v}" for k, v in self.headers.headers.items()]
		if self.shouldClose:
			lines.append("Connection: close")
		return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
