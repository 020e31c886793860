from typing import ClassVar, Iterator, Literal
from urllib.parse import unquote_plus

from ..utils.io import LineParser
from .model import (
	HTTPAtom,
	HTTPBodyBlob,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)


class RequestLineParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "RequestLineParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		line, read = self.line.feed(chunk, start)
		if not line:
			# Either more data is needed, or this is an empty line that
			# clients may send between pipelined requests.
			return None, read
		ln = line.decode("latin-1")
		i = ln.find(" ")
		j = ln.rfind(" ")
		if i == -1 or i == j:
			return False, read
		p: list[str] = ln[i + 1 : j].split("?", 1)
		self.value = HTTPRequestLine(
			ln[0:i].upper(), p[0], p[1] if len(p) > 1 else "", ln[j + 1 :]
		)
		return True, read


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, otherwise it is the parsed header name."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			return False, read
		ln: str = line.decode("latin-1")
		i = ln.find(":")
		if i == -1:
			return None, read
		h = ln[:i].strip()
		v = ln[i + 1 :].strip()
		key = h.lower()
		if key == "content-length":
			try:
				self.contentLength = int(v)
			except ValueError:
				self.contentLength = None
		elif key == "content-type":
			self.contentType = v
		n: str = headername(h)
		self.headers[n] = v
		return n, read


class BodyLengthParser:
	"""Parses the body of a request with ContentLength set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int | None = None
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(
			b"".join(self.data),
			self.read,
			0 if self.expected is None else self.expected - self.read,
		)
		self.reset()
		return res

	def reset(self, length: int | None = None) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data = []
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool, int]:
		"""Consumes as much of the body as `chunk` holds. The body is flushed
		either when it is complete, or when the chunk is exhausted, in which
		case the request reader loads the remaining bytes."""
		left: int = len(chunk) - start
		to_read: int = min(
			left, left if self.expected is None else self.expected - self.read
		)
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return True, to_read


class HTTPParser:
	"""A stateful HTTP request parser, fed with the bytes read from a
	client and yielding the atoms it could parse."""

	METHOD_HAS_BODY: ClassVar[set[str]] = {"POST", "PUT", "PATCH", "DELETE"}

	def __init__(self) -> None:
		self.requestLine: RequestLineParser = RequestLineParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: RequestLineParser | HeadersParser | BodyLengthParser = (
			self.requestLine
		)
		self.line: HTTPRequestLine | None = None
		self.lineHeaders: HTTPHeaders | None = None

	@property
	def isPending(self) -> bool:
		"""Tells if the bytes fed so far end within a request."""
		return self.parser is not self.requestLine or bool(self.requestLine.line.buffer)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# A partially read chunk does not need to be fed again, the
			# underlying parser keeps a buffer until it is flushed.
			value, read = self.parser.feed(chunk, offset)
			offset += read
			if value is None:
				continue
			elif self.parser is self.requestLine:
				self.line = self.requestLine.flush()
				self.lineHeaders = None
				if self.line is None:
					yield HTTPProcessingStatus.BadFormat
				else:
					yield self.line
					self.parser = self.headers
			elif self.parser is self.headers:
				if value is not False:
					# A header was added
					continue
				headers = self.headers.flush()
				self.lineHeaders = headers
				yield headers
				if headers.contentLength is None and "Transfer-Encoding" in headers.headers:
					# Only bodies with a `Content-Length` can be delimited
					yield HTTPProcessingStatus.NoLength
					self.parser = self.requestLine.reset()
				elif (
					self.line
					and self.line.method not in self.METHOD_HAS_BODY
					and not headers.contentLength
				) or headers.contentLength == 0:
					# That's an early exit, there is no body to read
					yield self.request(HTTPBodyBlob(b"", 0, 0))
					self.parser = self.requestLine.reset()
				elif headers.contentLength is None:
					# No length and no transfer encoding means no body
					yield self.request(HTTPBodyBlob(b"", 0, 0))
					self.parser = self.requestLine.reset()
				else:
					self.parser = self.bodyLength.reset(headers.contentLength)
					yield HTTPProcessingStatus.Body
			elif self.parser is self.bodyLength:
				if self.bodyLength.read == self.bodyLength.expected or offset >= size:
					# NOTE: When the chunk is exhausted the body may still
					# have remaining bytes, which the request loads from
					# its reader.
					yield self.request(self.bodyLength.flush())
					self.parser = self.requestLine.reset()
			else:
				raise RuntimeError(f"Unsupported parser: {self.parser}")

	def request(self, body: HTTPBodyBlob) -> HTTPRequest:
		line = self.line
		if line is None:
			raise RuntimeError("Request line was not parsed")
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=self.lineHeaders or HTTPHeaders({}),
			protocol=line.protocol,
			body=body,
		)


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		res[unquote_plus(kv[0])] = unquote_plus(kv[1]) if len(kv) > 1 else ""
	return res


# EOF
