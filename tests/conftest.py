import asyncio
from typing import Any, Callable

import pytest

from exhibit.http.model import HTTPBodyBlob, HTTPBodyFile, HTTPRequest, HTTPResponse
from exhibit.http.parser import HTTPParser


def raw(
	method: str = "GET",
	path: str = "/",
	body: bytes = b"",
	headers: dict[str, str] | None = None,
) -> bytes:
	"""Builds the bytes of an HTTP/1.1 request as a client would send them."""
	fields: dict[str, str] = {"Host": "localhost"} | (headers or {})
	if body and "Content-Length" not in fields:
		fields["Content-Length"] = str(len(body))
	lines = [f"{method} {path} HTTP/1.1"] + [f"{k}: {v}" for k, v in fields.items()]
	return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


def parse(data: bytes) -> list[HTTPRequest]:
	return [_ for _ in HTTPParser().feed(data) if isinstance(_, HTTPRequest)]


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
	"""Returns a factory of requests that go through the HTTP parser."""

	def factory(
		method: str = "GET",
		path: str = "/",
		body: bytes = b"",
		headers: dict[str, str] | None = None,
	) -> HTTPRequest:
		requests = parse(raw(method, path, body, headers))
		assert len(requests) == 1
		return requests[0]

	return factory


@pytest.fixture
def run() -> Callable[[Any], Any]:
	return asyncio.run


def content(response: HTTPResponse) -> bytes:
	"""Returns the bytes a client would receive as the response body."""
	if isinstance(response.body, HTTPBodyBlob):
		return response.body.payload
	elif isinstance(response.body, HTTPBodyFile):
		return response.body.path.read_bytes()
	elif response.body is None:
		return b""
	else:
		raise ValueError(f"Body is a stream: {response.body}")


@pytest.fixture
def read() -> Callable[[HTTPResponse], bytes]:
	return content


# EOF
