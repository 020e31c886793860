from exhibit.http.model import HTTPHeaders, HTTPProcessingStatus, HTTPRequestLine
from exhibit.http.parser import HTTPParser, parseQuery

from conftest import parse, raw


def test_parses_request_line_and_headers():
	(req,) = parse(raw("GET", "/simple/get?a=1&b=x%20y", headers={"x-custom-header": "v"}))
	assert req.method == "GET"
	assert req.path == "/simple/get"
	assert req.query == {"a": "1", "b": "x y"}
	assert req.protocol == "HTTP/1.1"
	assert req.header("X-Custom-Header") == "v"
	assert req.header("x-custom-header") == "v"
	assert req.headers["Host"] == "localhost"
	assert req.isLoaded


def test_yields_atoms_in_order():
	atoms = list(HTTPParser().feed(raw("GET", "/")))
	assert isinstance(atoms[0], HTTPRequestLine)
	assert isinstance(atoms[1], HTTPHeaders)
	assert atoms[2].path == "/"


def test_parses_body_with_content_length():
	(req,) = parse(
		raw("POST", "/echo", b'{"a":1}', {"Content-Type": "application/json"})
	)
	assert req.contentType == "application/json"
	assert req.contentLength == 7
	assert req.body.raw == b'{"a":1}'
	assert req.isLoaded


def test_body_split_across_chunks():
	data = raw("POST", "/echo", b"0123456789")
	parser = HTTPParser()
	head, tail = data[:-4], data[-4:]
	first = list(parser.feed(head))
	assert HTTPProcessingStatus.Body in first
	(req,) = [_ for _ in first if hasattr(_, "method")]
	# The request is available with what was read so far, the rest is to
	# be loaded from the client by the request reader.
	assert req.body.payload == b"012345"
	assert req.body.remaining == 4
	assert not req.isLoaded
	assert list(parser.feed(tail)) == []


def test_headers_split_across_chunks():
	data = raw("GET", "/simple/get")
	parser = HTTPParser()
	atoms = []
	for i in range(len(data)):
		atoms += list(parser.feed(data[i : i + 1]))
	(req,) = [_ for _ in atoms if hasattr(_, "method")]
	assert req.path == "/simple/get"
	assert req.header("Host") == "localhost"


def test_pipelined_requests():
	requests = parse(raw("GET", "/a") + raw("POST", "/b", b"xyz") + raw("GET", "/c"))
	assert [(_.method, _.path) for _ in requests] == [
		("GET", "/a"),
		("POST", "/b"),
		("GET", "/c"),
	]
	assert requests[1].body.raw == b"xyz"


def test_get_with_body_is_consumed():
	requests = parse(raw("GET", "/a", b"ignored") + raw("GET", "/b"))
	assert [_.path for _ in requests] == ["/a", "/b"]


def test_headers_without_request_line_are_bad_format():
	atoms = list(HTTPParser().feed(b"garbage\r\n\r\n"))
	assert HTTPProcessingStatus.BadFormat in atoms
	assert not [_ for _ in atoms if hasattr(_, "method")]


def test_transfer_encoding_without_length_is_rejected():
	chunks = b'7\r\n{"a":1}\r\n0\r\n\r\n'
	data = raw("POST", "/echo", headers={"Transfer-Encoding": "chunked"}) + chunks
	atoms = list(HTTPParser().feed(data))
	assert HTTPProcessingStatus.NoLength in atoms
	assert not [_ for _ in atoms if hasattr(_, "method")]


def test_transfer_encoding_with_length_uses_length():
	(req,) = parse(
		raw("POST", "/echo", b"abc", {"Transfer-Encoding": "identity", "Content-Length": "3"})
	)
	assert req.body.raw == b"abc"


def test_parse_query():
	assert parseQuery("") == {}
	assert parseQuery("a&b=&c=1+2") == {"a": "", "b": "", "c": "1 2"}


# EOF
