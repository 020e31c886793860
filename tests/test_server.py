import asyncio
import http.client
import json
import socket
import threading

import pytest

from exhibit.app import Examples, pipeline
from exhibit.config import Config
from exhibit.decorators import on
from exhibit.model import Service
from exhibit.server import AIOSocketServer, ServerOptions, ServerState


class Echo(Service):
	@on(POST="/echo")
	def echo(self, request):
		return request.returns(request.data)


def options(port=0):
	return ServerOptions(
		host="127.0.0.1", port=port, stopSignals=False, logRequests=False, polling=0.05
	)


@pytest.fixture
def server(tmp_path):
	(tmp_path / "index.html").write_text("<h1>Examples</h1>")
	(tmp_path / "large.txt").write_bytes(b"x" * 200_000)
	app = pipeline(Config(root=tmp_path, buildSources=(tmp_path,)), Examples(), Echo())
	state = ServerState()
	thread = threading.Thread(
		target=asyncio.run,
		args=(AIOSocketServer.Serve(app, options(), state),),
		daemon=True,
	)
	thread.start()
	assert state.ready.wait(5)
	yield state
	state.stop()
	thread.join(5)
	assert not thread.is_alive()


@pytest.fixture
def client(server):
	connection = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
	yield connection
	connection.close()


def request(client, method, path, body=None, headers=None):
	client.request(method, path, body=body, headers=headers or {})
	res = client.getresponse()
	return res.status, dict(res.getheaders()), res.read()


def test_simple_get(client):
	status, headers, body = request(client, "GET", "/simple/get")
	assert status == 200
	assert headers["Content-Type"] == "application/json"
	assert json.loads(body) == {"msg": "hello world"}


def test_keep_alive(client):
	for _ in range(3):
		assert request(client, "GET", "/simple/get")[2] == b'{"msg":"hello world"}'
	assert request(client, "GET", "/index.html")[2] == b"<h1>Examples</h1>"


def test_not_found(client):
	status, headers, body = request(client, "GET", "/nowhere")
	assert status == 404
	assert headers["Content-Length"] == "0"
	assert body == b""


def test_json_body(client):
	payload = {"items": list(range(20_000)), "name": "Jérôme"}
	status, _, body = request(
		client,
		"POST",
		"/echo",
		json.dumps(payload).encode("utf8"),
		{"Content-Type": "application/json"},
	)
	assert status == 200
	assert json.loads(body) == payload
	# The connection is still usable once the whole body was read
	assert request(client, "GET", "/simple/get")[0] == 200


def test_malformed_body(client):
	status, _, body = request(
		client, "POST", "/echo", b"{nope", {"Content-Type": "application/json"}
	)
	assert status == 400
	assert body == b""


def test_static_files(client):
	status, headers, body = request(client, "GET", "/large.txt")
	assert status == 200
	assert headers["Content-Length"] == "200000"
	assert body == b"x" * 200_000
	status, headers, body = request(client, "HEAD", "/large.txt")
	assert status == 200
	assert headers["Content-Length"] == "200000"
	assert body == b""


def test_connection_close(server):
	with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
		sock.sendall(
			b"GET /simple/get HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
		)
		data = b""
		while chunk := sock.recv(4096):
			data += chunk
	assert data.startswith(b"HTTP/1.1 200 OK\r\n")
	assert data.endswith(b'{"msg":"hello world"}')


def test_bad_request(server):
	with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
		sock.sendall(b"garbage\r\n\r\n")
		data = b""
		while chunk := sock.recv(4096):
			data += chunk
	assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")


def test_chunked_body_is_rejected(server):
	with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
		sock.sendall(
			b"POST /echo HTTP/1.1\r\n"
			b"Host: localhost\r\n"
			b"Content-Type: application/json\r\n"
			b"Transfer-Encoding: chunked\r\n"
			b"\r\n"
			b'7\r\n{"a":1}\r\n0\r\n\r\n'
		)
		data = b""
		while chunk := sock.recv(4096):
			data += chunk
	# A single response, and the connection is closed
	assert data == (
		b"HTTP/1.1 411 Length Required\r\n"
		b"Content-Length: 0\r\n"
		b"Connection: close\r\n"
		b"\r\n"
	)


def test_bind_failure_is_fatal(tmp_path):
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
		busy.bind(("127.0.0.1", 0))
		busy.listen(1)
		port = busy.getsockname()[1]
		app = pipeline(Config(root=tmp_path, buildSources=(tmp_path,)))
		with pytest.raises(OSError):
			asyncio.run(AIOSocketServer.Serve(app, options(port)))


# EOF
