import pytest

from exhibit.http.model import HTTPRequestError, MalformedBodyError
from exhibit.pipeline import Pipeline
from exhibit.routing import Router


class Recorder:
	"""A middleware that records its invocation and passes the request on."""

	def __init__(self, name, calls):
		self.name = name
		self.calls = calls

	async def __call__(self, request, next):
		self.calls.append(self.name)
		return await next()


def router(**routes):
	res = Router()
	for name, handler in routes.items():
		method, path = name.split("_", 1)
		res.register(method, f"/{path}", handler)
	return res


def test_middleware_run_in_order(make_request, run, read):
	calls = []

	def handler(request):
		calls.append("router")
		return request.respondText("done")

	pipeline = Pipeline(
		[Recorder("a", calls), Recorder("b", calls), Recorder("c", calls)],
		router(GET_done=handler),
	)
	res = run(pipeline.handle(make_request("GET", "/done")))
	assert calls == ["a", "b", "c", "router"]
	assert res.status == 200
	assert read(res) == b"done"


def test_short_circuit_skips_the_rest(make_request, run, read):
	calls = []

	def stop(request, next):
		calls.append("stop")
		return request.respondText("stopped", status=418)

	def handler(request):
		calls.append("router")
		return request.respondText("done")

	pipeline = Pipeline(
		[Recorder("a", calls), stop, Recorder("c", calls)],
		router(GET_done=handler),
	)
	res = run(pipeline.handle(make_request("GET", "/done")))
	assert calls == ["a", "stop"]
	assert res.status == 418
	assert read(res) == b"stopped"


def test_annotations_reach_the_handler(make_request, run, read):
	async def annotate(request, next):
		request.data = {"user": "alice"}
		return await next()

	pipeline = Pipeline(
		[annotate], router(GET_me=lambda request: request.returns(request.data))
	)
	res = run(pipeline.handle(make_request("GET", "/me")))
	assert read(res) == b'{"user":"alice"}'


def test_middleware_can_process_the_response(make_request, run):
	async def tag(request, next):
		response = await next()
		return response.setHeader("X-Tag", "yes")

	pipeline = Pipeline([tag], router(GET_a=lambda request: request.respondText("a")))
	res = run(pipeline.handle(make_request("GET", "/a")))
	assert res.getHeader("X-Tag") == "yes"


def test_unmatched_is_not_found_with_empty_body(make_request, run, read):
	calls = []
	pipeline = Pipeline([Recorder("a", calls)], router())
	res = run(pipeline.handle(make_request("GET", "/nowhere")))
	assert calls == ["a"]
	assert res.status == 404
	assert read(res) == b""
	assert res.getHeader("Content-Length") == "0"


def test_handler_failure_is_internal_error(make_request, run, read):
	def fail(request):
		raise ValueError("secret details")

	pipeline = Pipeline([], router(GET_fail=fail))
	res = run(pipeline.handle(make_request("GET", "/fail")))
	assert res.status == 500
	# The error message is never sent to the client
	assert read(res) == b""
	assert b"secret" not in res.head()


def test_middleware_failure_is_internal_error(make_request, run, read):
	calls = []

	async def fail(request, next):
		raise RuntimeError("broken")

	pipeline = Pipeline(
		[fail, Recorder("b", calls)], router(GET_a=lambda request: request.respondText("a"))
	)
	res = run(pipeline.handle(make_request("GET", "/a")))
	assert res.status == 500
	assert read(res) == b""
	assert calls == []


@pytest.mark.parametrize(
	"error,status",
	[
		(MalformedBodyError("bad"), 400),
		(HTTPRequestError("teapot", 418), 418),
		(HTTPRequestError("default"), 500),
	],
)
def test_request_errors_map_to_status(make_request, run, read, error, status):
	def fail(request):
		raise error

	pipeline = Pipeline([], router(GET_fail=fail))
	res = run(pipeline.handle(make_request("GET", "/fail")))
	assert res.status == status
	assert read(res) == b""


def test_middleware_without_response_is_internal_error(make_request, run):
	def forgetful(request, next):
		return None

	pipeline = Pipeline([forgetful], router())
	res = run(pipeline.handle(make_request("GET", "/a")))
	assert res.status == 500


def test_router_is_prepared():
	pipeline = Pipeline([], router())
	with pytest.raises(RuntimeError):
		pipeline.router.register("GET", "/late", lambda request: None)


def test_pipeline_handles_requests_independently(make_request, run, read):
	pipeline = Pipeline([], router(GET_a=lambda request: request.returns(request.param("v"))))
	for i in range(3):
		res = run(pipeline.handle(make_request("GET", f"/a?v={i}")))
		assert read(res) == f'"{i}"'.encode()


# EOF
