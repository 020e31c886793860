from inspect import isawaitable
from typing import (
	TYPE_CHECKING,
	Any,
	Awaitable,
	Callable,
	NamedTuple,
	TypeAlias,
	TypeVar,
)

from .decorators import Expose, Extra
from .http.model import HTTPRequest, HTTPResponse
from .utils.logging import info

if TYPE_CHECKING:
	from .model import Service

T = TypeVar("T")

THandler: TypeAlias = Callable[
	[HTTPRequest], HTTPResponse | Awaitable[HTTPResponse]
]


async def awaited(value: T | Awaitable[T]) -> T:
	if isawaitable(value):
		return await value
	else:
		return value


# -----------------------------------------------------------------------------
#
# ROUTE
#
# -----------------------------------------------------------------------------


class RouteConflict(ValueError):
	"""Raised at startup when a method and path pair is registered twice."""


class Route(NamedTuple):
	"""A static binding of an HTTP method and a literal path to a handler."""

	method: str
	path: str
	handler: THandler

	def __repr__(self) -> str:
		return f"(Route {self.method} {self.path!r})"


def normpath(path: str, prefix: str | None = None) -> str:
	path = f"{prefix.rstrip('/')}/{path.lstrip('/')}" if prefix else path
	return path if path.startswith("/") else f"/{path}"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
	"""A handler wraps a service method decorated with `@on` or `@expose`,
	along with the `(method, path)` pairs it responds to."""

	@staticmethod
	def Get(value: Any) -> "Handler | None":
		if not callable(value) or not hasattr(value, Extra.ON):
			return None
		return Handler(
			functor=value,
			methods=getattr(value, Extra.ON),
			expose=getattr(value, Extra.EXPOSE, None),
		)

	def __init__(
		self,
		functor: Callable[..., Any],
		methods: list[tuple[str, str]],
		expose: Expose | None = None,
	):
		self.functor = functor
		self.methods: list[tuple[str, str]] = list(methods)
		self.expose: Expose | None = expose

	async def __call__(self, request: HTTPRequest) -> HTTPResponse:
		if self.expose:
			value: Any = await awaited(self.functor())
			return request.returns(
				value, status=self.expose.status, contentType=self.expose.contentType
			)
		else:
			return await awaited(self.functor(request))

	def __repr__(self) -> str:
		methods = " ".join(f"({m} {p!r})" for m, p in self.methods)
		return f"(Handler ({methods}) '{self.functor}'{' :expose' if self.expose else ''})"


# -----------------------------------------------------------------------------
#
# ROUTER
#
# -----------------------------------------------------------------------------


class Router:
	"""Registers routes at startup and dispatches requests to the route
	whose method and path are exactly the request's. Once prepared, the
	router is read-only and can be shared by concurrent requests."""

	def __init__(self) -> None:
		self._routes: dict[tuple[str, str], Route] = {}
		self.isPrepared: bool = False

	@property
	def routes(self) -> tuple[Route, ...]:
		return tuple(self._routes.values())

	def register(self, method: str, path: str, handler: THandler) -> Route:
		"""Registers the `handler` for the given `method` and literal `path`,
		failing with `RouteConflict` if the pair is already registered."""
		if self.isPrepared:
			raise RuntimeError(
				f"Router is prepared, cannot register route: {method} {path}"
			)
		route = Route(method.upper(), normpath(path), handler)
		key = (route.method, route.path)
		if key in self._routes:
			raise RouteConflict(
				f"Route already registered for {route.method} {route.path}: {self._routes[key].handler}"
			)
		self._routes[key] = route
		info("Registered route", Method=route.method, Path=route.path)
		return route

	def mount(self, service: "Service", prefix: str | None = None) -> "Service":
		"""Registers all the handlers of the given service, adding the prefix
		(or the service's own prefix) to their paths."""
		for handler in service.handlers:
			for method, path in handler.methods:
				self.register(method, normpath(path, prefix or service.prefix), handler)
		return service

	def prepare(self) -> "Router":
		"""Freezes the routes, which can't be registered anymore."""
		self.isPrepared = True
		return self

	def match(self, method: str, path: str) -> Route | None:
		return self._routes.get((method.upper(), path))

	async def dispatch(self, request: HTTPRequest) -> HTTPResponse | None:
		"""Invokes the handler of the route matching the request, returning
		`None` when there is no such route."""
		route = self.match(request.method, request.path)
		if route is None:
			return None
		return await awaited(route.handler(request))

	def __repr__(self) -> str:
		return f"(Router {' '.join(repr(_) for _ in self._routes.values())})"


# EOF
