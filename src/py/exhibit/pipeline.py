from typing import Awaitable, Callable, Iterable, TypeAlias

from .http.model import (
	HandlerError,
	HTTPRequest,
	HTTPRequestError,
	HTTPResponse,
	NotFoundError,
)
from .routing import Router, awaited
from .utils.logging import exception, warning

# -----------------------------------------------------------------------------
#
# MIDDLEWARE
#
# -----------------------------------------------------------------------------

# --
# A middleware is any callable taking the request and a `next` callable that
# runs the rest of the chain. The middleware either returns its own response
# (and the rest of the chain is never run), or returns what `next()` gives,
# possibly after annotating the request. Both the middleware and `next` may
# return an awaitable.

TNext: TypeAlias = Callable[[], Awaitable[HTTPResponse]]
TMiddleware: TypeAlias = Callable[
	[HTTPRequest, TNext], HTTPResponse | Awaitable[HTTPResponse]
]


# -----------------------------------------------------------------------------
#
# PIPELINE
#
# -----------------------------------------------------------------------------


class Pipeline:
	"""An ordered chain of middleware ending with a router. The order is
	fixed at construction, and the pipeline is the boundary where errors are
	converted to responses."""

	def __init__(self, middleware: Iterable[TMiddleware], router: Router) -> None:
		self._middleware: tuple[TMiddleware, ...] = tuple(middleware)
		self.router: Router = router.prepare()

	@property
	def middleware(self) -> tuple[TMiddleware, ...]:
		return self._middleware

	async def handle(self, request: HTTPRequest) -> HTTPResponse:
		"""Runs the request through the chain, always returning a response."""
		try:
			return await self.run(request, 0)
		except HTTPRequestError as error:
			return self.onError(request, error)
		except Exception as e:
			exception(e, f"Unhandled error processing {request.method} {request.path}")
			return self.onError(request, HandlerError(str(e)))

	async def run(self, request: HTTPRequest, index: int) -> HTTPResponse:
		if index < len(self._middleware):
			response = await awaited(
				self._middleware[index](request, lambda: self.run(request, index + 1))
			)
			if response is None:
				raise HandlerError(
					f"Middleware #{index} did not return a response: {self._middleware[index]}"
				)
			return response
		else:
			response = await self.router.dispatch(request)
			if response is None:
				raise NotFoundError(f"No route for {request.method} {request.path}")
			return response

	def onError(self, request: HTTPRequest, error: HTTPRequestError) -> HTTPResponse:
		# The error message stays in the logs, the client only gets the status
		if not isinstance(error, NotFoundError):
			warning(
				"Request failed",
				Method=request.method,
				Path=request.path,
				Status=error.status,
				Error=error.message,
			)
		return request.respondEmpty(error.status)

	def __repr__(self) -> str:
		return f"(Pipeline {' → '.join(type(_).__name__ for _ in self._middleware)} → {self.router})"


# EOF
