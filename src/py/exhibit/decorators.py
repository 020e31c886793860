from typing import Any, Callable, ClassVar, NamedTuple, TypeVar, cast

T = TypeVar("T")


class Extra:
	"""Defines the attributes that decorators attach to handler functions."""

	ON: ClassVar[str] = "_exhibit_on"
	EXPOSE: ClassVar[str] = "_exhibit_expose"

	@staticmethod
	def Meta(scope: Any) -> dict[str, Any]:
		"""Returns the dictionary of meta attributes for the given value."""
		if isinstance(scope, type):
			if "__exhibit__" not in scope.__dict__:
				setattr(scope, "__exhibit__", {})
			return cast(dict[str, Any], getattr(scope, "__exhibit__"))
		elif hasattr(scope, "__dict__"):
			return cast(dict[str, Any], scope.__dict__)
		else:
			raise RuntimeError(f"Metadata cannot be attached to object: {scope}")


def methodPaths(methods: dict[str, str | list[str] | tuple[str, ...]]) -> list[tuple[str, str]]:
	"""Expands `GET_HEAD="/a"` style keyword arguments into a list of
	`(method, path)` pairs."""
	res: list[tuple[str, str]] = []
	for http_methods, url in methods.items():
		urls = (url,) if isinstance(url, str) else url
		for http_method in http_methods.upper().split("_"):
			for _ in urls:
				res.append((http_method, _))
	return res


def on(**methods: str | list[str] | tuple[str, ...]) -> Callable[[T], T]:
	"""The @on decorator marks a service method as the handler of the given
	HTTP methods and paths, for instance:

	>    @on(GET="/simple/get", POST="/simple/post")
	>    def simple(self, request):
	>        return request.returns({"msg": "hello world"})

	The decorated method takes the request and returns a response. Paths are
	literal: there is no pattern matching."""

	def decorator(function: T) -> T:
		Extra.Meta(function).setdefault(Extra.ON, []).extend(methodPaths(methods))
		return function

	return decorator


class Expose(NamedTuple):
	contentType: str = "application/json"
	status: int = 200


def expose(
	contentType: str = "application/json",
	status: int = 200,
	**methods: str | list[str] | tuple[str, ...],
) -> Callable[[T], T]:
	"""The @expose decorator is a variation of @on where the decorated
	method takes no request and returns a value, which is then serialized
	as JSON in the response."""

	def decorator(function: T) -> T:
		meta = Extra.Meta(function)
		meta.setdefault(Extra.ON, []).extend(methodPaths(methods))
		meta.setdefault(Extra.EXPOSE, Expose(contentType=contentType, status=status))
		return function

	return decorator


# EOF
