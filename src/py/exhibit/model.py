from typing import ClassVar, Iterable

from .routing import Handler

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
	"""A service groups handlers declared with `@on` and `@expose`, which
	are registered in a router when the service is mounted."""

	PREFIX: ClassVar[str] = ""
	NO_HANDLER: ClassVar[list[str]] = ["name", "prefix", "handlers"]

	def __init__(
		self, name: str | None = None, *, prefix: str | None = None
	) -> None:
		self.name: str = name or self.__class__.__name__
		self.prefix: str = prefix or self.PREFIX
		self._handlers: list[Handler] | None = None

	@property
	def handlers(self) -> list[Handler]:
		if self._handlers is None:
			self._handlers = list(self.iterHandlers())
		return self._handlers

	def iterHandlers(self) -> Iterable[Handler]:
		for name in dir(self):
			if name.startswith("_") or name in self.NO_HANDLER:
				continue
			handler = Handler.Get(getattr(self, name))
			if handler:
				yield handler

	def __repr__(self) -> str:
		return f"(Service {self.name})"


# EOF
