import os
from pathlib import Path

from ..http.model import HTTPRequest, HTTPResponse
from ..pipeline import TNext
from ..utils.files import contentType, resolveUnder


class StaticAssetServer:
	"""Serves the files under a fixed root directory, declining (passing
	to the next middleware) whenever there is no readable file for the
	request path. Paths resolving outside of the root are always declined."""

	METHODS: frozenset[str] = frozenset(("GET", "HEAD"))
	INDEX: str = "index.html"

	def __init__(self, root: str | Path = ".") -> None:
		self.root: Path = Path(root).resolve()

	def resolvePath(self, path: str) -> Path | None:
		local_path = resolveUnder(self.root, path)
		if local_path is not None and local_path.is_dir():
			local_path = resolveUnder(self.root, f"{path.rstrip('/')}/{self.INDEX}")
		if (
			local_path is None
			or not local_path.is_file()
			or not os.access(local_path, os.R_OK)
		):
			return None
		return local_path

	async def __call__(self, request: HTTPRequest, next: TNext) -> HTTPResponse:
		if request.method not in self.METHODS:
			return await next()
		local_path = self.resolvePath(request.path)
		if local_path is None:
			return await next()
		return request.respondFile(local_path, contentType=contentType(local_path))

	def __repr__(self) -> str:
		return f"(StaticAssetServer {self.root})"


# EOF
