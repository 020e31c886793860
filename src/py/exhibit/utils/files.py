import mimetypes
from pathlib import Path
from urllib.parse import unquote

mimetypes.init()

MIME_TYPES: dict[str, str] = dict(
	js="text/javascript",
	mjs="text/javascript",
	map="application/json",
	ts="text/plain",
	wasm="application/wasm",
)

FILE_TYPES: dict[str, str] = {
	"importmap.json": "application/importmap+json",
}


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path"""
	name = Path(path).name
	return (
		FILE_TYPES.get(name)
		or MIME_TYPES.get(name.rsplit(".", 1)[-1].lower())
		or mimetypes.guess_type(name)[0]
		or "application/octet-stream"
	)


def resolveUnder(root: Path, path: str) -> Path | None:
	"""Resolves the URL `path` as a location within `root`, returning `None`
	when the resolved location (following symlinks) is outside of the root.
	The `root` is expected to be already resolved."""
	relative = unquote(path.split("?", 1)[0]).lstrip("/")
	try:
		local_path = root.joinpath(relative).resolve()
	except (OSError, ValueError, RuntimeError):
		# Null bytes, symlink loops and the like
		return None
	if local_path != root and root not in local_path.parents:
		return None
	return local_path


# EOF
