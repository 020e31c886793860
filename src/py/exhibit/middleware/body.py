from urllib.parse import parse_qs

from ..http.model import HTTPRequest, HTTPResponse, MalformedBodyError
from ..pipeline import TNext
from ..utils.json import TJSON, unjson


def mediaType(contentType: str | None) -> str:
	"""Returns the media type of a `Content-Type` value, without parameters
	and in lower case."""
	return contentType.split(";", 1)[0].strip().lower() if contentType else ""


def decodeJSON(payload: bytes) -> TJSON:
	if not payload.strip():
		return None
	try:
		return unjson(payload.decode("utf8"))
	except ValueError as e:
		# Also covers `UnicodeDecodeError`
		raise MalformedBodyError(f"Malformed JSON body: {e}") from e


def decodeForm(payload: bytes) -> dict[str, list[str]]:
	try:
		return parse_qs(
			payload.decode("utf8"),
			keep_blank_values=True,
			encoding="utf8",
			errors="strict",
		)
	except ValueError as e:
		raise MalformedBodyError(f"Malformed form body: {e}") from e


class BodyDecoder:
	"""Decodes JSON and URL-encoded form bodies into `request.data`. Other
	content types are left as is, with the raw body still available
	through `request.load()`."""

	DECODERS = {
		"application/json": decodeJSON,
		"application/x-www-form-urlencoded": decodeForm,
	}

	async def __call__(self, request: HTTPRequest, next: TNext) -> HTTPResponse:
		decoder = self.DECODERS.get(mediaType(request.contentType))
		if decoder:
			request.data = decoder(await request.load())
		return await next()

	def __repr__(self) -> str:
		return "(BodyDecoder)"


# EOF
