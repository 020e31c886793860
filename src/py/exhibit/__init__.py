from .http.model import (
	HTTPRequest,
	HTTPResponse,
	HTTPRequestError,
	HandlerError,
	MalformedBodyError,
	NotFoundError,
)  # NOQA: F401
from .decorators import on, expose  # NOQA: F401
from .model import Service  # NOQA: F401
from .routing import Route, RouteConflict, Router  # NOQA: F401
from .pipeline import Pipeline  # NOQA: F401
from .config import Config  # NOQA: F401
from .server import run  # NOQA: F401


# EOF
