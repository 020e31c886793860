from .config import Config
from .decorators import expose
from .middleware import (
	BodyDecoder,
	BuildConfig,
	DevBuildMiddleware,
	LiveReloadMiddleware,
	StaticAssetServer,
)
from .model import Service
from .pipeline import Pipeline, TMiddleware
from .routing import Router


class Examples(Service):
	"""The endpoints that the example pages call."""

	@expose(GET="/simple/get")
	def simpleGet(self) -> dict[str, str]:
		return {"msg": "hello world"}


def middleware(config: Config) -> list[TMiddleware]:
	"""Returns the middleware in the order requests go through them. The dev
	build and the static assets come before the body decoding, as they
	respond without needing the body."""
	build = DevBuildMiddleware(
		BuildConfig(
			outputPath=config.buildPath,
			command=config.buildCommand,
			sources=config.buildSources,
		)
	)
	reload = LiveReloadMiddleware()
	build.onBuild(reload.notify)
	return [build, reload, StaticAssetServer(config.root), BodyDecoder()]


def pipeline(config: Config, *services: Service) -> Pipeline:
	"""Creates the pipeline, with the given services mounted in the router
	(the `Examples` service when none is given)."""
	router = Router()
	for service in services or (Examples(),):
		router.mount(service)
	return Pipeline(middleware(config), router)


# EOF
