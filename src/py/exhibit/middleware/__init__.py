from .body import BodyDecoder  # NOQA: F401
from .build import BuildConfig, DevBuildMiddleware, LiveReloadMiddleware  # NOQA: F401
from .static import StaticAssetServer  # NOQA: F401

# EOF
