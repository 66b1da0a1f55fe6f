from begin.api.hub import ReloadHub
from begin.api.livereload import LiveReload, LiveReloadServer, create_app

__all__ = ["LiveReload", "LiveReloadServer", "ReloadHub", "create_app"]
