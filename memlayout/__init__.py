from .errors import ConfigError, LayoutError
from .memory import Layout
from .assemble import assemble, Stage, BuildInfo
from .emit import emit
from .outputs import render
