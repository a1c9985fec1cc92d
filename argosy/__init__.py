__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'argosy'
__author__ = 'Eiko Reishin (影皇嶺臣)'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .arity import *
from .binder import *
from .commands import *
from .compiler import *
from .declarations import *
from .faults import *
from .model import *
from .parsers import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the declarations
__all__ += declarations.__all__  # type: ignore[attr-defined]
# Load the exposed API of the arity inferencer
__all__ += arity.__all__  # type: ignore[attr-defined]
# Load the exposed API of the value parsers
__all__ += parsers.__all__  # type: ignore[attr-defined]
# Load the exposed API of the model
__all__ += model.__all__  # type: ignore[attr-defined]
# Load the exposed API of the compiler
__all__ += compiler.__all__  # type: ignore[attr-defined]
# Load the exposed API of the binder
__all__ += binder.__all__  # type: ignore[attr-defined]
# Load the exposed API of the commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
