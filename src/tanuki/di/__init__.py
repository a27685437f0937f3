from .bootstrap import bootstrap, shutdown
from .container import Container, Registration
from .lifetime import Lifetime

__all__ = [
    "Container",
    "Lifetime",
    "Registration",
    "bootstrap",
    "shutdown",
]
