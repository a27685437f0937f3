from enum import Enum


class Lifetime(Enum):
    """How long a resolved instance is reused."""

    SINGLETON = "singleton"  # one instance per container
    TRANSIENT = "transient"  # a new instance per resolve()
