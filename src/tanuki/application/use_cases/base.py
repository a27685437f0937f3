"""Request and response shapes shared by the write-side use cases."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class UseCaseRequest:
    """Input of a single use case run."""


@dataclass(frozen=True)
class UseCaseResponse:
    """Outcome of a use case; failures are raised, never returned."""


class UseCase(ABC):
    """One write operation on the collection."""

    @abstractmethod
    def execute(self, request: UseCaseRequest) -> UseCaseResponse:
        ...
