"""Base formatter interface for hostguard output rendering."""

from abc import ABC, abstractmethod

from ..models import BatchResult


class BaseFormatter(ABC):
    """Abstract base class for output formatters.

    Formatters are presentational only: they never evaluate rules or touch
    files.
    """

    def render(self, batch: BatchResult) -> None:
        """Print the formatted report to stdout."""
        text = self.format(batch)
        if text:
            print(text)

    @abstractmethod
    def format(self, batch: BatchResult) -> str:
        """Return formatted string representation of a run."""
