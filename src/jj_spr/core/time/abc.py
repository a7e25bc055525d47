"""Time operations abstraction for testing.

The land protocol waits between mergeability polls and between fetch
attempts. Routing those waits through this ABC keeps tests fast and lets
them assert on the exact delays.
"""

from abc import ABC, abstractmethod


class Time(ABC):
    """Abstract time operations for dependency injection."""

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Sleep for specified number of seconds.

        Args:
            seconds: Number of seconds to sleep
        """
        ...
