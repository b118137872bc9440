from __future__ import annotations

from typing import Callable, Dict, Generic, TypeVar

from arstream.core.errors import ConfigError

T = TypeVar("T")


class DriverRegistry(Generic[T]):
    """
    Named constructors for one kind of driver.

    Lookups are case-insensitive. Unknown names and constructor mismatches
    raise ConfigError so the CLI can print them with a hint.
    """

    def __init__(self, kind: str, drivers: Dict[str, Callable[..., T]]):
        self.kind = kind
        self._drivers: Dict[str, Callable[..., T]] = {k.lower(): v for k, v in drivers.items()}

    def names(self) -> list[str]:
        return sorted(self._drivers)

    def get_class(self, driver: str) -> Callable[..., T]:
        key = driver.lower()
        if key not in self._drivers:
            raise ConfigError(
                f"Unknown {self.kind} driver '{driver}'.",
                hint=f"Valid drivers: {self.names()}",
                details={"kind": self.kind, "driver": driver},
            )
        return self._drivers[key]

    def create(self, driver: str, **params) -> T:
        """
        Instantiate by driver key. Constructor mismatches surface as ConfigError.
        """
        cls = self.get_class(driver)
        try:
            return cls(**params)
        except TypeError as e:
            raise ConfigError(
                f"Failed to construct {self.kind} driver '{driver}'.",
                hint=str(e),
                details={"kind": self.kind, "driver": driver, "params": sorted(params)},
            ) from None
