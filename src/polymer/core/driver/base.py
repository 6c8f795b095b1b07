"""Browser driver capability consumed by the executor.

The core never imports Playwright; concrete drivers live under
``polymer.adapters``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Element(ABC):
    @abstractmethod
    async def click(self) -> None: ...

    @abstractmethod
    async def type(self, value: str) -> None: ...


class Page(ABC):
    @abstractmethod
    async def wait_load(self) -> None:
        """Block until the page reached its load state."""

    @abstractmethod
    async def find_element(self, identifier: str) -> Element:
        """Locate an element, raising ``ElementNotFound`` if it does not resolve."""


class BrowserDriver(ABC):
    """One driver instance serves exactly one run."""

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def open_page(self, url: str) -> Page: ...

    async def close(self) -> None:
        """Release browser resources held by this driver."""
        return None
