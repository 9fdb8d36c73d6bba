"""Outbound USSD directives and the menu builder.

The gateway reads the first token of the plain-text body: ``CON`` keeps
the session open and waits for input, ``END`` closes it.  Both prefixes
are followed by exactly one space.  Messages are passed through
untouched; this module never truncates, since cutting a message could
split a multi-byte character.  Keeping pages short is the caller's job,
:data:`USSD_PAGE_LIMIT` is provided for checking.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import ClassVar, Final

USSD_PAGE_LIMIT: Final[int] = 182


@dataclass(frozen=True, slots=True)
class ResponseDirective:
    """Base of the two directives; instantiate :class:`Continue` or :class:`Terminate`."""

    message: str

    prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        if type(self) is ResponseDirective:
            raise TypeError("ResponseDirective is abstract; use Continue or Terminate")

    @property
    def is_continue(self) -> bool:
        return isinstance(self, Continue)

    @property
    def is_terminate(self) -> bool:
        return isinstance(self, Terminate)

    def render(self) -> str:
        return f"{self.prefix}{self.message}"

    @property
    def exceeds_page_limit(self) -> bool:
        """Whether the rendered body is longer than one USSD page."""
        return len(self.render()) > USSD_PAGE_LIMIT

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class Continue(ResponseDirective):
    """Keep the session open and wait for the next input."""

    prefix: ClassVar[str] = "CON "


@dataclass(frozen=True, slots=True)
class Terminate(ResponseDirective):
    """Close the session."""

    prefix: ClassVar[str] = "END "


class MenuDefinition:
    """Fluent builder for numbered USSD menus.

    Example::

        directive = (
            MenuDefinition("What would you like to check?")
            .add_option("1", "My account")
            .add_option("2", "My phone number")
            .build_continue()
        )
        directive.render()
        # 'CON What would you like to check?\\n1. My account\\n2. My phone number'

    Options are rendered in insertion order.
    """

    __slots__ = ("_options", "terminal", "title")

    def __init__(
        self,
        title: str,
        options: Iterable[tuple[str, str]] = (),
        *,
        terminal: bool = False,
    ) -> None:
        self.title = title
        self.terminal = terminal
        self._options: list[tuple[str, str]] = [(str(k), str(v)) for k, v in options]

    def add_option(self, key: str, label: str) -> MenuDefinition:
        self._options.append((str(key), str(label)))
        return self

    def add_options(self, options: Iterable[tuple[str, str]]) -> MenuDefinition:
        for key, label in options:
            self.add_option(key, label)
        return self

    @property
    def options(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._options)

    @property
    def keys(self) -> frozenset[str]:
        return frozenset(key for key, _ in self._options)

    @property
    def text(self) -> str:
        lines = [self.title]
        lines.extend(f"{key}. {label}" for key, label in self._options)
        return "\n".join(lines)

    def render(self) -> ResponseDirective:
        """Wrap the menu text as ``Terminate`` if the menu is terminal, else ``Continue``."""
        if self.terminal:
            return Terminate(self.text)
        return Continue(self.text)

    def build_continue(self) -> Continue:
        return Continue(self.text)

    def build_terminate(self) -> Terminate:
        return Terminate(self.text)

    def __repr__(self) -> str:
        return f"MenuDefinition(title={self.title!r}, options={self._options!r}, terminal={self.terminal!r})"
