"""Site entity."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from roster.core.domains import www_form

WSGIApplication = Callable[..., Any]


@dataclass(frozen=True)
class Site:
    """A served root domain and the WSGI application that handles it."""

    domain: str
    handler: WSGIApplication

    @property
    def names(self) -> tuple[str, str]:
        """Host names this site answers to: root form, then ``www.`` form."""
        return (self.domain, www_form(self.domain))
