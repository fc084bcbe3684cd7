"""Domain-name helpers.

Roster only ever deals with two spellings of a site name: the root form
(``example.com``) and the ``www.`` form (``www.example.com``).
"""

from __future__ import annotations

WWW_PREFIX = "www."


def normalize_domain(name: str) -> str:
    """Lower-case *name* and drop surrounding whitespace and a trailing dot."""
    name = name.strip().lower()
    if name.endswith("."):
        name = name[:-1]
    return name


def is_www(name: str) -> bool:
    return name.startswith(WWW_PREFIX)


def strip_www(name: str) -> str:
    """Remove exactly one leading ``www.``."""
    if is_www(name):
        return name[len(WWW_PREFIX):]
    return name


def www_form(domain: str) -> str:
    return WWW_PREFIX + domain


def wants_www_altname(domain: str) -> bool:
    """Whether a certificate for *domain* should also cover ``www.domain``.

    Names with two or more dots (``sub.example.com``) are treated as
    subdomains and do not get a ``www.`` altname.
    """
    return domain.count(".") < 2
