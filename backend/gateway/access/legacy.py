"""
Legacy redirects — retired area URLs and where they live now.

Resolved before anything else on every request, including before any
identity lookup. The remainder of the path is carried over, so
/afiliados/settings lands on /affiliates/settings.
"""

from __future__ import annotations

from typing import Iterator, Mapping

from gateway.access.errors import ConfigurationError
from gateway.access.paths import is_safe_next, is_under, longest_prefix_match, normalize_path


class LegacyRedirectMap:
    """Validated old-prefix -> new-prefix table. Targets never chain."""

    def __init__(self, mapping: Mapping[str, str]):
        self._entries: tuple[tuple[str, str], ...] = tuple(mapping.items())
        self._validate()

    def _validate(self) -> None:
        sources = set()
        for source, target in self._entries:
            if normalize_path(source) != source or source == "/":
                raise ConfigurationError(f"Legacy source '{source}' is not a canonical path")
            if source in sources:
                raise ConfigurationError(f"Duplicate legacy source '{source}'")
            sources.add(source)
            if not is_safe_next(target) or normalize_path(target) != target:
                raise ConfigurationError(
                    f"Legacy target '{target}' for '{source}' is not a same-origin canonical path"
                )

        # A target may neither sit under a source nor contain one, since the
        # rewritten remainder could then land on a source again.
        for source, target in self._entries:
            for other in sources:
                if is_under(target, other) or is_under(other, target):
                    raise ConfigurationError(
                        f"Legacy target '{target}' (from '{source}') overlaps legacy source '{other}'"
                    )

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def sources(self) -> list[str]:
        return [s for s, _ in self._entries]

    def match(self, path: str) -> tuple[str, str] | None:
        return longest_prefix_match(path, self._entries)

    def resolve(self, path: str) -> str | None:
        """Rewritten path for *path* (query excluded), or None."""
        hit = self.match(path)
        if hit is None:
            return None
        source, target = hit
        return target + normalize_path(path)[len(source):]


LEGACY_REDIRECTS = LegacyRedirectMap({
    "/afiliados": "/affiliates",
    "/clinica": "/clinic",
    "/financeiro": "/finance",
    "/suporte": "/support",
})


def find_legacy_redirect(path: str) -> str | None:
    return LEGACY_REDIRECTS.resolve(path)


def shadows(path: str) -> bool:
    """True if a legacy source would intercept *path*."""
    return any(is_under(normalize_path(path), s) for s in LEGACY_REDIRECTS.sources)
