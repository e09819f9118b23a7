from __future__ import annotations

import json
from typing import Iterable, List, Sequence

from .errors import DecodeError


class DomainFilter:
    """
    Brief: Decode stored hostname arrays and select the names to publish.

    Inputs:
      - external_domain: FQDN suffix (without leading dot) whose subdomains
        are passed through unchanged.

    Outputs:
      - DomainFilter instance.

    Notes:
      - Matching is exact and case-sensitive; no normalization is applied.
    """

    def __init__(self, external_domain: str) -> None:
        self.external_domain = external_domain
        self._external_suffix = "." + external_domain

    def is_external(self, hostname: str) -> bool:
        """Return True when hostname sits under the external domain."""
        return hostname.endswith(self._external_suffix)

    def filter(self, domains: Iterable[str]) -> List[str]:
        """
        Brief: Reduce raw hostnames to the sorted, de-duplicated published set.

        Inputs:
          - domains: Raw hostname records (any order, duplicates allowed).

        Outputs:
          - list[str]: Simple hostnames (no '.') and hostnames ending in
            '.<external_domain>', sorted ascending by code point.

        Notes:
          - Names are passed through verbatim. A simple name containing
            whitespace or a newline (e.g. 'a\\nb') is kept and yields a
            malformed hosts line; the registry is trusted to hold clean names.

        Example:
          >>> DomainFilter("example.org").filter(["wiki", "a.other.net", "example.org", "git.example.org"])
          ['git.example.org', 'wiki']
        """
        domains = list(domains)
        simple = [h for h in domains if "." not in h]
        external = [h for h in domains if self.is_external(h)]
        return sorted(set(simple + external))

    def parse_from_rows(self, rows: Iterable[Sequence[object]]) -> List[str]:
        """
        Brief: Flatten registry rows of JSON-encoded hostname arrays.

        Inputs:
          - rows: Sequence of rows; every column value is a JSON array of
            strings such as '["wiki","gitlab"]'.

        Outputs:
          - list[str]: Distinct hostnames, first occurrence order.

        Raises:
          - DecodeError: when a value is not text, not valid JSON, or not an
            array of strings. A single bad value aborts the whole parse.

        Example:
          >>> DomainFilter("example.org").parse_from_rows([['["wiki","gitlab"]'], ['["gitlab"]']])
          ['wiki', 'gitlab']
        """
        hostnames: List[str] = []
        for row in rows:
            for raw in row:
                hostnames.extend(_decode_array(raw))
        return list(dict.fromkeys(hostnames))


def _decode_array(raw: object) -> List[str]:
    if not isinstance(raw, (str, bytes, bytearray)):
        raise DecodeError(f"expected a JSON array, got {type(raw).__name__}")
    try:
        value = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise DecodeError(f"invalid JSON hostname array {raw[:80]!r}: {exc}") from exc
    if not isinstance(value, list) or not all(isinstance(h, str) for h in value):
        raise DecodeError(f"hostname value is not an array of strings: {raw[:80]!r}")
    return value
