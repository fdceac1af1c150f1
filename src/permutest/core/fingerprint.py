"""Content-addressed identity for permutations.

The identity of a permutation is derived from its description only:

- canonical description: ``key=value`` pairs, keys sorted, joined by ``", "``
- identity digest: MD5 hex digest of the canonical description

Same description -> same digest, whatever the insertion order or the
formats used, as long as the rendered values agree. Notes and data never
take part. MD5 is used for stability, not for security.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass

from permutest.formatting.value import DescribedValue, render_values

SEPARATOR = ", "


def canonical_description(description: Mapping[str, DescribedValue]) -> str:
    return render_values(description, SEPARATOR)


def identity_digest(canonical: str) -> str:
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Fingerprint:
    """The two derived keys of a description."""

    key: str
    long_key: str

    @classmethod
    def of(cls, description: Mapping[str, DescribedValue]) -> Fingerprint:
        long_key = canonical_description(description)
        return cls(key=identity_digest(long_key), long_key=long_key)


EMPTY_FINGERPRINT = Fingerprint(key=identity_digest(""), long_key="")
