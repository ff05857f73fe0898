"""Parse ``<id>`` command arguments."""

from __future__ import annotations

import re
from typing import Optional

from .errors import MissingParameterError, NotANumberError

_leading_int_re = re.compile(r"\s*([+-]?[0-9]+)")


def validate_id(raw: Optional[str]) -> int:
    """Turn a raw ``<id>`` argument into an integer.

    Only the leading ASCII integer is used, so ``"3abc"`` yields ``3``.
    Whether a quiz exists under the id is left to the store lookup.
    """
    if raw is None:
        raise MissingParameterError()
    match = _leading_int_re.match(raw)
    if not match:
        raise NotANumberError(raw)
    return int(match.group(1))
