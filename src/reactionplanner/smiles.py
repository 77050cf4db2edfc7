"""Lightweight SMILES inspection.

No parsing or validation is attempted; identifiers are kept exactly as
supplied.
"""

from __future__ import annotations

import re

_STEREO_MARKS = re.compile(r"@|[/\\]")


def has_stereo(smiles: str) -> bool:
    """True when the SMILES carries tetrahedral or double-bond stereo marks."""
    return bool(smiles) and _STEREO_MARKS.search(smiles) is not None
