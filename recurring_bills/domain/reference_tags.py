"""Decoding of relation tags embedded in a bill's free-text notes.

The loan and savings subsystems link a bill to their entities by writing
``[LOAN_REF:<loanId>]`` or ``[SAVINGS_REF:<goalId>]`` into ``notes``. There
is no stored foreign key; these helpers are the only way to resolve it.
"""

import re
from typing import Optional

_LOAN_REF = re.compile(r"\[LOAN_REF:([^\]\s]+)\]")
_SAVINGS_REF = re.compile(r"\[SAVINGS_REF:([^\]\s]+)\]")


def _first_token(pattern: re.Pattern, notes: Optional[str]) -> Optional[str]:
    if not notes or not isinstance(notes, str):
        return None
    match = pattern.search(notes)
    return match.group(1) if match else None


def extract_loan_ref(notes: Optional[str]) -> Optional[str]:
    """Return the loan id of the first LOAN_REF tag, or None"""
    return _first_token(_LOAN_REF, notes)


def extract_savings_ref(notes: Optional[str]) -> Optional[str]:
    """Return the goal id of the first SAVINGS_REF tag, or None"""
    return _first_token(_SAVINGS_REF, notes)
