# emr_core/prescriptions/allergies.py
from __future__ import annotations

from typing import Iterable


def check_allergies(allergies: Iterable[str], medication_names: Iterable[str]) -> list[str]:
    """
    Return one warning per recorded allergy that overlaps a medication name.

    Matching is case-insensitive substring in either direction, so an allergy to
    "penicillin" flags "Penicillin V" and an allergy to "amoxicillin/clavulanate"
    flags "Amoxicillin". Pure: no lookups, no side effects.
    """
    names = [n.strip().lower() for n in medication_names if n and n.strip()]
    warnings: list[str] = []

    for allergy in allergies or []:
        a = (allergy or "").strip()
        if not a:
            continue
        al = a.lower()
        hit = next((n for n in names if al in n or n in al), None)
        if hit is not None:
            warnings.append(f"Patient is allergic to {a} (matches {hit}).")

    return warnings
