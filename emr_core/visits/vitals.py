# emr_core/visits/vitals.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

# Accepted intake range per vital (inclusive). Units: mmHg, BPM, breaths/min,
# degrees C, %, kg, cm, 0-10 scale.
VITAL_RANGES: dict[str, tuple[int, int]] = {
    "bp_systolic": (60, 250),
    "bp_diastolic": (40, 150),
    "heart_rate": (30, 200),
    "respiratory_rate": (8, 40),
    "temperature": (30, 45),
    "spo2": (70, 100),
    "weight": (1, 500),
    "height": (30, 250),
    "pain_scale": (0, 10),
}

DECIMAL_VITALS = ("temperature", "weight", "height")


def out_of_range(values: dict) -> dict[str, list[str]]:
    """
    Field errors for any supplied vital outside its range. Each vital is
    checked on its own; no cross-field plausibility rules.
    """
    errors: dict[str, list[str]] = {}
    for name, (lo, hi) in VITAL_RANGES.items():
        value = values.get(name)
        if value is None:
            continue
        if not (lo <= value <= hi):
            errors[name] = [f"Must be between {lo} and {hi}."]
    return errors


def compute_bmi(weight_kg, height_cm) -> Decimal | None:
    if weight_kg is None or height_cm is None:
        return None
    height_m = Decimal(str(height_cm)) / Decimal("100")
    if height_m <= 0:
        return None
    bmi = Decimal(str(weight_kg)) / (height_m * height_m)
    return bmi.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
