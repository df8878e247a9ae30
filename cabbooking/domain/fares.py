"""
Fare and carbon-saved calculation
=================================

Fare         = distance x rate_per_km x (1 + tax_rate)     (5 % by default)
Carbon saved = distance x carbon_saved_per_km              (eco rides only)

Both fail closed: missing inputs or a non-positive distance give 0.
No rounding happens here; presentation layers round if they need to.
"""

from __future__ import annotations

from typing import Optional

TAX_RATE = 0.05
CARBON_SAVED_PER_KM = 0.10  # kg CO2


def calculate_fare(
    distance: Optional[float],
    rate_per_km: Optional[float],
    tax_rate: float = TAX_RATE,
) -> float:
    if distance is None or rate_per_km is None or distance <= 0:
        return 0.0
    return distance * rate_per_km * (1 + tax_rate)


def calculate_carbon_saved(
    distance: Optional[float],
    eco_ride: bool,
    per_km: float = CARBON_SAVED_PER_KM,
) -> float:
    if not eco_ride or distance is None:
        return 0.0
    return distance * per_km
