import math
from typing import Optional

class UnitConversions:
    """Centralized utility for unit conversions across the application."""

    @staticmethod
    def cms_to_ms(cms: Optional[float]) -> Optional[float]:
        """Convert centimeters per second to meters per second."""
        if cms is None:
            return None
        return round(cms / 100, 3)

    @staticmethod
    def nautical_miles_to_km(nmi: Optional[float]) -> Optional[float]:
        """Convert nautical miles to kilometers."""
        if nmi is None:
            return None
        return round(nmi * 1.852, 2)

    @staticmethod
    def parse_float(value) -> Optional[float]:
        """Parse a feed value, returning None for blanks, markers and non-finite numbers."""
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if value in ("", "MM", "missing"):
                return None
        try:
            parsed = float(value)
        except (ValueError, TypeError):
            return None
        return parsed if math.isfinite(parsed) else None
