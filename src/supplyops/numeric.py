"""
Small numeric helpers shared by the analyzers.

All helpers are vectorised over pandas Series. Ratios with a zero or
missing divisor come back as NaN so the report layer can emit them as
nulls instead of failing the run.
"""

import numpy as np
import pandas as pd

SECONDS_PER_DAY = 86_400
DAYS_PER_YEAR = 365

# Guards against binary representation noise (0.285 * 100 == 28.499999...)
_ROUNDING_EPSILON = 1e-9


def safe_divide(numerator: pd.Series, denominator) -> pd.Series:
    """
    Divide element-wise, returning NaN wherever the denominator is 0 or null.

    The denominator may be a scalar or a Series aligned with the numerator.
    """
    num = pd.to_numeric(numerator, errors="coerce").astype("float64")
    if np.isscalar(denominator):
        den = pd.Series(float(denominator), index=num.index)
    else:
        den = pd.to_numeric(denominator, errors="coerce").astype("float64")
    return (num / den.where(den != 0)).astype("float64")


def round_half_up(values: pd.Series, decimals: int = 0) -> pd.Series:
    """Round half away from zero; NaN stays NaN."""
    factor = 10.0**decimals
    values = values.astype("float64")
    magnitude = np.floor(values.abs() * factor + 0.5 + _ROUNDING_EPSILON) / factor
    return np.sign(values) * magnitude


def truncate_coordinate(values: pd.Series, decimals: int = 1) -> pd.Series:
    """Cut coordinates toward zero to a fixed number of decimals (grid cell)."""
    factor = 10.0**decimals
    values = values.astype("float64")
    scaled = values * factor
    return np.trunc(scaled + np.sign(scaled) * _ROUNDING_EPSILON) / factor


def elapsed_days(later: pd.Series, earlier: pd.Series) -> pd.Series:
    """Fractional days between two timestamp Series (NaN when either is null)."""
    return (later - earlier).dt.total_seconds() / SECONDS_PER_DAY


def calendar_days(later: pd.Series, earlier: pd.Series) -> pd.Series:
    """Whole days between the calendar dates of two timestamp Series."""
    return (later.dt.normalize() - earlier.dt.normalize()).dt.days
