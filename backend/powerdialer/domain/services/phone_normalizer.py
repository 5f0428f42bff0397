"""
Phone & Region Normalizer
Canonical phone digits and region -> calling timezone lookup
"""
import re
from typing import Dict, Optional

from powerdialer.domain.models.lead import DialerTimezone

# Shorter normalized numbers are rejected by callers
MIN_PHONE_DIGITS = 7

_NON_DIGIT_RE = re.compile(r"\D")

ET = DialerTimezone.ET
CT = DialerTimezone.CT
MT = DialerTimezone.MT
PT = DialerTimezone.PT

# Region code -> calling bucket
REGION_TIMEZONE_MAP: Dict[str, DialerTimezone] = {
    # Eastern Time
    "NC": ET, "FL": ET, "GA": ET, "SC": ET, "VA": ET, "NY": ET, "PA": ET,
    "OH": ET, "MI": ET, "IN": ET, "KY": ET, "TN": ET, "AL": ET, "MS": ET,
    "CT": ET, "DE": ET, "ME": ET, "MD": ET, "MA": ET, "NH": ET, "NJ": ET,
    "RI": ET, "VT": ET, "WV": ET, "DC": ET,
    # Central Time
    "TX": CT, "IL": CT, "WI": CT, "MN": CT, "IA": CT, "MO": CT, "AR": CT,
    "LA": CT, "KS": CT, "NE": CT, "ND": CT, "SD": CT, "OK": CT,
    # Mountain Time
    "AZ": MT, "CO": MT, "ID": MT, "MT": MT, "NM": MT, "UT": MT, "WY": MT,
    # Pacific Time
    "CA": PT, "NV": PT, "OR": PT, "WA": PT,
    # Non-contiguous states and territories
    "HI": PT, "AK": PT, "GU": PT, "AS": PT, "MP": PT,
    "PR": ET, "VI": ET,
}

# Full region name -> code
REGION_NAME_MAP: Dict[str, str] = {
    "ALABAMA": "AL", "ALASKA": "AK", "ARIZONA": "AZ", "ARKANSAS": "AR",
    "CALIFORNIA": "CA", "COLORADO": "CO", "CONNECTICUT": "CT", "DELAWARE": "DE",
    "FLORIDA": "FL", "GEORGIA": "GA", "HAWAII": "HI", "IDAHO": "ID",
    "ILLINOIS": "IL", "INDIANA": "IN", "IOWA": "IA", "KANSAS": "KS",
    "KENTUCKY": "KY", "LOUISIANA": "LA", "MAINE": "ME", "MARYLAND": "MD",
    "MASSACHUSETTS": "MA", "MICHIGAN": "MI", "MINNESOTA": "MN", "MISSISSIPPI": "MS",
    "MISSOURI": "MO", "MONTANA": "MT", "NEBRASKA": "NE", "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH", "NEW JERSEY": "NJ", "NEW MEXICO": "NM", "NEW YORK": "NY",
    "NORTH CAROLINA": "NC", "NORTH DAKOTA": "ND", "OHIO": "OH", "OKLAHOMA": "OK",
    "OREGON": "OR", "PENNSYLVANIA": "PA", "RHODE ISLAND": "RI", "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD", "TENNESSEE": "TN", "TEXAS": "TX", "UTAH": "UT",
    "VERMONT": "VT", "VIRGINIA": "VA", "WASHINGTON": "WA", "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI", "WYOMING": "WY",
    "DISTRICT OF COLUMBIA": "DC", "WASHINGTON DC": "DC", "WASHINGTON D.C.": "DC",
    "PUERTO RICO": "PR", "GUAM": "GU", "AMERICAN SAMOA": "AS",
    "NORTHERN MARIANA ISLANDS": "MP",
    "VIRGIN ISLANDS": "VI", "U.S. VIRGIN ISLANDS": "VI", "US VIRGIN ISLANDS": "VI",
}


def normalize_phone(raw: Optional[str]) -> str:
    """
    Canonical digits-only phone number.

    Strips every non-digit; an 11-digit number with a leading country
    code "1" is reduced to its 10-digit NANP form. Length is not
    otherwise validated: compare against MIN_PHONE_DIGITS.

    Examples:
        "+1 (919) 555-0100" -> "9195550100"
        "19195550100"       -> "9195550100"
    """
    digits = _NON_DIGIT_RE.sub("", raw or "")
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def is_valid_phone(digits: str) -> bool:
    return len(digits) >= MIN_PHONE_DIGITS


class RegionResolver:
    """
    Maps a region string (code or full name) to a calling timezone.

    Tables are plain dicts so tests or other locales can pass their own.
    """

    def __init__(
        self,
        timezone_map: Optional[Dict[str, DialerTimezone]] = None,
        name_map: Optional[Dict[str, str]] = None
    ):
        self.timezone_map = REGION_TIMEZONE_MAP if timezone_map is None else timezone_map
        self.name_map = REGION_NAME_MAP if name_map is None else name_map

    def resolve(self, region: Optional[str]) -> Optional[DialerTimezone]:
        """Timezone bucket for `region`, or None when unresolvable."""
        if not region:
            return None

        key = " ".join(region.split()).upper()
        if not key:
            return None

        if len(key) == 2:
            return self.timezone_map.get(key)

        code = self.name_map.get(key)
        if code:
            return self.timezone_map.get(code)
        return None


_default_resolver = RegionResolver()


def resolve_timezone(region: Optional[str]) -> Optional[DialerTimezone]:
    """Timezone bucket for a region using the built-in US table."""
    return _default_resolver.resolve(region)
