# standardizer.py

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from iaai_scraper.core.models import DistanceUnit, RawRecord, VehicleRecord

logger = logging.getLogger(__name__)

MILES_TO_KM = 1.60934
UNKNOWN = "Unknown"
DAMAGE_SEPARATOR = " / "

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

# Offsets from UTC in hours
TIMEZONE_OFFSETS = {
    "EDT": -4, "EST": -5,
    "CDT": -5, "CST": -6,
    "MDT": -6, "MST": -7,
    "PDT": -7, "PST": -8,
    "AKDT": -8, "AKST": -9,
    "HST": -10,
    "UTC": 0, "GMT": 0,
}

DIRECT_DATE_FORMATS = (
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%a %b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

COMPOSITE_DATE_PATTERN = re.compile(
    r"(?P<month>[A-Za-z]{3,9})\.?\s+(?P<day>\d{1,2}),?\s+"
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<meridiem>[ap]\.?m\.?)\s*(?P<tz>[A-Za-z]{2,4})\b",
    re.IGNORECASE,
)

SLASH_DATE_PATTERN = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")

# Damage and loss-type labels used on the Polish-language storefront
DAMAGE_TRANSLATIONS = {
    # Primary damage
    "All Over": "Całość",
    "Electrical": "Elektryka",
    "Engine Burn": "Spalony Silnik",
    "Engine Damage": "Uszkodzenie Silnika",
    "Exterior Burn": "Spalony Zewnętrznie",
    "Flood": "Powódź",
    "Front": "Przód",
    "Front & Rear": "Przód i Tył",
    "Front End": "Przednia Część",
    "Hail": "Grad",
    "Interior Burn": "Spalony Wewnętrznie",
    "Left Front": "Lewy Przód",
    "Left Rear": "Lewy Tył",
    "Left Side": "Lewy Bok",
    "Mechanical": "Mechaniczne",
    "Rear": "Tył",
    "Right Front": "Prawy Przód",
    "Right Rear": "Prawy Tył",
    "Right Side": "Prawy Bok",
    "Roll Over": "Dachowanie",
    "Rollover": "Dachowanie",
    "Suspension": "Zawieszenie",
    "Theft": "Kradzież",
    "Total Burn": "Całkowicie Spalony",
    "Vandalized": "Wandalizm",
    "Undercarriage": "Podwozie",
    "Unknown": "Nieznane",
    "Strip": "Ogołocony",
    "None": "Brak",
    # Loss type
    "Collision": "Kolizja",
    "Wreck": "Wrak / Zniszczenie",
    "Water": "Wodne",
    "Fire": "Pożar",
    "Salvage": "Wrak / Do kasacja",
    "Biohazard": "Zagrożenie Biologiczne",
}


class DataStandardizer:
    """Standardizes raw listing rows into VehicleRecord objects.

    Every parser is total: malformed input resolves to None or the field's
    documented default, never an exception.
    """

    def __init__(self, distance_unit: DistanceUnit = DistanceUnit.KILOMETERS,
                 translate_damage: bool = False,
                 media_base_url: Optional[str] = None):
        self.distance_unit = DistanceUnit.from_value(distance_unit)
        self.translate_damage = translate_damage
        self.media_base_url = media_base_url

    @staticmethod
    def standardize_text(text: Any) -> Optional[str]:
        """Collapse whitespace; empty text becomes None"""
        if text is None:
            return None
        cleaned = re.sub(r'\s+', ' ', str(text)).strip()
        return cleaned or None

    @staticmethod
    def with_fallback(text: Any, fallback: str = UNKNOWN) -> str:
        """Substitute the literal fallback for absent make/model/engine status"""
        return DataStandardizer.standardize_text(text) or fallback

    @staticmethod
    def parse_numeric(value_str: Any) -> Optional[int]:
        """Parse integer values from strings, dropping any fractional part"""
        if value_str is None:
            return None
        try:
            # Keep digits and separators, drop thousands separators
            cleaned = ''.join(c for c in str(value_str) if c.isdigit() or c in ['.', ','])
            cleaned = cleaned.replace(',', '')

            if '.' in cleaned:
                cleaned = cleaned.split('.')[0]

            return int(cleaned) if cleaned else None
        except (TypeError, ValueError):
            return None

    @staticmethod
    def parse_price(price_str: Any, default: Optional[float] = None) -> Optional[float]:
        """Parse a currency string ("$12,500.00 USD") to float"""
        if price_str is None:
            return default

        cleaned = str(price_str).replace(',', '')
        match = re.search(r'\d+(?:\.\d+)?', cleaned)
        if not match:
            return default
        try:
            value = float(match.group())
        except ValueError:
            return default
        return value if value >= 0 else default

    @staticmethod
    def parse_bid_price(bid_str: Any, acv_str: Any = None) -> float:
        """Current bid; the "Pre-Bid" placeholder falls back to the ACV value. Defaults to 0."""
        text = DataStandardizer.standardize_text(bid_str)
        if text and text.lower() == 'pre-bid' and DataStandardizer.standardize_text(acv_str):
            text = acv_str
        return DataStandardizer.parse_price(text, default=0.0)

    @staticmethod
    def parse_buy_now_price(buy_now_str: Any) -> Optional[float]:
        """Buy-now price or None; absence is distinct from zero"""
        text = DataStandardizer.standardize_text(buy_now_str)
        if not text:
            return None
        text = re.sub(r'(?i)^buy\s*now', '', text)
        return DataStandardizer.parse_price(text, default=None)

    @staticmethod
    def convert_distance(distance_str: Any, unit: DistanceUnit = DistanceUnit.KILOMETERS) -> Optional[int]:
        """Odometer reading in kilometers according to the configured unit mode"""
        value = DataStandardizer.parse_numeric(distance_str)
        if value is None:
            return None
        if unit is DistanceUnit.MILES_TO_KM:
            return int(round(value * MILES_TO_KM))
        return value

    @staticmethod
    def parse_auction_date(date_str: Any, now: Optional[datetime] = None) -> Optional[datetime]:
        """Parse the auction date.

        Accepts a directly parseable timestamp or the listing format
        "Oct 21 10:00am CDT" (the year is not shown on the site, so the
        current calendar year is used). Returns None when nothing matches.
        """
        if not date_str or not isinstance(date_str, str):
            return None
        cleaned = date_str.strip()
        if not cleaned:
            return None

        direct = DataStandardizer._parse_direct_date(cleaned)
        if direct is not None:
            return direct

        composite = DataStandardizer._parse_composite_date(cleaned, now or datetime.now())
        if composite is not None:
            return composite

        match = SLASH_DATE_PATTERN.search(cleaned)
        if match:
            month, day, year = (int(part) for part in match.groups())
            if month > 0 and day > 0 and year > 2000:
                try:
                    return datetime(year, month, day)
                except ValueError:
                    pass

        logger.debug(f"Unparseable auction date: {cleaned!r}")
        return None

    @staticmethod
    def _parse_direct_date(text: str) -> Optional[datetime]:
        iso_text = text[:-1] + '+00:00' if text.endswith('Z') else text
        try:
            return datetime.fromisoformat(iso_text)
        except ValueError:
            pass
        for fmt in DIRECT_DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        return None

    @staticmethod
    def _parse_composite_date(text: str, now: datetime) -> Optional[datetime]:
        for match in COMPOSITE_DATE_PATTERN.finditer(text):
            month = MONTHS.get(match.group('month').lower())
            if month is None:
                continue
            offset = TIMEZONE_OFFSETS.get(match.group('tz').upper())
            if offset is None:
                logger.debug(f"Unknown timezone in auction date: {text!r}")
                return None

            hour = int(match.group('hour'))
            minute = int(match.group('minute'))
            if not 1 <= hour <= 12 or minute > 59:
                return None
            meridiem = match.group('meridiem').lower().replace('.', '')
            if meridiem == 'pm' and hour != 12:
                hour += 12
            elif meridiem == 'am' and hour == 12:
                hour = 0

            try:
                return datetime(now.year, month, int(match.group('day')), hour, minute,
                                tzinfo=timezone(timedelta(hours=offset)))
            except ValueError:
                return None
        return None

    @staticmethod
    def join_damage(primary: Any, secondary: Any) -> str:
        """Join primary damage and loss type without a dangling separator"""
        parts = [DataStandardizer.standardize_text(primary), DataStandardizer.standardize_text(secondary)]
        return DAMAGE_SEPARATOR.join(part for part in parts if part)

    @staticmethod
    def translate_damage_type(damage_type: Optional[str]) -> str:
        """Translate each " / " separated part; unknown labels pass through"""
        if not damage_type:
            return ''
        parts = [part.strip() for part in damage_type.split(DAMAGE_SEPARATOR)]
        return DAMAGE_SEPARATOR.join(DAMAGE_TRANSLATIONS.get(part, part) for part in parts)

    @staticmethod
    def parse_title(title: Any) -> Tuple[Optional[int], Optional[str], Optional[str], Optional[str]]:
        """Split "2019 TOYOTA CAMRY SE 2.5L" into year, make, model, version"""
        text = DataStandardizer.standardize_text(title)
        if not text:
            return None, None, None, None
        year_match = re.match(r'^(\d{4})\b', text)
        if not year_match:
            return None, None, None, None

        parts = text[year_match.end():].split()
        make = parts[0] if parts else None
        model = parts[1] if len(parts) > 1 else None
        version = ' '.join(parts[2:]) or None
        return int(year_match.group(1)), make, model, version

    def build_video_url(self, stock: str) -> Optional[str]:
        if not stock or not self.media_base_url:
            return None
        return f"{self.media_base_url.rstrip('/')}/{stock}_VES-100_1"

    def normalize_vehicle(self, raw: RawRecord) -> Optional[VehicleRecord]:
        """Build a VehicleRecord from one raw row; rows without stock yield None"""
        raw = raw or {}
        stock = self.standardize_text(raw.get('stock'))
        if not stock:
            return None

        year, make, model, version = self.parse_title(raw.get('title'))
        damage = self.join_damage(raw.get('primaryDamage'), raw.get('lossType'))
        if self.translate_damage:
            damage = self.translate_damage_type(damage)

        return VehicleRecord(
            stock=stock,
            year=year,
            make=self.with_fallback(make),
            model=self.with_fallback(model),
            version=version,
            damage_type=damage,
            mileage=self.convert_distance(raw.get('odometer'), self.distance_unit),
            engine_status=self.with_fallback(raw.get('engineStatus')),
            bid_price=self.parse_bid_price(raw.get('bidPrice'), raw.get('acv')),
            buy_now_price=self.parse_buy_now_price(raw.get('buyNowPrice')),
            auction_date=self.parse_auction_date(raw.get('auctionDate')),
            detail_url=self.standardize_text(raw.get('detailUrl')),
            image_url=self.standardize_text(raw.get('imageUrl')),
            video_url=self.build_video_url(stock),
            vin=self.standardize_text(raw.get('vin')),
            origin=self.standardize_text(raw.get('origin')),
            engine_info=self.standardize_text(raw.get('engineInfo')),
            fuel_type=self.standardize_text(raw.get('fuelType')),
            cylinders=self.standardize_text(raw.get('cylinders')),
            is360=bool(raw.get('is360')),
        )

    def normalize_many(self, raw_records) -> Tuple[list, int]:
        """Normalize a page of rows; returns (records, skipped_without_stock)"""
        records = []
        skipped = 0
        for raw in raw_records:
            record = self.normalize_vehicle(raw)
            if record is None:
                skipped += 1
                continue
            records.append(record)
        return records, skipped


__all__ = [
    "DataStandardizer",
    "DAMAGE_TRANSLATIONS",
    "MILES_TO_KM",
    "UNKNOWN",
]
