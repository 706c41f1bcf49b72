"""Data models for the IAAI listing scraper"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

# One listing row as scraped: field name -> raw string (is360 is a raw DOM flag)
RawRecord = Dict[str, Any]


class DistanceUnit(Enum):
    """Unit handling for the odometer field"""
    KILOMETERS = "km"
    MILES_TO_KM = "mi"

    @classmethod
    def from_value(cls, value: Any) -> "DistanceUnit":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ("mi", "miles", "miles_to_km", "mi_to_km"):
            return cls.MILES_TO_KM
        if text in ("", "km", "kilometers", "kilometres"):
            return cls.KILOMETERS
        raise ValueError(f"Unknown distance unit: {value!r}")


class PageErrorPolicy(Enum):
    """What the orchestrator does after a whole page fails"""
    CONTINUE = "continue"
    ABORT = "abort"

    @classmethod
    def from_value(cls, value: Any) -> "PageErrorPolicy":
        if isinstance(value, cls):
            return value
        return cls(str(value or "continue").strip().lower())


class NavigationOutcome(Enum):
    ADVANCED = "advanced"
    NO_MORE_RESULTS = "no_more_results"
    NAVIGATION_FAILED = "navigation_failed"


@dataclass(frozen=True)
class AdvanceResult:
    """Outcome of one pagination action"""
    outcome: NavigationOutcome
    page: Optional[int] = None
    strategy: Optional[str] = None  # "direct", "batch", "next", "fast_forward"
    reason: Optional[str] = None

    @property
    def advanced(self) -> bool:
        return self.outcome is NavigationOutcome.ADVANCED

    @classmethod
    def moved(cls, page: int, strategy: str) -> "AdvanceResult":
        return cls(NavigationOutcome.ADVANCED, page=page, strategy=strategy)

    @classmethod
    def no_more_results(cls, reason: str = None) -> "AdvanceResult":
        return cls(NavigationOutcome.NO_MORE_RESULTS, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "AdvanceResult":
        return cls(NavigationOutcome.NAVIGATION_FAILED, reason=reason)


@dataclass(frozen=True)
class CheckpointState:
    """Durable progress marker: the page about to be (or just) scraped"""
    last_page_processed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"lastPageProcessed": self.last_page_processed}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckpointState":
        value = int(data.get("lastPageProcessed", 0) or 0)
        return cls(last_page_processed=max(0, value))


@dataclass
class VehicleRecord:
    """Normalized vehicle listing, keyed by stock number"""
    stock: str
    year: Optional[int] = None
    make: str = "Unknown"
    model: str = "Unknown"
    version: Optional[str] = None
    damage_type: str = ""
    mileage: Optional[int] = None  # kilometers
    engine_status: str = "Unknown"
    bid_price: float = 0.0
    buy_now_price: Optional[float] = None
    auction_date: Optional[datetime] = None
    detail_url: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    vin: Optional[str] = None
    origin: Optional[str] = None
    engine_info: Optional[str] = None
    fuel_type: Optional[str] = None
    cylinders: Optional[str] = None
    is360: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict for the dataset sink"""
        data = asdict(self)
        if self.auction_date is not None:
            data["auction_date"] = self.auction_date.isoformat()
        return data

    def to_db_record(self) -> Dict[str, Any]:
        """Column mapping for the vehicles table"""
        return {
            "stock": self.stock,
            "year": self.year,
            "make": self.make,
            "model": self.model,
            "version": self.version,
            "damage_type": self.damage_type,
            "mileage": self.mileage,
            "engine_status": self.engine_status,
            "bid_price": self.bid_price,
            "buy_now_price": self.buy_now_price,
            "auction_date": self.auction_date.isoformat() if self.auction_date else None,
            "detail_url": self.detail_url,
            "image_url": self.image_url,
            "video_url": self.video_url,
            "vin": self.vin,
            "origin": self.origin,
            "engine_info": self.engine_info,
            "fuel_type": self.fuel_type,
            "cylinders": self.cylinders,
            "is_360": self.is360,
        }


@dataclass
class RunStatistics:
    """Counters for one start URL (or the merged process totals)"""
    start_url: Optional[str] = None
    pages_processed: int = 0
    vehicles_found: int = 0
    db_saved: int = 0
    db_created: int = 0
    db_updated: int = 0
    db_errors: int = 0
    rows_skipped: int = 0
    page_errors: int = 0
    total_on_site: Optional[int] = None
    outcome: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    def finish(self, outcome: str = None) -> None:
        if outcome and not self.outcome:
            self.outcome = outcome
        self.end_time = datetime.now()

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    def merge(self, other: "RunStatistics") -> None:
        self.pages_processed += other.pages_processed
        self.vehicles_found += other.vehicles_found
        self.db_saved += other.db_saved
        self.db_created += other.db_created
        self.db_updated += other.db_updated
        self.db_errors += other.db_errors
        self.rows_skipped += other.rows_skipped
        self.page_errors += other.page_errors
        if other.total_on_site is not None:
            self.total_on_site = (self.total_on_site or 0) + other.total_on_site

    def summary(self) -> Dict[str, Any]:
        return {
            "start_url": self.start_url,
            "pages": self.pages_processed,
            "found": self.vehicles_found,
            "saved": self.db_saved,
            "created": self.db_created,
            "updated": self.db_updated,
            "db_errors": self.db_errors,
            "skipped": self.rows_skipped,
            "page_errors": self.page_errors,
            "total_on_site": self.total_on_site if self.total_on_site is not None else "N/A",
            "outcome": self.outcome,
            "duration": f"{round(self.duration_seconds)}s",
        }
