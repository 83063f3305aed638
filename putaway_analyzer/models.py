# /putaway_analyzer/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

import pandas as pd


class LocationKind(Enum):
    PICKUP_ZONE = "pickupZone"
    PUTAWAY = "putawayLocation"
    S_AISLE = "sAisleLocation"
    EXTENSION_AISLE = "extensionAisle"
    SPECIAL = "special"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Coordinate:
    kind: LocationKind
    aisle: Union[int, str]
    bay: Optional[int] = None
    level: Optional[str] = None
    position: Optional[int] = None
    zone: Optional[str] = None
    slot: Optional[int] = None  # raw S-aisle location number (01-44)

    @property
    def is_rack(self) -> bool:
        return self.kind in (LocationKind.PUTAWAY, LocationKind.S_AISLE, LocationKind.EXTENSION_AISLE)


@dataclass(frozen=True)
class TransactionRow:
    transaction_type: int
    from_location: str
    to_location: str
    employee_id: str
    pallet_key: str
    start_date: str = ""
    start_time: str = ""
    started_at: Optional[pd.Timestamp] = None
    duration_seconds: float = 0.0
    item_number: str = ""
    quantity: int = 0


@dataclass(frozen=True)
class MatchedOperation:
    pickup: TransactionRow
    putaway: TransactionRow
    pair_key: str
    total_time_seconds: float
    is_matched: bool = True

    @property
    def operator_id(self) -> str:
        return self.putaway.employee_id


@dataclass(frozen=True)
class UnmatchedRow:
    row: TransactionRow
    reason: str


@dataclass(frozen=True)
class TravelMetrics:
    aisles_traversed: float = 0.0
    bay_depth: float = 0.0
    rack_height: float = 0.0
    estimated_travel_time_minutes: float = 0.0
    weighted_distance: float = 0.0


@dataclass(frozen=True)
class TravelTimeEstimate:
    horizontal_minutes: float
    vertical_minutes: float
    total_minutes: float
    horizontal_distance_ft: float
    vertical_distance_ft: float


@dataclass
class LongOperation:
    operation: MatchedOperation
    operator_id: str
    putaway_minutes: float
    total_minutes: float
    is_pure: bool = False


@dataclass
class StuFlag:
    reason: str
    rank: int
    value: float


@dataclass
class LaborRecord:
    employee_name: str
    supervisor: str
    hours: float
    units: int
    uph: float
    transactions: int
    tph: float

    @property
    def upt(self) -> Optional[float]:
        if self.transactions > 0:
            return self.units / self.transactions
        return None


@dataclass
class OperatorRecord:
    operator_id: str
    total_ops: int = 0
    total_time_seconds: float = 0.0
    total_aisles: float = 0.0
    total_bay_depth: float = 0.0
    total_rack_height: float = 0.0
    long_op_count: int = 0
    pure_long_count: int = 0
    ops: List[MatchedOperation] = field(default_factory=list)

    # finalized
    avg_rate: float = 0.0
    avg_aisles: float = 0.0
    avg_bay_depth: float = 0.0
    avg_rack_height: float = 0.0
    avg_estimated_travel_minutes: float = 0.0
    long_op_percent: float = 0.0

    # labor enrichment
    labor_hours: Optional[float] = None
    labor_throughput: Optional[float] = None
    labor_tph: Optional[float] = None
    labor_uph: Optional[float] = None
    labor_transactions: Optional[int] = None
    labor_upt: Optional[float] = None
    supervisor: Optional[str] = None
    labor_name: Optional[str] = None

    stu_flags: List[StuFlag] = field(default_factory=list)

    @property
    def effective_rate(self) -> float:
        """Rate used for ranking and display: CLMS TPH, then actual, then estimated."""
        if self.labor_hours is not None:
            if self.labor_tph:
                return self.labor_tph
            return self.labor_throughput or 0.0
        return self.avg_rate

    @property
    def stu_reasons(self) -> List[str]:
        return [flag.reason for flag in self.stu_flags]


@dataclass
class FilterResult:
    kept: List[TransactionRow]
    dropped: Dict[str, int]


@dataclass
class PairingResult:
    operations: List[MatchedOperation]
    unmatched: List[UnmatchedRow]
    duplicate_pickup_keys: int = 0
    duplicate_putaway_keys: int = 0
