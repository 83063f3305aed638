# /putaway_analyzer/heatmap.py
"""
Activity counts behind the warehouse heat map and the pickup zone table.
"""

import re
from collections import Counter
from typing import Any, Dict, List, Optional

from . import config
from .models import MatchedOperation
from .travel import TravelCalculator

# destinations that are not rack storage
NON_RACK_MARKERS = ('DOCK', 'DOOR', 'SHIP', 'STAGE', 'RETURN', 'PROBLEM', 'HOLD', 'DAMAGE')
NON_RACK_RE = re.compile(r'^(REC\d+|IB|D\d+)')

LEVEL_BANDS = {
    'green': ('A', 'B', 'C'),   # ground
    'yellow': ('D', 'G', 'J'),  # mid
    'red': ('M', 'P', 'S'),     # high
}


def in_zone(location: str, members: List[str]) -> bool:
    """Same containment rule the transaction filter uses for pickup zones."""
    location = (location or '').upper()
    return bool(location) and any(member in location for member in members)


def is_rack_destination(location: str) -> bool:
    location = (location or '').upper()
    if not location:
        return False
    if NON_RACK_RE.match(location) or location in ('RECVASOUT', 'BPFLIP'):
        return False
    return not any(marker in location for marker in NON_RACK_MARKERS)


class HeatmapBuilder:
    def __init__(self, travel: Optional[TravelCalculator] = None):
        self.travel = travel or TravelCalculator()
        self.pickup_zones = self.travel.mapping.get('pickup_zones', {})

    def _zone_members(self, zone_name: str) -> List[str]:
        conf = self.pickup_zones.get(zone_name)
        if conf and conf.get('zones'):
            return conf['zones']
        return [zone_name]

    def select(self, operations: List[MatchedOperation], operator_id: Optional[str] = None,
               long_only: bool = False, pickup_zone: Optional[str] = None,
               level_band: Optional[str] = None) -> List[MatchedOperation]:
        selected = operations
        if operator_id:
            selected = [op for op in selected if op.operator_id == operator_id]
        if long_only:
            selected = [op for op in selected if op.putaway.duration_seconds > config.LONG_OPERATION_SECONDS]
        if pickup_zone:
            members = self._zone_members(pickup_zone)
            selected = [op for op in selected if in_zone(op.pickup.from_location, members)]
        if level_band:
            if level_band not in LEVEL_BANDS:
                raise ValueError(f"Unknown level band '{level_band}'; expected one of {', '.join(LEVEL_BANDS)}")
            levels = LEVEL_BANDS[level_band]
            selected = [op for op in selected
                        if any(f"-{level}" in op.putaway.to_location for level in levels)]
        return selected

    def heatmap_data(self, operations: List[MatchedOperation], **filters: Any) -> Dict[str, Any]:
        """Counts of putaway destinations by aisle, aisle-bay and level."""
        selected = self.select(operations, **filters)
        aisles, bays, levels = Counter(), Counter(), Counter()

        for op in selected:
            if not is_rack_destination(op.putaway.to_location):
                continue
            coord = self.travel.parser.parse(op.putaway.to_location)
            if coord is None or not coord.is_rack:
                continue
            aisles[coord.aisle] += 1
            if coord.bay is not None:
                bays[(coord.aisle, coord.bay)] += 1
            if coord.level:
                levels[coord.level] += 1

        return {
            'aisle_activity': dict(aisles),
            'bay_activity': dict(bays),
            'height_activity': dict(levels),
            'total_transactions': len(selected),
        }

    @staticmethod
    def hottest_aisle(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        aisles = data.get('aisle_activity') or {}
        if not aisles:
            return None
        aisle, count = max(aisles.items(), key=lambda kv: kv[1])
        total = data.get('total_transactions') or 0
        return {'aisle': aisle, 'count': count, 'percent': count / total * 100 if total else 0.0}

    @staticmethod
    def beyond_breezeway(data: Dict[str, Any], breezeway_bay: int = config.BREEZEWAY_BAY) -> Dict[str, float]:
        count = sum(c for (_, bay), c in (data.get('bay_activity') or {}).items() if bay > breezeway_bay)
        total = data.get('total_transactions') or 0
        return {'count': count, 'percent': count / total * 100 if total else 0.0}

    @staticmethod
    def pickup_zone_counts(operations: List[MatchedOperation]) -> Dict[str, int]:
        return dict(Counter(op.pickup.from_location for op in operations if op.pickup.from_location))

    def pickup_zone_travel_times(self, operations: List[MatchedOperation]) -> List[Dict[str, Any]]:
        """Average estimated travel minutes per configured pickup zone, ordered by paired aisle."""
        timed = []
        for op in operations:
            minutes = self.travel.operation_metrics(op).estimated_travel_time_minutes
            if op.pickup.from_location and minutes > 0:
                timed.append((op.pickup.from_location, minutes))

        all_minutes = [m for _, m in timed]
        overall = sum(all_minutes) / len(all_minutes) if all_minutes else 0.0

        table = []
        ordered = sorted(self.pickup_zones.items(), key=lambda kv: kv[1]['paired_aisle'])
        for zone_name, conf in ordered:
            members = self._zone_members(zone_name)
            minutes = [m for location, m in timed if in_zone(location, members)]
            avg = sum(minutes) / len(minutes) if minutes else None
            table.append({
                'zone': zone_name,
                'paired_aisle': conf['paired_aisle'],
                'count': len(minutes),
                'avg_minutes': avg,
                'vs_overall_percent': ((avg - overall) / overall * 100) if avg is not None and overall > 0 else None,
            })
        return table
