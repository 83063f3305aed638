# /putaway_analyzer/travel.py
"""
Travel Metrics Module

Turns a pair of parsed locations into aisle, bay-depth and rack-height
components and converts them into an estimated reach truck travel time.
All geometry comes from the injected warehouse mapping.
"""

from typing import Any, Dict, List, Optional, Union

import numpy as np

from .config import TRAVEL_CONSTANTS, WAREHOUSE_MAPPING
from .locations import LocationParser
from .models import Coordinate, LocationKind, MatchedOperation, TravelMetrics, TravelTimeEstimate


def _safe(value: Any) -> float:
    """Anything missing or non-finite counts as 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if np.isfinite(value) else 0.0


class TravelCalculator:
    """
    Computes per-operation travel metrics.

    One-way aisle mode: aisles come in [entry, partner] pairs and only the entry
    aisle is reachable from the front. Reaching a partner aisle means driving the
    entry aisle down to the nearest breezeway at or beyond the target bay,
    crossing over, and coming back up to the target bay.
    """

    def __init__(self, mapping: Optional[Dict[str, Any]] = None, constants: Optional[Dict[str, float]] = None,
                 parser: Optional[LocationParser] = None):
        self.mapping = mapping or WAREHOUSE_MAPPING
        self.constants = constants or TRAVEL_CONSTANTS
        self.parser = parser or LocationParser(self.mapping)
        self.entry_bay = self.mapping.get('entry_bay', 5)
        self.rack_levels = self.mapping.get('rack_levels', {})
        self.special_pairs = self.mapping.get('special_aisle_pairs', {})

        one_way = self.mapping.get('one_way_system', {})
        self.one_way_enabled = bool(one_way.get('enabled', False))
        self.breezeways = sorted(one_way.get('breezeways', []))
        self.crossover_penalty = one_way.get('crossover_penalty', 1)
        # partner aisle -> entry aisle
        self.partner_to_entry = {pair[1]: pair[0] for pair in one_way.get('aisle_pairs', [])}

    # --- aisles -----------------------------------------------------------

    def effective_aisle(self, coordinate: Optional[Coordinate]) -> Optional[int]:
        """Numbered aisle used for distance; S-aisles and extension aisles use their paired aisle."""
        if coordinate is None:
            return None
        if coordinate.kind in (LocationKind.S_AISLE, LocationKind.EXTENSION_AISLE) or isinstance(coordinate.aisle, str):
            return self.special_pairs.get(coordinate.aisle)
        return coordinate.aisle

    def end_bay(self, aisle: Union[int, str]) -> Optional[int]:
        for conf in self.mapping.get('aisle_ranges', {}).values():
            if aisle in conf['aisles']:
                return conf['end_bay']
        return None

    # --- components -------------------------------------------------------

    def _one_way_applies(self, to_coord: Coordinate) -> bool:
        return (self.one_way_enabled
                and to_coord.kind == LocationKind.PUTAWAY
                and to_coord.bay is not None)

    def _detour_breezeway(self, aisle: int, target_bay: int) -> int:
        for breezeway in self.breezeways:
            if breezeway >= target_bay:
                return breezeway
        # no breezeway past the target: turn around at the end of the aisle
        end = self.end_bay(aisle)
        return end if end is not None and end >= target_bay else target_bay

    def travel_metrics(self, from_coord: Optional[Coordinate], to_coord: Optional[Coordinate]) -> TravelMetrics:
        """Metrics for travelling from one coordinate to another; missing parts count as 0."""
        if to_coord is None or to_coord.kind == LocationKind.SPECIAL:
            return TravelMetrics()

        from_aisle = self.effective_aisle(from_coord)
        to_aisle = self.effective_aisle(to_coord)
        path_aisle = to_aisle

        bay_depth = 0.0
        if to_coord.bay is not None:
            target_bay = to_coord.bay
            bay_depth = abs(target_bay - self.entry_bay)
            if self._one_way_applies(to_coord) and to_coord.aisle in self.partner_to_entry:
                breezeway = self._detour_breezeway(to_coord.aisle, target_bay)
                bay_depth = ((breezeway - self.entry_bay)
                             + (breezeway - target_bay)
                             + self.crossover_penalty)
                path_aisle = self.partner_to_entry[to_coord.aisle]

        aisles = 0.0
        if from_aisle is not None and path_aisle is not None:
            aisles = abs(path_aisle - from_aisle)

        rack_height = self.height_for_level(to_coord.level)

        aisles, bay_depth, rack_height = _safe(aisles), _safe(bay_depth), _safe(rack_height)
        estimate = self.estimate_travel_time(aisles, bay_depth, rack_height)
        multipliers = self.mapping.get('distance_multipliers', {})
        weighted = (aisles * multipliers.get('aisle', 1.0)
                    + bay_depth * multipliers.get('bay', 1.0)
                    + rack_height * multipliers.get('height', 1.0))

        return TravelMetrics(
            aisles_traversed=aisles,
            bay_depth=bay_depth,
            rack_height=rack_height,
            estimated_travel_time_minutes=estimate.total_minutes,
            weighted_distance=_safe(weighted),
        )

    def location_metrics(self, from_location: Optional[str], to_location: Optional[str]) -> TravelMetrics:
        return self.travel_metrics(self.parser.parse(from_location), self.parser.parse(to_location))

    def operation_metrics(self, operation: MatchedOperation) -> TravelMetrics:
        """Travel from the pickup's source zone to the putaway destination."""
        return self.location_metrics(operation.pickup.from_location, operation.putaway.to_location)

    # --- time -------------------------------------------------------------

    def estimate_travel_time(self, aisles: float, bays: float, height: float) -> TravelTimeEstimate:
        """Horizontal then vertical travel, added together (the truck does not lift while driving)."""
        c = self.constants
        aisles, bays, height = _safe(aisles), _safe(bays), _safe(height)

        horizontal_ft = aisles * c['aisle_distance_ft'] + bays * c['bay_distance_ft']
        vertical_ft = height * c['rack_level_height_ft']

        horizontal_s = horizontal_ft / c['horizontal_speed_fps']
        vertical_s = vertical_ft / c['lift_speed_fps']

        return TravelTimeEstimate(
            horizontal_minutes=horizontal_s / 60,
            vertical_minutes=vertical_s / 60,
            total_minutes=(horizontal_s + vertical_s) / 60,
            horizontal_distance_ft=horizontal_ft,
            vertical_distance_ft=vertical_ft,
        )

    # --- rack levels ------------------------------------------------------

    def height_for_level(self, level: Optional[str]) -> int:
        return height_for_level(level, self.rack_levels)

    def level_for_height(self, height: int) -> str:
        return level_for_height(height, self.rack_levels)


def height_for_level(level: Optional[str], rack_levels: Optional[Dict[str, int]] = None) -> int:
    """Numeric rack height for a level letter; unknown letters are height 0."""
    rack_levels = WAREHOUSE_MAPPING['rack_levels'] if rack_levels is None else rack_levels
    if not level:
        return 0
    return rack_levels.get(str(level).upper(), 0)


def levels_for_height(height: int, rack_levels: Optional[Dict[str, int]] = None) -> List[str]:
    rack_levels = WAREHOUSE_MAPPING['rack_levels'] if rack_levels is None else rack_levels
    return [letter for letter, value in rack_levels.items() if value == height]


def level_for_height(height: int, rack_levels: Optional[Dict[str, int]] = None) -> str:
    """Reverse lookup of height_for_level: the first letter at that height, or ''."""
    letters = levels_for_height(height, rack_levels)
    return letters[0] if letters else ''


def level_range_label(height: int, rack_levels: Optional[Dict[str, int]] = None) -> str:
    """
    Display label for a height. A height shared by several letters
    (ground levels A, B, C) comes back as a range such as 'A-C'.
    """
    letters = levels_for_height(height, rack_levels)
    if len(letters) > 1:
        return f"{letters[0]}-{letters[-1]}"
    return letters[0] if letters else ''
