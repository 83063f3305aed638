# /putaway_analyzer/locations.py
"""
Location code parsing.

Grammars are tried in a fixed order and the first match wins. The pickup zone
pattern also accepts some malformed rack codes, so the order must not change.
"""

import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import WAREHOUSE_MAPPING
from .models import Coordinate, LocationKind

PICKUP_ZONE_RE = re.compile(r'^[A-Z]+\d*$')
S_AISLE_RE = re.compile(r'^S(\d+)-(\d+)-([A-Z])(\d+)$')
PUTAWAY_RE = re.compile(r'^(\d+)-(\d+)-([A-Z])(\d+)$')
SPECIAL_RE = re.compile(r'^[A-Z]{4}$')


class LocationParser:
    """Decodes location strings into Coordinates using the warehouse mapping."""

    def __init__(self, mapping: Optional[Dict[str, Any]] = None):
        self.mapping = mapping or WAREHOUSE_MAPPING
        self.zone_aisles = self._build_zone_lookup(self.mapping.get('pickup_zones', {}))
        self.extension_aisles = set(self.mapping.get('extension_aisles', []))
        self.matchers: List[Tuple[str, Callable[[str], Optional[Coordinate]]]] = [
            ('pickup_zone', self._match_pickup_zone),
            ('s_aisle', self._match_s_aisle),
            ('putaway', self._match_putaway),
            ('special', self._match_special),
        ]
        self._cache: Dict[str, Optional[Coordinate]] = {}

    @staticmethod
    def _build_zone_lookup(pickup_zones: Dict[str, Any]) -> Dict[str, int]:
        """Flattens combined zones (e.g. IBPS1_IBVC) into one entry per member zone."""
        lookup = {}
        for zone_name, conf in pickup_zones.items():
            for member in conf.get('zones', [zone_name]):
                lookup[member] = conf['paired_aisle']
        return lookup

    def parse(self, location: Optional[str]) -> Optional[Coordinate]:
        """Returns the Coordinate for a location string, or None when no grammar applies."""
        if not location or not isinstance(location, str):
            return None
        location = location.strip().upper()
        if location not in self._cache:
            self._cache[location] = self._parse(location)
        return self._cache[location]

    def _parse(self, location: str) -> Optional[Coordinate]:
        for _, matcher in self.matchers:
            coordinate = matcher(location)
            if coordinate is not None:
                return coordinate
        return None

    def _match_pickup_zone(self, location: str) -> Optional[Coordinate]:
        if not PICKUP_ZONE_RE.match(location):
            return None
        return Coordinate(
            kind=LocationKind.PICKUP_ZONE,
            aisle=self.zone_aisles.get(location, 0),
            zone=location,
        )

    def _match_s_aisle(self, location: str) -> Optional[Coordinate]:
        match = S_AISLE_RE.match(location)
        if not match:
            return None
        s_aisle, slot, level, position = match.groups()
        slot = int(slot)
        return Coordinate(
            kind=LocationKind.S_AISLE,
            aisle=f"S{int(s_aisle):02d}",
            # two physical slots share one bay
            bay=math.ceil(slot / 2),
            level=level,
            position=int(position),
            zone='S-AISLE',
            slot=slot,
        )

    def _match_putaway(self, location: str) -> Optional[Coordinate]:
        match = PUTAWAY_RE.match(location)
        if not match:
            return None
        aisle, bay, level, position = match.groups()
        aisle = int(aisle)
        kind = LocationKind.EXTENSION_AISLE if aisle in self.extension_aisles else LocationKind.PUTAWAY
        return Coordinate(
            kind=kind,
            aisle=aisle,
            bay=int(bay),
            level=level,
            position=int(position),
            zone='PUTAWAY',
        )

    def _match_special(self, location: str) -> Optional[Coordinate]:
        if SPECIAL_RE.match(location) or '.' in location or 'LG' in location:
            return Coordinate(kind=LocationKind.SPECIAL, aisle=0, zone=location)
        return None


_default_parser = None


def parse_location(location: Optional[str], mapping: Optional[Dict[str, Any]] = None) -> Optional[Coordinate]:
    """Module-level shortcut; uses a shared parser for the built-in mapping."""
    global _default_parser
    if mapping is not None:
        return LocationParser(mapping).parse(location)
    if _default_parser is None:
        _default_parser = LocationParser()
    return _default_parser.parse(location)
