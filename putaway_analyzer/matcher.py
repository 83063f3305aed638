# /putaway_analyzer/matcher.py
"""
Transaction filtering and 211/212 pair matching.
"""

from collections import Counter, defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

from .config import FILTER_RULES
from .models import FilterResult, MatchedOperation, PairingResult, TransactionRow, UnmatchedRow

NO_KEY = 'no key'
NO_MATCH = 'no match'


class TransactionFilter:
    """Keeps only reach-truck pickup and putaway rows."""

    def __init__(self, rules: Optional[Dict[str, Any]] = None):
        self.rules = rules or FILTER_RULES
        self.pickup_type = self.rules['pickup_type']
        self.putaway_type = self.rules['putaway_type']

    def rejection_reason(self, row: TransactionRow) -> Optional[str]:
        """Why a row is excluded, or None when it is kept."""
        if row.transaction_type not in (self.pickup_type, self.putaway_type):
            return 'invalid type'

        from_loc, to_loc = row.from_location.upper(), row.to_location.upper()
        for marker in self.rules['location_blacklist']:
            if marker in from_loc or marker in to_loc:
                return 'blacklisted location'

        if row.transaction_type == self.pickup_type:
            if not any(zone in from_loc for zone in self.rules['valid_pickup_zones']):
                return 'invalid pickup zone'
        elif not from_loc.startswith(self.rules['putaway_from_prefix']):
            # troubleshooting and one-off moves
            return 'not from RPUT'
        return None

    def apply(self, rows: List[TransactionRow]) -> FilterResult:
        kept, dropped = [], Counter()
        for row in rows:
            reason = self.rejection_reason(row)
            if reason is None:
                kept.append(row)
            else:
                dropped[reason] += 1

        print(f"   ✅ Filtered to {len(kept)} valid transactions (from {len(rows)} total)")
        for reason, count in sorted(dropped.items()):
            print(f"     - {reason}: {count} rows dropped")
        return FilterResult(kept=kept, dropped=dict(dropped))


class PairMatcher:
    """
    Pairs each putaway (212) with the pickup (211) carrying the same pallet key.

    Pickups are hash-indexed by key, in file order. A pickup is used by at most
    one putaway: when several pickups share a key they are handed out first
    encountered first, and a putaway with no pickup left is unmatched. How many
    keys collided is reported so the data can be reviewed.
    """

    def __init__(self, rules: Optional[Dict[str, Any]] = None):
        self.rules = rules or FILTER_RULES
        self.pickup_type = self.rules['pickup_type']
        self.putaway_type = self.rules['putaway_type']

    @staticmethod
    def _index_pickups(pickups: List[TransactionRow]) -> Dict[str, Deque[TransactionRow]]:
        index = defaultdict(deque)
        for row in pickups:
            if row.pallet_key:
                index[row.pallet_key].append(row)
        return index

    def match(self, rows: List[TransactionRow]) -> PairingResult:
        pickups = [r for r in rows if r.transaction_type == self.pickup_type]
        putaways = [r for r in rows if r.transaction_type == self.putaway_type]

        pickup_keys = Counter(r.pallet_key for r in pickups if r.pallet_key)
        putaway_keys = Counter(r.pallet_key for r in putaways if r.pallet_key)
        duplicate_keys = sum(1 for count in pickup_keys.values() if count > 1)
        duplicate_putaway_keys = sum(1 for count in putaway_keys.values() if count > 1)
        index = self._index_pickups(pickups)

        operations, unmatched = [], []
        for putaway in putaways:
            key = putaway.pallet_key
            if not key:
                unmatched.append(UnmatchedRow(row=putaway, reason=NO_KEY))
                continue

            candidates = index.get(key)
            if not candidates:
                unmatched.append(UnmatchedRow(row=putaway, reason=NO_MATCH))
                continue
            pickup = candidates.popleft()

            operations.append(MatchedOperation(
                pickup=pickup,
                putaway=putaway,
                pair_key=key,
                total_time_seconds=pickup.duration_seconds + putaway.duration_seconds,
            ))

        print(f"   ✅ Matched {len(operations)} pickup/putaway pairs "
              f"({len(unmatched)} putaways unmatched, {len(pickups)} pickups available)")
        if duplicate_keys:
            print(f"     - ⚠️ {duplicate_keys} pallet keys appear on more than one pickup; paired in file order")
        if duplicate_putaway_keys:
            print(f"     - ⚠️ {duplicate_putaway_keys} pallet keys appear on more than one putaway")
        return PairingResult(operations=operations, unmatched=unmatched,
                             duplicate_pickup_keys=duplicate_keys,
                             duplicate_putaway_keys=duplicate_putaway_keys)


def match_pairs(rows: List[TransactionRow], rules: Optional[Dict[str, Any]] = None) -> List[MatchedOperation]:
    return PairMatcher(rules).match(rows).operations
