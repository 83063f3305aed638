# /putaway_analyzer/labor.py
"""
Labor-Hours Reconciliation Module

Parses the tab-delimited CLMS labor report a supervisor pastes in and merges
actual hours into the operator records. Operator ids are short login codes and
the report lists full names, so matching is heuristic.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .models import LaborRecord, OperatorRecord


class LaborParseError(ValueError):
    pass


@dataclass
class ReconcileResult:
    updated_count: int
    unmatched_operator_ids: List[str]
    ambiguous: Dict[str, List[str]] = field(default_factory=dict)


def _number(text: str) -> float:
    """Cell value as a float; blanks, text and infinities come back as nan."""
    value = pd.to_numeric(str(text).replace(',', '').strip(), errors='coerce')
    if pd.isna(value) or not np.isfinite(value):
        return float('nan')
    return float(value)


def parse_labor_table(pasted_text: str, strict: bool = False) -> Dict[str, LaborRecord]:
    """
    Reads the employee section of a pasted labor report.

    Expected columns: Employee, Supervisor, Total Hours, Total Units, UPH,
    Total Transactions, TPH. Rows before the header are ignored and reading stops
    at the totals line or the page footer.
    """
    labor_data: Dict[str, LaborRecord] = {}
    header_seen = False

    for raw_line in (pasted_text or '').splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if 'Employee' in line and 'Total Hours' in line and 'Total Units' in line:
            header_seen = True
            continue
        if not header_seen:
            continue

        if line.lower().startswith('totals'):
            break
        if 'Showing' in line or 'Report an Issue' in line:
            break

        parts = [p.strip() for p in line.split('\t')]
        if len(parts) < 7:
            continue

        name = parts[0]
        hours = _number(parts[2])
        if not name or name == 'Employee' or pd.isna(hours):
            continue

        units, uph, transactions, tph = (_number(p) for p in parts[3:7])
        labor_data[name] = LaborRecord(
            employee_name=name,
            supervisor=parts[1],
            hours=hours,
            units=0 if pd.isna(units) else int(units),
            uph=0.0 if pd.isna(uph) else uph,
            transactions=0 if pd.isna(transactions) else int(transactions),
            tph=0.0 if pd.isna(tph) else tph,
        )

    if strict and not labor_data:
        raise LaborParseError("No employee rows found in labor report. Check the pasted format.")
    return labor_data


def _name_parts(full_name: str) -> Tuple[str, str, str]:
    parts = full_name.lower().split()
    middle = parts[1] if len(parts) > 2 else ''
    return parts[0], middle, parts[-1]


def name_variants(full_name: str) -> List[str]:
    """Common login abbreviations derived from a full name."""
    parts = full_name.lower().split()
    if len(parts) < 2:
        return []
    first, middle, last = _name_parts(full_name)
    variants = [
        first[0] + last,
        first + last[0],
        first[0] + middle[:1] + last,
        first[0] + last + '2',
        first[:3] + last[:3],
    ]
    return [v for v in variants if v]


def _initials_match(operator_id: str, full_name: str) -> bool:
    parts = full_name.lower().split()
    if len(parts) < 2:
        return False
    first, _, last = _name_parts(full_name)
    tm = operator_id.lower()
    return (
        first[0] + last in tm
        or first + last[0] in tm
        or (first.startswith(tm[:1]) and tm[1:] != '' and tm[1:] in last)
        or first in tm
        or last in tm
    )


def find_labor_candidates(operator_id: str, labor_data: Dict[str, LaborRecord]) -> List[str]:
    """Names that may belong to operator_id, in the order the strategies find them."""
    if operator_id in labor_data:
        return [operator_id]

    candidates = [name for name in labor_data if _initials_match(operator_id, name)]
    if candidates:
        return candidates

    tm = operator_id.lower()
    return [name for name in labor_data
            if any(v in tm or tm in v for v in name_variants(name))]


class LaborHoursReconciler:
    """Applies labor report hours to operator records."""

    def __init__(self, labor_data: Optional[Dict[str, LaborRecord]] = None):
        self.labor_data = labor_data or {}

    @classmethod
    def from_text(cls, pasted_text: str) -> 'LaborHoursReconciler':
        try:
            return cls(parse_labor_table(pasted_text, strict=True))
        except LaborParseError as e:
            print(f"   - ⚠️ WARNING: {e}")
            return cls({})

    def match(self, operator_id: str) -> Tuple[Optional[LaborRecord], List[str]]:
        candidates = find_labor_candidates(operator_id, self.labor_data)
        if not candidates:
            return None, []
        return self.labor_data[candidates[0]], candidates

    def reconcile(self, records: Dict[str, OperatorRecord]) -> ReconcileResult:
        if not self.labor_data:
            print("   - ⚠️ No labor data to integrate; estimated rates stay in use.")
            return ReconcileResult(updated_count=0, unmatched_operator_ids=list(records))

        updated, unmatched, ambiguous = 0, [], {}
        for operator_id, record in records.items():
            labor, candidates = self.match(operator_id)
            if labor is None:
                unmatched.append(operator_id)
                continue
            if len(candidates) > 1:
                ambiguous[operator_id] = candidates

            apply_labor(record, labor)
            updated += 1

        print(f"   ✅ Labor hours integrated for {updated} of {len(records)} operators")
        if unmatched:
            print(f"     - ⚠️ No labor data for: {', '.join(unmatched)}")
        for operator_id, names in ambiguous.items():
            print(f"     - ⚠️ Ambiguous match for {operator_id}: {', '.join(names)} (using {names[0]})")
        return ReconcileResult(updated_count=updated, unmatched_operator_ids=unmatched, ambiguous=ambiguous)


def apply_labor(record: OperatorRecord, labor: LaborRecord) -> None:
    """Actual hours replace the estimate; the CLMS TPH becomes the official rate."""
    record.labor_hours = labor.hours
    record.labor_throughput = record.total_ops / labor.hours if labor.hours > 0 else 0.0
    record.labor_tph = labor.tph
    record.labor_uph = labor.uph
    record.labor_transactions = labor.transactions
    record.labor_upt = labor.upt
    record.supervisor = labor.supervisor
    record.labor_name = labor.employee_name


def reconcile(records: Dict[str, OperatorRecord], pasted_text: str) -> ReconcileResult:
    return LaborHoursReconciler.from_text(pasted_text).reconcile(records)
