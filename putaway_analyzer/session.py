# /putaway_analyzer/session.py
"""
Analysis session: owns everything derived from one uploaded export.

Stages run in order (normalize -> filter -> pair -> aggregate) and each one
fully consumes its input before the next starts. A fresh session, or clear(),
gives a clean slate for the next file.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from . import config
from .calculator import OperatorAggregator
from .heatmap import HeatmapBuilder
from .labor import LaborHoursReconciler, ReconcileResult
from .locations import LocationParser
from .matcher import PairMatcher, TransactionFilter
from .models import (FilterResult, LaborRecord, LongOperation, MatchedOperation, OperatorRecord,
                     PairingResult, StuFlag, TransactionRow)
from .normalizer import TransactionNormalizer
from .travel import TravelCalculator

Records = Union[pd.DataFrame, Iterable[Dict[str, Any]]]


class AnalysisSession:
    def __init__(self, mapping: Optional[Dict[str, Any]] = None,
                 filter_rules: Optional[Dict[str, Any]] = None,
                 ontology_map: Optional[Dict[str, Any]] = None):
        self.mapping = mapping or config.load_warehouse_mapping()
        self.normalizer = TransactionNormalizer(ontology_map or config.ONTOLOGY_MAP)
        self.filter = TransactionFilter(filter_rules)
        self.matcher = PairMatcher(filter_rules)
        self.travel = TravelCalculator(self.mapping, parser=LocationParser(self.mapping))
        self.aggregator = OperatorAggregator(self.travel)
        self.heatmap = HeatmapBuilder(self.travel)
        self.clear()

    def clear(self) -> None:
        """Drops all derived state."""
        self.rows: List[TransactionRow] = []
        self.filter_result: Optional[FilterResult] = None
        self.pairing: Optional[PairingResult] = None
        self.operations: List[MatchedOperation] = []
        self.records: Dict[str, OperatorRecord] = {}
        self.long_operations: List[LongOperation] = []
        self.pure_long_operations: List[LongOperation] = []
        self.labor_data: Dict[str, LaborRecord] = {}
        self.labor_result: Optional[ReconcileResult] = None

    @property
    def has_transaction_data(self) -> bool:
        return bool(self.operations)

    @property
    def has_labor_data(self) -> bool:
        return bool(self.labor_data)

    def load_rows(self, records: Records, source_name: str = 'export') -> List[TransactionRow]:
        self.rows = self.normalizer.normalize(records, source_name)
        return self.rows

    def run(self, records: Records, source_name: str = 'export') -> Dict[str, OperatorRecord]:
        """Full pipeline over one export; replaces anything from a previous run."""
        self.clear()
        print(f"🚀 Processing {source_name}...")
        self.load_rows(records, source_name)

        self.filter_result = self.filter.apply(self.rows)
        if not self.filter_result.kept:
            print("   - ❌ No valid transactions found after filtering.")
            return self.records

        self.pairing = self.matcher.match(self.filter_result.kept)
        self.operations = self.pairing.operations

        self.records = self.aggregator.aggregate(self.operations)
        self.long_operations = list(self.aggregator.long_operations)
        self.pure_long_operations = list(self.aggregator.pure_long_operations)
        return self.records

    def integrate_labor(self, pasted_text: str) -> ReconcileResult:
        print("👷 Integrating labor hours...")
        reconciler = LaborHoursReconciler.from_text(pasted_text)
        self.labor_data = reconciler.labor_data
        self.labor_result = reconciler.reconcile(self.records)
        self.flag_outliers()
        return self.labor_result

    def flag_outliers(self) -> Dict[str, List[StuFlag]]:
        return self.aggregator.flag_outliers(self.records)

    def stu_recap(self, operator_id: str) -> str:
        return self.aggregator.stu_recap(self.records[operator_id], self.department_averages())

    def department_averages(self) -> Dict[str, float]:
        return self.aggregator.department_averages(self.records)

    def date_range(self) -> Optional[Dict[str, pd.Timestamp]]:
        """First and last putaway start time among matched operations."""
        stamps = sorted(op.putaway.started_at for op in self.operations if op.putaway.started_at is not None)
        if not stamps:
            return None
        return {'start': stamps[0], 'end': stamps[-1]}

    def summary(self) -> Dict[str, Any]:
        """Overall metrics bundle for the dashboard header."""
        labor_records = [r for r in self.records.values() if r.labor_hours]
        labor_ops = sum(r.total_ops for r in labor_records)
        labor_hours = sum(r.labor_hours for r in labor_records)
        rates = [r.effective_rate for r in self.records.values()]

        return {
            'total_operators': len(self.records),
            'total_operations': len(self.operations),
            'total_long_operations': len(self.long_operations),
            'total_pure_long_operations': len(self.pure_long_operations),
            'unmatched_putaways': len(self.pairing.unmatched) if self.pairing else 0,
            'filtered_out': dict(self.filter_result.dropped) if self.filter_result else {},
            'overall_rate': labor_ops / labor_hours if labor_hours > 0 else (sum(rates) / len(rates) if rates else 0.0),
            'date_range': self.date_range(),
            'department_averages': self.department_averages(),
            'transaction_averages': self.aggregator.transaction_averages(self.operations),
        }

    def report_frames(self) -> Dict[str, pd.DataFrame]:
        """DataFrames handed to the Excel reporter."""
        return {
            'Operators': self.aggregator.operators_frame(self.records),
            'Operations': self.aggregator.operations_frame(self.operations),
            'Long_Operations': self.aggregator.long_operations_frame(self.long_operations),
            'Pickup_Zones': pd.DataFrame(self.heatmap.pickup_zone_travel_times(self.operations)),
        }
