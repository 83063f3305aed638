# /putaway_analyzer/calculator.py
from collections import OrderedDict
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from . import config
from .models import LongOperation, MatchedOperation, OperatorRecord, StuFlag
from .travel import TravelCalculator, _safe


class OperatorAggregator:
    """
    Folds matched operations into per-operator records and ranks operators
    for STU ("seek to understand") review.
    """
    def __init__(self, travel: Optional[TravelCalculator] = None,
                 long_threshold_seconds: float = config.LONG_OPERATION_SECONDS,
                 putaway_prefix: str = config.FILTER_RULES['putaway_from_prefix']):
        self.travel = travel or TravelCalculator()
        self.long_threshold_seconds = long_threshold_seconds
        self.putaway_prefix = putaway_prefix
        self.long_operations: List[LongOperation] = []
        self.pure_long_operations: List[LongOperation] = []

    def aggregate(self, operations: List[MatchedOperation]) -> Dict[str, OperatorRecord]:
        """Groups operations by putaway operator, then finalizes every record."""
        print("   - Aggregating operations by operator...")
        records: Dict[str, OperatorRecord] = OrderedDict()
        self.long_operations, self.pure_long_operations = [], []
        skipped = 0

        for op in operations:
            # putaway leg carries the variance; the pickup leg is short and steady
            operator_id = (op.putaway.employee_id or '').strip()
            if not operator_id:
                skipped += 1
                continue
            record = records.get(operator_id)
            if record is None:
                record = records[operator_id] = OperatorRecord(operator_id=operator_id)
            self._fold(record, op)

        for record in records.values():
            self.finalize(record)

        if skipped:
            print(f"     - ⚠️ {skipped} operations skipped (blank operator id)")
        print(f"   ✅ Aggregated {len(records)} operators, {len(self.long_operations)} long operations")
        return records

    def _fold(self, record: OperatorRecord, op: MatchedOperation) -> None:
        record.ops.append(op)
        record.total_ops += 1
        record.total_time_seconds += _safe(op.total_time_seconds)

        metrics = self.travel.operation_metrics(op)
        record.total_aisles += _safe(metrics.aisles_traversed)
        record.total_bay_depth += _safe(metrics.bay_depth)
        record.total_rack_height += _safe(metrics.rack_height)

        long_op = self.classify_long(op)
        if long_op is not None:
            record.long_op_count += 1
            self.long_operations.append(long_op)
            if long_op.is_pure:
                record.pure_long_count += 1
                self.pure_long_operations.append(long_op)

    def classify_long(self, op: MatchedOperation) -> Optional[LongOperation]:
        """Long means the putaway leg alone ran past the threshold."""
        putaway_seconds = _safe(op.putaway.duration_seconds)
        if putaway_seconds <= self.long_threshold_seconds:
            return None
        return LongOperation(
            operation=op,
            operator_id=op.operator_id,
            putaway_minutes=putaway_seconds / 60,
            total_minutes=_safe(op.total_time_seconds) / 60,
            is_pure=op.putaway.from_location.upper().startswith(self.putaway_prefix),
        )

    def finalize(self, record: OperatorRecord) -> OperatorRecord:
        count = record.total_ops
        if count <= 0:
            return record

        avg_seconds = record.total_time_seconds / count
        record.avg_rate = 3600 / avg_seconds if avg_seconds > 0 else 0.0
        record.avg_aisles = record.total_aisles / count
        record.avg_bay_depth = record.total_bay_depth / count
        record.avg_rack_height = record.total_rack_height / count
        record.long_op_percent = record.long_op_count / count * 100

        # estimated on the averages, not averaged per operation
        estimate = self.travel.estimate_travel_time(record.avg_aisles, record.avg_bay_depth, record.avg_rack_height)
        record.avg_estimated_travel_minutes = estimate.total_minutes
        return record

    # --- STU --------------------------------------------------------------

    @staticmethod
    def is_stu_eligible(record: OperatorRecord, min_hours: float = config.STU_MIN_LABOR_HOURS) -> bool:
        """Only operators with labor hours of at least min_hours are judged."""
        hours = record.labor_hours
        return hours is not None and hours > 0 and hours >= min_hours

    def flag_outliers(self, records: Dict[str, OperatorRecord],
                      top_long: int = config.STU_TOP_LONG_COUNT,
                      bottom_rate: int = config.STU_BOTTOM_RATE_COUNT,
                      min_hours: float = config.STU_MIN_LABOR_HOURS) -> Dict[str, List[StuFlag]]:
        for record in records.values():
            record.stu_flags = []

        eligible = [r for r in records.values() if self.is_stu_eligible(r, min_hours)]

        long_offenders = sorted((r for r in eligible if r.long_op_count > 0),
                                key=lambda r: r.long_op_count, reverse=True)[:top_long]
        slowest = sorted(eligible, key=lambda r: r.effective_rate)[:bottom_rate]

        for rank, record in enumerate(long_offenders, 1):
            record.stu_flags.append(StuFlag(
                reason=f"Top {rank} Long Transactions ({record.long_op_count})",
                rank=rank,
                value=record.long_op_count,
            ))
        for rank, record in enumerate(slowest, 1):
            record.stu_flags.append(StuFlag(
                reason=f"Bottom {rank} TPH ({record.effective_rate:.1f})",
                rank=rank,
                value=record.effective_rate,
            ))

        flagged = OrderedDict((r.operator_id, r.stu_flags) for r in records.values() if r.stu_flags)
        print(f"   ✅ STU review: {len(flagged)} of {len(eligible)} eligible operators flagged")
        return flagged

    @staticmethod
    def classify_status(record: OperatorRecord) -> str:
        if record.stu_flags:
            return 'problem'
        if record.effective_rate < config.RATE_WARNING or record.long_op_count > 0:
            return 'warning'
        return 'good'

    @staticmethod
    def rate_class(rate: float) -> str:
        if rate < config.RATE_PROBLEM:
            return 'problem'
        if rate < config.RATE_WARNING:
            return 'warning'
        return 'good'

    @staticmethod
    def stu_recap(record: OperatorRecord, averages: Dict[str, float]) -> str:
        """One-paragraph recap for the STU conversation form."""
        reason_text = ' and '.join(record.stu_reasons) or 'manual review'
        tph = record.effective_rate or 0.0
        head = f"TM flagged for STU due to {reason_text}. TM's TPH at time of STU was {tph:.1f}."

        base = (averages.get('avg_aisles'), averages.get('avg_bay_depth'), averages.get('avg_rack_height'))
        if not all(base):
            return f"{head} Travel metrics comparison unavailable."

        def pct(value, avg):
            diff = (value - avg) / avg * 100
            return f"{'+' if diff >= 0 else ''}{diff:.1f}%"

        return (f"{head} TM's travel metrics in comparison to the department avg at time of STU were "
                f"Travel Distance: {pct(record.avg_aisles, base[0])}, "
                f"Travel Depth: {pct(record.avg_bay_depth, base[1])}, "
                f"Rack Height: {pct(record.avg_rack_height, base[2])}.")

    # --- department views ---------------------------------------------------

    @staticmethod
    def department_averages(records: Dict[str, OperatorRecord]) -> Dict[str, float]:
        """Mean of the per-operator averages."""
        keys = ('avg_aisles', 'avg_bay_depth', 'avg_rack_height', 'avg_estimated_travel_minutes')
        if not records:
            return {k: 0.0 for k in keys}
        return {k: float(np.mean([_safe(getattr(r, k)) for r in records.values()])) for k in keys}

    def transaction_averages(self, operations: List[MatchedOperation]) -> Dict[str, float]:
        """Per-operation averages over every matched operation."""
        if not operations:
            return {'avg_aisles': 0.0, 'avg_bay_depth': 0.0, 'avg_rack_height': 0.0,
                    'avg_putaway_minutes': 0.0, 'total_operations': 0}
        metrics = [self.travel.operation_metrics(op) for op in operations]
        return {
            'avg_aisles': float(np.mean([m.aisles_traversed for m in metrics])),
            'avg_bay_depth': float(np.mean([m.bay_depth for m in metrics])),
            'avg_rack_height': float(np.mean([m.rack_height for m in metrics])),
            'avg_putaway_minutes': float(np.mean([_safe(op.putaway.duration_seconds) for op in operations])) / 60,
            'total_operations': len(operations),
        }

    def long_operation_averages(self, long_ops: Optional[List[LongOperation]] = None) -> Dict[str, float]:
        long_ops = self.long_operations if long_ops is None else long_ops
        averages = self.transaction_averages([lt.operation for lt in long_ops])
        averages['avg_putaway_minutes'] = float(np.mean([lt.putaway_minutes for lt in long_ops])) if long_ops else 0.0
        return averages

    def long_operations_by_operator(self, long_ops: Optional[List[LongOperation]] = None) -> Dict[str, Dict]:
        long_ops = self.long_operations if long_ops is None else long_ops
        grouped: Dict[str, List[LongOperation]] = OrderedDict()
        for lt in long_ops:
            grouped.setdefault(lt.operator_id, []).append(lt)
        return OrderedDict(
            (operator_id, {'long_operations': items,
                           'total_long': len(items),
                           **self.long_operation_averages(items)})
            for operator_id, items in grouped.items()
        )

    # --- frames -------------------------------------------------------------

    @staticmethod
    def operators_frame(records: Dict[str, OperatorRecord]) -> pd.DataFrame:
        rows = [{
            'Operator': r.operator_id,
            'Putaways': r.total_ops,
            'Total_Time_Min': r.total_time_seconds / 60,
            'Est_Rate': r.avg_rate,
            'Labor_Hours': r.labor_hours,
            'Actual_Rate': r.labor_throughput,
            'CLMS_TPH': r.labor_tph,
            'Rate': r.effective_rate,
            'Avg_Aisles': r.avg_aisles,
            'Avg_Bay_Depth': r.avg_bay_depth,
            'Avg_Rack_Height': r.avg_rack_height,
            'Avg_Est_Travel_Min': r.avg_estimated_travel_minutes,
            'Long_Ops': r.long_op_count,
            'Pure_RT_Long': r.pure_long_count,
            'Long_Pct': r.long_op_percent,
            'STU': '; '.join(r.stu_reasons),
        } for r in records.values()]
        return pd.DataFrame(rows)

    def operations_frame(self, operations: List[MatchedOperation]) -> pd.DataFrame:
        rows = []
        for op in operations:
            m = self.travel.operation_metrics(op)
            rows.append({
                'Operator': op.operator_id,
                'Pallet_Key': op.pair_key,
                'Pickup_Zone': op.pickup.from_location,
                'To_Location': op.putaway.to_location,
                'Started_At': op.putaway.started_at,
                'Pickup_Sec': op.pickup.duration_seconds,
                'Putaway_Sec': op.putaway.duration_seconds,
                'Total_Sec': op.total_time_seconds,
                'Aisles': m.aisles_traversed,
                'Bay_Depth': m.bay_depth,
                'Rack_Height': m.rack_height,
                'Est_Travel_Min': m.estimated_travel_time_minutes,
                'Item': op.putaway.item_number,
                'Quantity': op.putaway.quantity,
            })
        return pd.DataFrame(rows)

    @staticmethod
    def long_operations_frame(long_ops: List[LongOperation]) -> pd.DataFrame:
        rows = [{
            'Operator': lt.operator_id,
            'Pallet_Key': lt.operation.pair_key,
            'Pickup_Zone': lt.operation.pickup.from_location,
            'To_Location': lt.operation.putaway.to_location,
            'Putaway_Min': lt.putaway_minutes,
            'Total_Min': lt.total_minutes,
            'Pure_RT': lt.is_pure,
        } for lt in long_ops]
        df = pd.DataFrame(rows)
        if not df.empty:
            df.sort_values('Total_Min', ascending=False, inplace=True)
        return df
