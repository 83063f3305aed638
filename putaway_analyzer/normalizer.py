# /putaway_analyzer/normalizer.py
"""
Row Normalization Module

This module is responsible for transforming decoded export rows, whose fields
may be named by header text or by bare column letter, into strongly typed
TransactionRow records based on the ontology mapping.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .models import TransactionRow


class TransactionNormalizer:
    """
    Responsible for taking raw export rows and transforming them into clean
    TransactionRow records. Everything downstream consumes only the normalized type.
    """

    def __init__(self, ontology_map: Dict[str, Any]):
        """
        Initialize the normalizer with ontology mapping.

        Args:
            ontology_map: Dictionary mapping standard field names to possible aliases
        """
        self.ontology_map = ontology_map
        self.validation_errors = {}

    @staticmethod
    def _norm(name: Any) -> str:
        return str(name).replace(' ', '').replace('_', '').lower()

    def _find_column(self, df_columns: pd.Index, standard_name: str, used: Optional[set] = None) -> Optional[str]:
        """Find the best matching column for a standard name (exact first, then partial)."""
        used = used or set()
        patterns = [self._norm(p) for p in self.ontology_map[standard_name]['patterns']]
        candidates = [col for col in df_columns if col not in used]

        for pattern in patterns:
            for col in candidates:
                if self._norm(col) == pattern:
                    return col

        # Single letters are column references, never partial names
        for pattern in patterns:
            if len(pattern) < 2:
                continue
            for col in candidates:
                col_norm = self._norm(col)
                if len(col_norm) < 2:
                    continue
                if pattern in col_norm or col_norm in pattern:
                    return col
        return None

    def map_columns(self, df_columns: pd.Index) -> Dict[str, str]:
        """Resolve every standard field to a source column, required fields first."""
        ordered = sorted(self.ontology_map, key=lambda name: not self.ontology_map[name].get('required', False))
        mapping, used = {}, set()
        for standard_name in ordered:
            found_col = self._find_column(df_columns, standard_name, used)
            if found_col is not None:
                mapping[standard_name] = found_col
                used.add(found_col)
        return mapping

    def normalize(self, records: Union[pd.DataFrame, Iterable[Dict[str, Any]]], source_name: str = 'export') -> List[TransactionRow]:
        """Normalize decoded rows into TransactionRow records."""
        df = records if isinstance(records, pd.DataFrame) else pd.DataFrame(list(records))
        self.validation_errors = {}

        if df.empty:
            print(f"   - ⚠️ WARNING: Empty data for {source_name}")
            return []

        print(f"   - Normalizing {source_name} data...")
        column_map = self.map_columns(df.columns)

        # Critical validation: transaction type is required
        if 'transaction_type' not in column_map:
            print(f"   - ❌ CRITICAL: 'Transaction Type' column not found in {source_name}. File cannot be processed.")
            return []

        missing = [name for name, conf in self.ontology_map.items()
                   if conf.get('required') and name not in column_map]
        if missing:
            print(f"     - ⚠️ Missing columns in {source_name}: {', '.join(missing)}")

        standard_df = pd.DataFrame(index=df.index)
        for standard_name, source_col in column_map.items():
            standard_df[standard_name] = df[source_col]

        self._normalize_numbers(standard_df)
        self._normalize_text(standard_df)
        self._normalize_timestamps(standard_df)

        self._validate(standard_df)
        self._report_validation_results(source_name)

        rows = [
            TransactionRow(
                transaction_type=int(rec['transaction_type']),
                from_location=rec['from_location'],
                to_location=rec['to_location'],
                employee_id=rec['employee_id'],
                pallet_key=rec['pallet_key'],
                start_date=rec['start_date'],
                start_time=rec['start_time'],
                started_at=None if pd.isna(rec['started_at']) else rec['started_at'],
                duration_seconds=float(rec['duration_seconds']),
                item_number=rec['item_number'],
                quantity=int(rec['quantity']),
            )
            for rec in standard_df.to_dict('records')
        ]
        print(f"   ✅ Normalized {len(rows)} records from {source_name}")
        return rows

    def _normalize_numbers(self, standard_df: pd.DataFrame) -> None:
        """Coerce numeric fields; anything unparseable becomes 0."""
        for field_name, as_int in (('transaction_type', True), ('duration_seconds', False), ('quantity', True)):
            if field_name in standard_df.columns:
                series = pd.to_numeric(standard_df[field_name], errors='coerce')
                series = series.where(np.isfinite(series), np.nan).fillna(0)
            else:
                series = pd.Series(0, index=standard_df.index)
            standard_df[field_name] = series.astype(int) if as_int else series.astype(float)

    def _normalize_text(self, standard_df: pd.DataFrame) -> None:
        """Clean text fields; locations are upper-cased for rule matching."""
        text_fields = ('from_location', 'to_location', 'employee_id', 'pallet_key',
                       'start_date', 'start_time', 'item_number')
        for field_name in text_fields:
            if field_name in standard_df.columns:
                standard_df[field_name] = standard_df[field_name].map(_clean_text)
            else:
                standard_df[field_name] = ''

        for field_name in ('from_location', 'to_location'):
            standard_df[field_name] = standard_df[field_name].str.upper()

    def _normalize_timestamps(self, standard_df: pd.DataFrame) -> None:
        """Build a start timestamp from the transaction date/time or start date + time."""
        if 'transaction_datetime' in standard_df.columns:
            raw = standard_df['transaction_datetime'].map(_clean_text)
        else:
            raw = (standard_df['start_date'] + ' ' + standard_df['start_time']).str.strip()
        standard_df['started_at'] = pd.to_datetime(raw.where(raw != ''), errors='coerce', format='mixed')
        standard_df['_raw_started_at'] = raw

    def _validate(self, standard_df: pd.DataFrame) -> None:
        """Collects data quality issues; nothing here is fatal."""
        errors = {}

        negative = standard_df['duration_seconds'] < 0
        if negative.any():
            errors['duration_seconds'] = [f"Negative values found: {negative.sum()} rows"]

        unparsed = standard_df['started_at'].isna() & (standard_df['_raw_started_at'] != '')
        if unparsed.any():
            errors['started_at'] = [f"Invalid dates: {unparsed.sum()} rows"]

        blank_type = standard_df['transaction_type'] == 0
        if blank_type.any():
            errors['transaction_type'] = [f"Missing or non-numeric type: {blank_type.sum()} rows"]

        self.validation_errors = errors

    def _report_validation_results(self, source_name: str):
        if self.validation_errors:
            print(f"     - ⚠️ Validation issues in {source_name}:")
            for field_name, errors in self.validation_errors.items():
                for error in errors:
                    print(f"       • {field_name}: {error}")
        else:
            print(f"     - ✅ Validation passed for {source_name}")


def _clean_text(value: Any) -> str:
    """Stringify a cell; whole floats lose their '.0' (Excel reads LP numbers as floats)."""
    if value is None:
        return ''
    if isinstance(value, float):
        if np.isnan(value):
            return ''
        if value.is_integer():
            return str(int(value))
    if value is pd.NaT:
        return ''
    return str(value).strip()
