"""
Reach Truck Putaway Analysis Package

This package contains the core analysis modules:
- normalizer: Export row standardization into typed transaction rows
- locations: Location code parsing
- travel: Travel distance and time estimates
- matcher: Transaction filtering and pickup/putaway pairing
- calculator: Per-operator aggregation and STU flagging
- labor: Labor report reconciliation
- heatmap: Destination activity and pickup zone statistics
- session: One-upload analysis session
- reporter: Excel report generation
"""

from .normalizer import TransactionNormalizer
from .locations import LocationParser, parse_location
from .travel import TravelCalculator, height_for_level, level_for_height, level_range_label
from .matcher import PairMatcher, TransactionFilter, match_pairs
from .calculator import OperatorAggregator
from .labor import LaborHoursReconciler, parse_labor_table, reconcile
from .heatmap import HeatmapBuilder
from .session import AnalysisSession
from .reporter import ExcelReporter

__all__ = [
    'TransactionNormalizer', 'LocationParser', 'parse_location',
    'TravelCalculator', 'height_for_level', 'level_for_height', 'level_range_label',
    'PairMatcher', 'TransactionFilter', 'match_pairs',
    'OperatorAggregator', 'LaborHoursReconciler', 'parse_labor_table', 'reconcile',
    'HeatmapBuilder', 'AnalysisSession', 'ExcelReporter',
]
