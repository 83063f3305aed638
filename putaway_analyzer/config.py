# /putaway_analyzer/config.py

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

# 1. ONTOLOGY MAPPING: Standardizes column names across different export layouts
# =============================================================================
# Transaction exports arrive either with human headers or with bare spreadsheet
# column letters, so both are listed as patterns.

ONTOLOGY_MAP = {
    # === CORE FIELDS (Required) ===
    'transaction_type': {
        'patterns': ['Transaction Type', 'Trans Type', 'A'],
        'required': True,
    },
    'from_location': {
        'patterns': ['From Location', 'From Loc', 'L'],
        'required': True,
    },
    'to_location': {
        'patterns': ['To Location', 'To Loc', 'P'],
        'required': True,
    },
    'employee_id': {
        'patterns': ['Employee ID', 'Employee', 'User ID', 'G'],
        'required': True,
    },
    'pallet_key': {
        'patterns': ['From LP', 'License Plate', 'LP', 'M'],
        'required': True,
    },

    # === TIMING FIELDS ===
    'start_date': {
        'patterns': ['Start Date'],
        'required': False,
    },
    'start_time': {
        'patterns': ['Start Time'],
        'required': False,
    },
    'transaction_datetime': {
        'patterns': ['Transaction Date/Time', 'Transaction Date', 'D'],
        'required': False,
    },
    'duration_seconds': {
        'patterns': ['Time to Execute', 'Duration', 'Execute Time'],
        'required': False,
    },

    # === ITEM FIELDS ===
    'item_number': {
        'patterns': ['Item Number', 'Item', 'SKU'],
        'required': False,
    },
    'quantity': {
        'patterns': ['Quantity', 'QTY', "Q'TY"],
        'required': False,
    },
}

# 2. FILE CONFIGURATION: Host-side inputs
# =============================================================================

FILE_CONFIG = {
    'TRANSACTIONS': {
        'path': 'data/RT Transaction Export.xlsx',
        'sheet_name': 0,
        'type': 'transactions'
    },
    'LABOR_HOURS': {
        'path': 'data/CLMS Labor Report.txt',
        'type': 'labor'
    },
}

# 3. FILTER RULES: Which rows are reach-truck putaway work
# =============================================================================

FILTER_RULES = {
    'pickup_type': 211,
    'putaway_type': 212,
    # CART/MOVEXX are staging moves, OBPB is non-RT work
    'location_blacklist': ['CART', 'MOVEXX', 'OBPB'],
    'valid_pickup_zones': ['REC6701', 'REC7401', 'REC7201', 'REC7701', 'RECVASOUT',
                           'REC5401', 'IBCONT01', 'IBCONT02', 'IBPS1', 'IBPS2', 'IBVC', 'BPFLIP'],
    'putaway_from_prefix': 'RPUT',
}

# 4. WAREHOUSE MAPPING: Geometry consumed by the travel calculator
# =============================================================================

WAREHOUSE_MAPPING = {
    'entry_bay': 5,
    'aisle_ranges': {
        '14-29':   {'start_bay': 5, 'end_bay': 56, 'aisles': list(range(14, 30))},
        '30-45':   {'start_bay': 5, 'end_bay': 45, 'aisles': list(range(30, 46))},
        '46-80':   {'start_bay': 5, 'end_bay': 21, 'aisles': list(range(46, 81))},
        '81-96':   {'start_bay': 5, 'end_bay': 47, 'aisles': list(range(81, 97))},
        '97-98':   {'start_bay': 5, 'end_bay': 45, 'aisles': [97, 98]},
        '99-104':  {'start_bay': 5, 'end_bay': 44, 'aisles': list(range(99, 105))},
        '105-109': {'start_bay': 5, 'end_bay': 44, 'aisles': list(range(105, 110))},
        '110-112': {'start_bay': 5, 'end_bay': 53, 'aisles': [110, 111, 112]},
        '113-124': {'start_bay': 5, 'end_bay': 56, 'aisles': list(range(113, 125))},
        'S01-S06': {'start_bay': 1, 'end_bay': 22, 'aisles': ['S01', 'S02', 'S03', 'S04', 'S05', 'S06']},
        '03-04':   {'start_bay': 27, 'end_bay': 51, 'aisles': [3, 4]},
    },
    # Rack level letter -> lift height in levels (not alphabetical)
    'rack_levels': {
        'A': 1, 'B': 1, 'C': 1,
        'D': 2,
        'G': 3,
        'J': 4,
        'M': 5,
        'P': 6,
        'S': 7,
    },
    'distance_multipliers': {
        'aisle': 1.0,
        'bay': 1.0,
        'height': 1.0,
    },
    # S-aisles and extension aisles sit beyond a numbered aisle and are measured from it
    'special_aisle_pairs': {
        'S01': 68, 'S02': 69, 'S03': 70, 'S04': 71, 'S05': 72, 'S06': 73,
        3: 76, 4: 79,
    },
    'extension_aisles': [3, 4],
    'one_way_system': {
        'enabled': False,
        'breezeways': [21],
        'crossover_penalty': 1,
        # [directly reachable aisle, partner aisle]
        'aisle_pairs': [],
    },
    'pickup_zones': {
        'REC6701':    {'paired_aisle': 59},
        'REC7401':    {'paired_aisle': 49},
        'REC7201':    {'paired_aisle': 54},
        'REC7701':    {'paired_aisle': 44},
        'RECVASOUT':  {'paired_aisle': 20},
        'REC5401':    {'paired_aisle': 85},
        'IBCONT01':   {'paired_aisle': 95},
        'IBCONT02':   {'paired_aisle': 100},
        'IBPS1_IBVC': {'paired_aisle': 32, 'zones': ['IBPS1', 'IBVC']},
        'IBPS2':      {'paired_aisle': 81},
        'BPFLIP':     {'paired_aisle': 34},
    },
}

# 5. TRAVEL CONSTANTS: Reach truck physics
# =============================================================================

TRAVEL_CONSTANTS = {
    'horizontal_speed_fps': 7.33,  # 5 MPH
    'lift_speed_fps': 2.93,        # 2 MPH
    'aisle_distance_ft': 10.5,
    'bay_distance_ft': 10.5,
    'rack_level_height_ft': 6.0,
}

# 6. ANALYSIS PARAMETERS
# =============================================================================
LONG_OPERATION_SECONDS = 600
BREEZEWAY_BAY = 21

STU_MIN_LABOR_HOURS = 2
STU_TOP_LONG_COUNT = 2
STU_BOTTOM_RATE_COUNT = 3

RATE_PROBLEM = 6.3
RATE_WARNING = 7.0


def _merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_warehouse_mapping(mapping_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads a warehouse mapping JSON file and overlays it on WAREHOUSE_MAPPING.
    If no path is provided, returns a copy of the built-in mapping.
    """
    mapping = copy.deepcopy(WAREHOUSE_MAPPING)
    if mapping_path is None:
        return mapping

    final_path = Path(mapping_path)
    with open(final_path) as f:
        data = json.load(f)
        if not isinstance(data, dict):
            raise TypeError(f"Expected dict from {final_path}, got {type(data)}")

    # JSON object keys are always strings; numeric aisle keys come back as ints
    pairs = data.get('special_aisle_pairs')
    if isinstance(pairs, dict):
        data['special_aisle_pairs'] = {
            (int(k) if str(k).isdigit() else k): v for k, v in pairs.items()
        }
    return _merge(mapping, data)
