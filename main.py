# /main.py
"""
Reach Truck Putaway Analysis Main Pipeline

This is the host script that reads the export files and hands decoded rows to
the analysis session. It only handles workflow coordination.
"""

import os
import sys

import pandas as pd

from putaway_analyzer import config
from putaway_analyzer.reporter import ExcelReporter
from putaway_analyzer.session import AnalysisSession


def main(mapping_path=None):
    """
    트랜잭션 익스포트를 읽어 작업자별 리포트를 생성하는 메인 파이프라인.
    """
    # 1. 창고 매핑 로드 및 세션 초기화
    try:
        mapping = config.load_warehouse_mapping(mapping_path)
    except Exception as e:
        print(f"   - ⚠️ ERROR reading warehouse mapping {mapping_path}: {e}")
        mapping = config.load_warehouse_mapping()
    session = AnalysisSession(mapping=mapping)

    # 2. 트랜잭션 데이터 로드
    conf = config.FILE_CONFIG['TRANSACTIONS']
    print(f"   - Loading: TRANSACTIONS ({conf['path']})")
    try:
        df = pd.read_excel(conf['path'], sheet_name=conf.get('sheet_name', 0), engine='openpyxl')
    except Exception as e:
        print(f"   - ⚠️ ERROR reading TRANSACTIONS: {e}")
        return None

    session.run(df, 'TRANSACTIONS')
    if not session.has_transaction_data:
        print("\n- ⚠️ WARNING: No matched operations; nothing to report.")
        return None

    # 3. 노무 시간 데이터 통합 (선택)
    labor_conf = config.FILE_CONFIG['LABOR_HOURS']
    if os.path.exists(labor_conf['path']):
        try:
            with open(labor_conf['path'], encoding='utf-8') as f:
                session.integrate_labor(f.read())
        except Exception as e:
            print(f"   - ⚠️ ERROR reading LABOR_HOURS: {e}")
    else:
        print("\nLabor report not found; estimated rates are used and no STU flags are raised.")

    # 4. 엑셀 리포트 생성
    reports_to_generate = session.report_frames()
    print(f"\n📊 Generating Excel Report with {len(reports_to_generate)} sheets...")
    reporter = ExcelReporter(reports_to_generate)
    return reporter.create_report()


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else None)
