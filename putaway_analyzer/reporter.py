# /putaway_analyzer/reporter.py
import os

import pandas as pd


class ExcelReporter:
    """
    분석 결과를 받아 최종 엑셀 파일을 생성하는 역할만 전담합니다.
    (Responsible for creating the final Excel file from the analysis results.)
    """
    def __init__(self, reports_dict):
        self.reports = reports_dict

    def create_report(self, output_dir='outputs', prefix='RT_Putaway_Analysis'):
        """Writes every non-empty DataFrame to its own sheet and returns the file name."""
        if not self.reports:
            print("⚠️ No reports to generate.")
            return None

        timestamp = pd.Timestamp.now().strftime('%Y%m%d_%H%M%S')
        os.makedirs(output_dir, exist_ok=True)
        filename = os.path.join(output_dir, f"{prefix}_{timestamp}.xlsx")

        print(f"📊 Creating Excel report: {filename}")

        with pd.ExcelWriter(filename, engine='openpyxl') as writer:
            for sheet_name, df in self.reports.items():
                if df is not None and not df.empty:
                    formatted_df = self._apply_sheet_formatting(sheet_name, df)
                    formatted_df.to_excel(writer, sheet_name=sheet_name, index=False)

                    worksheet = writer.sheets[sheet_name]
                    self._apply_sheet_styling(worksheet, formatted_df)

                    print(f"   ✅ Sheet '{sheet_name}' created with {len(formatted_df)} rows")
                else:
                    print(f"   ⚠️ Sheet '{sheet_name}' skipped (empty data)")

        print(f"🎉 Excel report successfully created: {filename}")
        return filename

    def _apply_sheet_formatting(self, sheet_name: str, df: pd.DataFrame) -> pd.DataFrame:
        """시트별 특별 포맷팅을 적용합니다."""
        formatted_df = df.copy()

        if sheet_name == 'Operators':
            # 처리율 낮은 순 정렬
            if 'Rate' in formatted_df.columns:
                formatted_df = formatted_df.sort_values('Rate')

        elif sheet_name == 'Operations':
            if 'Started_At' in formatted_df.columns:
                started = pd.to_datetime(formatted_df['Started_At'], errors='coerce')
                formatted_df['Started_At'] = started.dt.strftime('%Y-%m-%d %H:%M').fillna('')
            formatted_df = formatted_df.sort_values(['Operator', 'Started_At'])

        # 숫자 컬럼 포맷팅
        numeric_cols = formatted_df.select_dtypes(include=['number']).columns
        for col in numeric_cols:
            formatted_df[col] = formatted_df[col].round(2)

        return formatted_df

    def _apply_sheet_styling(self, worksheet, df: pd.DataFrame):
        """시트별 스타일링을 적용합니다."""
        from openpyxl.styles import Font, PatternFill, Alignment
        from openpyxl.utils import get_column_letter

        # 헤더 스타일
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")

        for col_idx, col_name in enumerate(df.columns, 1):
            cell = worksheet.cell(row=1, column=col_idx)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
            # 컬럼 내용 중 가장 긴 값과 헤더 이름 중 더 긴 것을 기준으로 너비 설정
            column_len = max(df[col_name].astype(str).map(len).max(), len(str(col_name))) + 2
            worksheet.column_dimensions[get_column_letter(col_idx)].width = column_len

        # STU 대상 행 강조
        if 'STU' in df.columns:
            flag_font = Font(bold=True, color="C00000")
            stu_col = list(df.columns).index('STU') + 1
            for row_idx, value in enumerate(df['STU'], 2):
                if value:
                    worksheet.cell(row=row_idx, column=stu_col).font = flag_font

    def get_report_summary(self):
        """생성된 각 시트의 행 개수를 요약해서 반환합니다."""
        return {sheet_name: len(df) if hasattr(df, '__len__') else 0 for sheet_name, df in self.reports.items()}
