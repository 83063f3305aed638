import pandas as pd
import pytest

from putaway_analyzer.heatmap import HeatmapBuilder, is_rack_destination
from putaway_analyzer.reporter import ExcelReporter
from putaway_analyzer.session import AnalysisSession


def row(tx_type, from_loc, to_loc, emp, lp, seconds, started="2024-03-01 08:00:00"):
    date, time = started.split(" ")
    return {
        "Transaction Type": tx_type,
        "From Location": from_loc,
        "To Location": to_loc,
        "Employee ID": emp,
        "From LP": lp,
        "Start Date": date,
        "Start Time": time,
        "Time to Execute": seconds,
        "Item Number": "SKU1",
        "Quantity": 1,
    }


EXPORT = [
    row(211, "REC7201", "RPUT014A01A", "A1", "LP1", 50, "2024-03-01 07:55:00"),
    row(212, "RPUT014A01A", "30-35-M02", "B2", "LP1", 700, "2024-03-01 08:00:00"),
    row(211, "RECVASOUT", "RPUT014A01A", "A1", "LP2", 40),
    row(212, "RPUT014A01A", "30-15-A01", "B2", "LP2", 200, "2024-03-01 09:30:00"),
    row(211, "IBVC", "RPUT014A01A", "A1", "LP3", 30),
    row(212, "RPUT014A01A", "S01-07-D01", "C3", "LP3", 300, "2024-03-01 08:45:00"),
    row(211, "REC7401", "RPUT014A01A", "A1", "LP4", 30),
    row(212, "RPUT014A01A", "45-10-B01", "C3", "LP4", 250, "2024-03-01 10:15:00"),
    # noise
    row(212, "RPUT014A01A", "31-10-A01", "C3", "LP9", 100),
    row(211, "CART12", "RPUT014A01A", "A1", "LP5", 30),
    row(999, "X", "Y", "A1", "LP6", 30),
]

LABOR = "\n".join([
    "Employee\tSupervisor\tTotal Hours\tTotal Units\tUPH\tTotal Transactions\tTPH",
    "B2\tJane Doe\t8\t100\t12.5\t80\t10.0",
    "C3\tJane Doe\t8\t100\t12.5\t40\t5.0",
])


@pytest.fixture
def session():
    s = AnalysisSession()
    s.run(EXPORT, "test export")
    return s


def test_run_builds_operator_records(session):
    assert session.has_transaction_data
    assert list(session.records) == ["B2", "C3"]
    assert session.records["B2"].total_ops == 2
    assert session.records["B2"].long_op_count == 1
    assert len(session.long_operations) == 1
    assert len(session.pure_long_operations) == 1


def test_every_operation_is_counted_once(session):
    assert sum(r.total_ops for r in session.records.values()) == len(session.operations) == 4


def test_filtered_and_unmatched_rows_are_reported(session):
    assert session.filter_result.dropped == {"blacklisted location": 1, "invalid type": 1}
    assert [u.row.pallet_key for u in session.pairing.unmatched] == ["LP9"]


def test_run_is_repeatable():
    s = AnalysisSession()
    first = s.run(EXPORT)
    second = s.run(EXPORT)
    assert first == second
    assert len(s.long_operations) == 1


def test_run_accepts_dataframe():
    s = AnalysisSession()
    s.run(pd.DataFrame(EXPORT))
    assert len(s.operations) == 4


def test_empty_export():
    s = AnalysisSession()
    assert s.run([]) == {}
    assert not s.has_transaction_data
    assert s.date_range() is None
    assert s.summary()["total_operations"] == 0


def test_date_range(session):
    assert session.date_range() == {
        "start": pd.Timestamp("2024-03-01 08:00:00"),
        "end": pd.Timestamp("2024-03-01 10:15:00"),
    }


def test_integrate_labor_flags_outliers(session):
    result = session.integrate_labor(LABOR)
    assert result.updated_count == 2
    assert session.has_labor_data
    assert session.records["B2"].stu_reasons == ["Top 1 Long Transactions (1)", "Bottom 2 TPH (10.0)"]
    assert session.records["C3"].stu_reasons == ["Bottom 1 TPH (5.0)"]
    assert session.stu_recap("C3").startswith("TM flagged for STU due to Bottom 1 TPH (5.0).")


def test_summary(session):
    session.integrate_labor(LABOR)
    summary = session.summary()
    assert summary["total_operators"] == 2
    assert summary["total_operations"] == 4
    assert summary["total_long_operations"] == 1
    assert summary["unmatched_putaways"] == 1
    assert summary["overall_rate"] == pytest.approx(4 / 16)


def test_clear(session):
    session.clear()
    assert not session.has_transaction_data
    assert session.records == {}


def test_report_frames(session):
    frames = session.report_frames()
    assert list(frames) == ["Operators", "Operations", "Long_Operations", "Pickup_Zones"]
    assert len(frames["Operations"]) == 4
    assert len(frames["Long_Operations"]) == 1


def test_excel_report(session, tmp_path):
    reporter = ExcelReporter(session.report_frames())
    filename = reporter.create_report(output_dir=str(tmp_path))
    assert filename.endswith(".xlsx")
    sheets = pd.read_excel(filename, sheet_name=None, engine="openpyxl")
    assert set(sheets) == {"Operators", "Operations", "Long_Operations", "Pickup_Zones"}
    assert reporter.get_report_summary()["Operations"] == 4


# --- heat map ---------------------------------------------------------------------

def test_heatmap_counts(session):
    data = session.heatmap.heatmap_data(session.operations)
    assert data["aisle_activity"] == {30: 2, "S01": 1, 45: 1}
    assert data["bay_activity"][(30, 35)] == 1
    assert data["height_activity"] == {"M": 1, "A": 1, "D": 1, "B": 1}
    assert data["total_transactions"] == 4

    beyond = HeatmapBuilder.beyond_breezeway(data)
    assert beyond == {"count": 1, "percent": 25.0}
    assert HeatmapBuilder.hottest_aisle(data) == {"aisle": 30, "count": 2, "percent": 50.0}


def test_heatmap_filters(session):
    heatmap = session.heatmap
    assert heatmap.heatmap_data(session.operations, operator_id="C3")["total_transactions"] == 2
    assert heatmap.heatmap_data(session.operations, long_only=True)["aisle_activity"] == {30: 1}
    assert heatmap.heatmap_data(session.operations, pickup_zone="IBPS1_IBVC")["aisle_activity"] == {"S01": 1}
    assert heatmap.heatmap_data(session.operations, level_band="red")["height_activity"] == {"M": 1}


def test_pickup_zone_travel_times(session):
    table = session.heatmap.pickup_zone_travel_times(session.operations)
    assert [r["paired_aisle"] for r in table] == sorted(r["paired_aisle"] for r in table)
    by_zone = {r["zone"]: r for r in table}
    assert by_zone["IBPS1_IBVC"]["count"] == 1
    assert by_zone["REC6701"]["avg_minutes"] is None
    assert HeatmapBuilder.pickup_zone_counts(session.operations)["REC7201"] == 1


@pytest.mark.parametrize("location, expected", [
    ("30-35-M02", True),
    ("S01-07-D01", True),
    ("REC7201", False),
    ("DOCK04", False),
    ("", False),
])
def test_is_rack_destination(location, expected):
    assert is_rack_destination(location) == expected


def test_unknown_level_band_is_rejected(session):
    with pytest.raises(ValueError, match="Unknown level band"):
        session.heatmap.heatmap_data(session.operations, level_band="purple")


def test_zone_filter_matches_suffixed_zone_names():
    export = [
        row(211, "REC7201A", "RPUT014A01A", "A1", "LP1", 50),
        row(212, "RPUT014A01A", "30-35-M02", "B2", "LP1", 300),
    ]
    s = AnalysisSession()
    s.run(export)
    assert len(s.operations) == 1

    selected = s.heatmap.heatmap_data(s.operations, pickup_zone="REC7201")
    assert selected["total_transactions"] == 1
    by_zone = {r["zone"]: r for r in s.heatmap.pickup_zone_travel_times(s.operations)}
    assert by_zone["REC7201"]["count"] == 1
