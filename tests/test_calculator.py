import pytest

from putaway_analyzer.calculator import OperatorAggregator
from putaway_analyzer.models import MatchedOperation, OperatorRecord, StuFlag, TransactionRow
from putaway_analyzer.travel import TravelCalculator


def make_op(lp, emp="B2", pickup_sec=50.0, putaway_sec=300.0, zone="REC7201",
            to="30-35-M02", origin="RPUT014A01A"):
    pickup = TransactionRow(211, zone, "RPUT014A01A", "A1", lp, duration_seconds=pickup_sec)
    putaway = TransactionRow(212, origin, to, emp, lp, duration_seconds=putaway_sec)
    return MatchedOperation(pickup=pickup, putaway=putaway, pair_key=lp,
                            total_time_seconds=pickup_sec + putaway_sec)


def labor_record(operator_id, hours=8.0, long_count=0, tph=None, avg_rate=0.0):
    record = OperatorRecord(operator_id=operator_id, total_ops=10, long_op_count=long_count, avg_rate=avg_rate)
    if hours is not None:
        record.labor_hours = hours
        record.labor_tph = tph
        record.labor_throughput = 10 / hours
    return record


@pytest.fixture
def aggregator():
    return OperatorAggregator(TravelCalculator())


def test_single_long_pure_operation(aggregator):
    records = aggregator.aggregate([make_op("LP1", pickup_sec=50, putaway_sec=700)])
    record = records["B2"]
    assert record.total_ops == 1
    assert record.total_time_seconds == 750
    assert record.long_op_count == 1
    assert record.pure_long_count == 1
    assert record.avg_rate == pytest.approx(3600 / 750)
    assert record.long_op_percent == 100
    assert len(aggregator.long_operations) == 1
    assert aggregator.long_operations[0].putaway_minutes == pytest.approx(700 / 60)


def test_long_threshold_is_strict(aggregator):
    assert aggregator.classify_long(make_op("LP1", putaway_sec=600)) is None
    assert aggregator.classify_long(make_op("LP2", putaway_sec=601)) is not None


def test_long_operation_not_from_rput_is_not_pure(aggregator):
    long_op = aggregator.classify_long(make_op("LP1", putaway_sec=900, origin="30-01-A01"))
    assert long_op is not None
    assert not long_op.is_pure


def test_travel_averages(aggregator):
    ops = [make_op("LP1", to="30-35-M02"), make_op("LP2", zone="RECVASOUT", to="30-15-A01")]
    record = aggregator.aggregate(ops)["B2"]
    # REC7201 sits at aisle 54, RECVASOUT at aisle 20
    assert record.avg_aisles == pytest.approx((24 + 10) / 2)
    assert record.avg_bay_depth == pytest.approx((30 + 10) / 2)
    assert record.avg_rack_height == pytest.approx((5 + 1) / 2)
    expected = aggregator.travel.estimate_travel_time(record.avg_aisles, record.avg_bay_depth,
                                                      record.avg_rack_height)
    assert record.avg_estimated_travel_minutes == pytest.approx(expected.total_minutes)


def test_groups_by_putaway_operator_and_skips_blank_ids(aggregator):
    ops = [make_op("LP1", emp="B2"), make_op("LP2", emp="C3"), make_op("LP3", emp="B2"), make_op("LP4", emp="  ")]
    records = aggregator.aggregate(ops)
    assert list(records) == ["B2", "C3"]
    assert records["B2"].total_ops == 2
    assert sum(r.total_ops for r in records.values()) == 3


def test_aggregate_resets_long_operations(aggregator):
    ops = [make_op("LP1", putaway_sec=700)]
    aggregator.aggregate(ops)
    aggregator.aggregate(ops)
    assert len(aggregator.long_operations) == 1


def test_effective_rate_prefers_clms_tph():
    record = OperatorRecord(operator_id="X", avg_rate=9.0)
    assert record.effective_rate == 9.0
    record.labor_hours = 8.0
    record.labor_throughput = 6.0
    assert record.effective_rate == 6.0
    record.labor_tph = 12.5
    assert record.effective_rate == 12.5


# --- STU ----------------------------------------------------------------------

def test_flag_outliers_ranks_eligible_operators(aggregator):
    records = {
        "A": labor_record("A", long_count=5, tph=10.0),
        "B": labor_record("B", long_count=3, tph=5.0),
        "C": labor_record("C", long_count=1, tph=7.0),
        "D": labor_record("D", long_count=0, tph=3.0),
        "E": labor_record("E", hours=1.5, long_count=9, tph=1.0),
        "F": labor_record("F", hours=None, long_count=10, avg_rate=0.5),
    }
    flagged = aggregator.flag_outliers(records)

    assert records["A"].stu_reasons == ["Top 1 Long Transactions (5)"]
    assert records["B"].stu_reasons == ["Top 2 Long Transactions (3)", "Bottom 2 TPH (5.0)"]
    assert records["C"].stu_reasons == ["Bottom 3 TPH (7.0)"]
    assert records["D"].stu_reasons == ["Bottom 1 TPH (3.0)"]
    assert records["E"].stu_flags == []
    assert records["F"].stu_flags == []
    assert list(flagged) == ["A", "B", "C", "D"]


def test_no_long_flags_when_nobody_has_long_operations(aggregator):
    records = {k: labor_record(k, tph=float(i + 8)) for i, k in enumerate("ABCD")}
    aggregator.flag_outliers(records)
    reasons = [reason for r in records.values() for reason in r.stu_reasons]
    assert not any(reason.startswith("Top") for reason in reasons)
    assert len(reasons) == 3


def test_no_labor_means_no_flags(aggregator):
    records = {"A": OperatorRecord(operator_id="A", long_op_count=4, avg_rate=2.0)}
    assert aggregator.flag_outliers(records) == {}


def test_flag_outliers_clears_previous_flags(aggregator):
    record = labor_record("A", hours=1.0)
    record.stu_flags = [StuFlag("old", 1, 0.0)]
    aggregator.flag_outliers({"A": record})
    assert record.stu_flags == []


def test_stu_recap_compares_to_department():
    record = labor_record("A", tph=5.0)
    record.avg_aisles, record.avg_bay_depth, record.avg_rack_height = 12.0, 6.0, 3.0
    record.stu_flags = [StuFlag("Bottom 1 TPH (5.0)", 1, 5.0)]
    averages = {"avg_aisles": 10.0, "avg_bay_depth": 5.0, "avg_rack_height": 3.0}

    recap = OperatorAggregator.stu_recap(record, averages)
    assert recap == (
        "TM flagged for STU due to Bottom 1 TPH (5.0). TM's TPH at time of STU was 5.0. "
        "TM's travel metrics in comparison to the department avg at time of STU were "
        "Travel Distance: +20.0%, Travel Depth: +20.0%, Rack Height: +0.0%."
    )


def test_stu_recap_without_department_averages():
    record = labor_record("A", tph=5.0)
    recap = OperatorAggregator.stu_recap(record, {"avg_aisles": 0.0})
    assert recap.endswith("Travel metrics comparison unavailable.")
    assert "manual review" in recap


@pytest.mark.parametrize("rate, expected", [(6.0, "problem"), (6.5, "warning"), (7.5, "good")])
def test_rate_class(rate, expected):
    assert OperatorAggregator.rate_class(rate) == expected


def test_classify_status():
    record = OperatorRecord(operator_id="A", avg_rate=9.0)
    assert OperatorAggregator.classify_status(record) == "good"
    record.long_op_count = 1
    assert OperatorAggregator.classify_status(record) == "warning"
    record.stu_flags = [StuFlag("Top 1 Long Transactions (1)", 1, 1)]
    assert OperatorAggregator.classify_status(record) == "problem"


# --- department views -----------------------------------------------------------

def test_department_averages_are_means_of_operator_averages():
    records = {
        "A": OperatorRecord(operator_id="A", avg_aisles=10.0, avg_bay_depth=4.0),
        "B": OperatorRecord(operator_id="B", avg_aisles=20.0, avg_bay_depth=float("nan")),
    }
    averages = OperatorAggregator.department_averages(records)
    assert averages["avg_aisles"] == pytest.approx(15.0)
    assert averages["avg_bay_depth"] == pytest.approx(2.0)
    assert OperatorAggregator.department_averages({})["avg_aisles"] == 0.0


def test_transaction_and_long_averages(aggregator):
    ops = [make_op("LP1", putaway_sec=300), make_op("LP2", putaway_sec=900)]
    aggregator.aggregate(ops)
    averages = aggregator.transaction_averages(ops)
    assert averages["total_operations"] == 2
    assert averages["avg_putaway_minutes"] == pytest.approx(10.0)

    long_averages = aggregator.long_operation_averages()
    assert long_averages["total_operations"] == 1
    assert long_averages["avg_putaway_minutes"] == pytest.approx(15.0)

    by_operator = aggregator.long_operations_by_operator()
    assert by_operator["B2"]["total_long"] == 1


def test_frames(aggregator):
    ops = [make_op("LP1", putaway_sec=700), make_op("LP2", emp="C3", putaway_sec=900)]
    records = aggregator.aggregate(ops)

    operators = aggregator.operators_frame(records)
    assert list(operators["Operator"]) == ["B2", "C3"]
    assert "STU" in operators.columns

    operations = aggregator.operations_frame(ops)
    assert len(operations) == 2
    assert operations.loc[0, "Aisles"] == 24

    long_ops = aggregator.long_operations_frame(aggregator.long_operations)
    assert list(long_ops["Operator"]) == ["C3", "B2"]
