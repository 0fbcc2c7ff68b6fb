from health_summary import METRIC_ORDER
from health_summary.models import METRIC_KINDS, DailySummary, MetricKind


def test_metric_order_matches_wire_names():
    assert METRIC_ORDER == [k.value for k in METRIC_KINDS]
    assert METRIC_ORDER[2] == "MILLILITER_DRANK"
    assert len(METRIC_ORDER) == 4


def test_summary_build_fills_every_kind():
    summary = DailySummary.build({MetricKind.STEPS: 12}, [])
    assert [m.kind for m in summary.metrics] == list(METRIC_KINDS)
    assert summary.value_of(MetricKind.STEPS) == 12
    assert summary.value_of(MetricKind.KCAL_BURNED) == 0
    assert summary.sessions == ()
