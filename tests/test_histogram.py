import math

import pytest

from ftdc.histogram import (
    Bar,
    Bracket,
    Histogram,
    from_bson,
    from_json,
    import_snapshot,
)
from ftdc.snapshot import Snapshot


@pytest.fixture(scope="module")
def million():
    hist = Histogram(1, 10000000, 3)
    for value in range(1000000):
        hist.record_value(value)
    return hist


def _copy(hist):
    return import_snapshot(hist.export())


def test_high_sig_fig():
    samples = [459876, 669187, 711612, 816326, 931423, 1033197, 1131895,
               2477317, 3964974, 12718782]
    hist = Histogram(459876, 12718782, 5)
    for sample in samples:
        hist.record_value(sample)
    assert hist.value_at_quantile(50) == 1048575


@pytest.mark.parametrize(
    "q, expected",
    [
        (50, 500223),
        (75, 750079),
        (90, 900095),
        (95, 950271),
        (99, 990207),
        (99.9, 999423),
        (99.99, 999935),
    ],
)
def test_value_at_quantile(million, q, expected):
    assert million.value_at_quantile(q) == expected


def test_mean(million):
    assert million.mean() == 500000.013312


def test_std_dev(million):
    assert million.std_dev() == 288675.1403682715


def test_total_count_grows_per_record():
    hist = Histogram(1, 10000000, 3)
    for value in range(10000):
        hist.record_value(value)
        assert hist.total_count == value + 1


def test_total_count_million(million):
    assert million.total_count == 1000000


def test_max(million):
    assert million.max() == 1000447


def test_min(million):
    assert million.min() == 0


def test_reset(million):
    hist = _copy(million)
    hist.reset()
    assert hist.max() == 0
    assert hist.total_count == 0


def test_merge():
    h1 = Histogram(1, 1000, 3)
    h2 = Histogram(1, 1000, 3)
    for value in range(100):
        h1.record_value(value)
    for value in range(100, 200):
        h2.record_value(value)
    assert h1.merge(h2) == 0
    assert h1.value_at_quantile(50) == 99


def test_merge_reports_dropped():
    small = Histogram(1, 1000, 3)
    large = Histogram(1, 100000, 3)
    large.record_value(50000)
    large.record_value(10)
    assert small.merge(large) == 1
    assert small.total_count == 1


def test_byte_size():
    assert Histogram(1, 100000, 3).byte_size() == 65604


def test_record_corrected_value():
    hist = Histogram(1, 100000, 3)
    hist.record_corrected_value(10, 100)
    assert hist.value_at_quantile(75) == 10


def test_record_corrected_value_stall():
    hist = Histogram(1, 100000, 3)
    hist.record_corrected_value(1000, 100)
    assert hist.value_at_quantile(75) == 800
    assert hist.total_count == 10


def test_cumulative_distribution():
    hist = Histogram(1, 100000000, 3)
    for value in range(1000000):
        hist.record_value(value)

    expected = [
        Bracket(0, 1, 0),
        Bracket(50, 500224, 500223),
        Bracket(75, 750080, 750079),
        Bracket(87.5, 875008, 875007),
        Bracket(93.75, 937984, 937983),
        Bracket(96.875, 969216, 969215),
        Bracket(98.4375, 984576, 984575),
        Bracket(99.21875, 992256, 992255),
        Bracket(99.609375, 996352, 996351),
        Bracket(99.8046875, 998400, 998399),
        Bracket(99.90234375, 999424, 999423),
        Bracket(99.951171875, 999936, 999935),
        Bracket(99.9755859375, 999936, 999935),
        Bracket(99.98779296875, 999936, 999935),
        Bracket(99.993896484375, 1000000, 1000447),
        Bracket(100, 1000000, 1000447),
    ]
    assert hist.cumulative_distribution() == expected


def test_distribution():
    hist = Histogram(8, 1024, 3)
    for value in range(1024):
        hist.record_value(value)
    bars = hist.distribution()
    assert len(bars) == 128
    assert all(bar.count == 8 for bar in bars)
    assert bars[0].from_value == 0
    assert bars[0].to_value == 7


def test_bar_str():
    assert str(Bar(1, 2, 3)) == "1, 2, 3\n"


def test_empty_mean_and_std_dev_are_zero():
    hist = Histogram(1, 100000, 3)
    assert not math.isnan(hist.mean())
    assert not math.isnan(hist.std_dev())
    assert hist.mean() == 0.0
    assert hist.std_dev() == 0.0


def test_significant_figures():
    assert Histogram(1, 10, 4).significant_figures == 4


def test_lowest_trackable_value():
    assert Histogram(2, 10, 3).lowest_trackable_value == 2


def test_highest_trackable_value():
    assert Histogram(1, 11, 3).highest_trackable_value == 11


def test_unit_magnitude_overflow():
    hist = Histogram(0, 200, 4)
    hist.record_value(11)
    assert hist.total_count == 1


@pytest.mark.parametrize(
    "q, expected",
    [(50, 33554431), (83.33, 33554431), (83.34, 100663295), (99, 100663295)],
)
def test_sub_bucket_mask_overflow(q, expected):
    hist = Histogram(20000000, 100000000, 5)
    for sample in (100000000, 20000000, 30000000):
        hist.record_value(sample)
    assert hist.value_at_quantile(q) == expected


def test_export_import(million):
    snapshot = million.export()
    assert snapshot.lowest_trackable_value == 1
    assert snapshot.highest_trackable_value == 10000000
    assert snapshot.significant_figures == 3
    assert import_snapshot(snapshot) == million


def test_equals(million):
    h1 = _copy(million)
    for value in range(10000):
        h1.record_value(value)
    h2 = Histogram(1, 10000000, 3)
    assert not h1 == h2
    h1.reset()
    h2.reset()
    assert h1 == h2


def test_equals_other_type_is_false():
    assert (Histogram(1, 1000, 3) == 5) is False


@pytest.mark.parametrize("sigfigs", [0, 6])
def test_invalid_sigfigs(sigfigs):
    with pytest.raises(ValueError):
        Histogram(1, 1000, sigfigs)


def test_record_too_large_raises():
    hist = Histogram(1, 1000, 3)
    with pytest.raises(ValueError, match="too large"):
        hist.record_value(10000000)
    assert hist.total_count == 0


def test_record_negative_raises():
    hist = Histogram(1, 1000, 3)
    with pytest.raises(ValueError):
        hist.record_value(-1)


def test_bson_round_trip():
    hist = Histogram(1, 100000, 3)
    for value in (1, 5, 500, 5000, 99999):
        hist.record_value(value)
    restored = from_bson(hist.to_bson())
    assert restored == hist
    assert restored.total_count == 5


def test_json_round_trip():
    hist = Histogram(1, 1000, 2)
    for value in range(0, 1000, 7):
        hist.record_value(value)
    restored = from_json(hist.to_json())
    assert restored == hist
    assert restored.value_at_quantile(50) == hist.value_at_quantile(50)


def test_from_json_empty_snapshot_raises():
    with pytest.raises(ValueError):
        from_json("{}")


def test_import_short_counts_raises():
    snapshot = Snapshot(1, 1000, 3, [0, 1, 2])
    with pytest.raises(ValueError):
        import_snapshot(snapshot)


def test_import_ignores_negative_counts_in_total():
    hist = Histogram(1, 1000, 3)
    snapshot = hist.export()
    snapshot.counts[0] = 4
    snapshot.counts[1] = -2
    assert import_snapshot(snapshot).total_count == 4