import pytest

from app.streams.chunking import (
    MAX_CHUNK_SIZE,
    MIN_CHUNK_SIZE,
    calculate_optimal_chunk_size,
    plan_chunks,
    sample_windows,
)
from app.streams.models import StreamFormat


def test_targets_fifty_kb():
    chunk_size = calculate_optimal_chunk_size(10000, 5, 'compact')
    assert MIN_CHUNK_SIZE < chunk_size < MAX_CHUNK_SIZE[StreamFormat.COMPACT]
    # (50 * 1024 - 500) / (5 * 25)
    assert chunk_size == 405


def test_more_channels_smaller_chunks():
    assert calculate_optimal_chunk_size(10000, 10, 'compact') < calculate_optimal_chunk_size(10000, 5, 'compact')


def test_compact_chunks_larger_than_verbose():
    assert calculate_optimal_chunk_size(10000, 5, 'compact') > calculate_optimal_chunk_size(10000, 5, 'verbose')


def test_clamped_to_bounds():
    assert calculate_optimal_chunk_size(10, 5, 'compact') >= MIN_CHUNK_SIZE
    assert calculate_optimal_chunk_size(10000, 1, 'compact') == MAX_CHUNK_SIZE[StreamFormat.COMPACT]
    assert calculate_optimal_chunk_size(10000, 200, 'verbose') == MIN_CHUNK_SIZE
    assert calculate_optimal_chunk_size(10000, 0, 'compact') >= MIN_CHUNK_SIZE


def test_sample_data_refines_estimate():
    baseline = calculate_optimal_chunk_size(10000, 1, 'verbose')
    heavy_sample = {'power': [{'x' * 500: i} for i in range(100)]}
    refined = calculate_optimal_chunk_size(10000, 1, 'verbose', sample_data=heavy_sample)
    assert MIN_CHUNK_SIZE <= refined < baseline


def test_custom_target():
    assert calculate_optimal_chunk_size(10000, 5, 'compact', target_kb=100) > calculate_optimal_chunk_size(10000, 5, 'compact')


@pytest.mark.parametrize('total,size', [(5000, 405), (1, 50), (50, 50), (51, 50), (9999, 2000), (12345, 1000)])
def test_chunk_ranges_cover_exactly_once(total, size):
    ranges = plan_chunks(total, size)
    assert ranges[0].start == 0
    assert ranges[-1].end == total
    assert all(a.end == b.start for a, b in zip(ranges, ranges[1:]))
    assert sum(r.end - r.start for r in ranges) == total
    assert all(r.total == len(ranges) for r in ranges)


def test_chunk_labels_are_one_based_inclusive():
    ranges = plan_chunks(250, 100)
    assert [r.label for r in ranges] == ['1-100', '101-200', '201-250']


def test_plan_chunks_empty_and_invalid():
    assert plan_chunks(0, 100) == []
    with pytest.raises(ValueError):
        plan_chunks(100, 0)


def test_sample_windows_span_whole_range():
    windows = sample_windows(20000)
    assert windows[0] == (0, 100)
    assert windows[-1] == (19900, 20000)
    assert all(end - start == 100 for start, end in windows)
    assert sample_windows(30) == [(0, 30)]
    assert sample_windows(0) == []
