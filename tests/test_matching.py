import pytest

from pdfdelta.core.types import Dissimilar, Similar, similarity_rank
from pdfdelta.matching import best_match, differing_pixel_count, match_pages, row_hits

from conftest import raster, solid


def _with_rows(height, width, rows, value=0):
    pixels = solid(height, width)
    for row in rows:
        pixels[row, :] = value
    return raster(pixels)


def test_identical_rasters_match_with_zero_distance():
    a = raster(solid(20, 10))
    b = raster(solid(20, 10))

    assert match_pages([a], [b]) == [Similar(0, 0)]


def test_distance_counts_pixels_not_channels():
    pixels = solid(4, 4)
    pixels[1, 1] = (255, 0, 255)
    pixels[2, 3] = (0, 0, 0)

    assert differing_pixel_count(raster(solid(4, 4)), raster(pixels)) == 2


def test_any_channel_difference_counts():
    pixels = solid(3, 3)
    pixels[0, 0, 2] = 254

    assert differing_pixel_count(raster(solid(3, 3)), raster(pixels)) == 1


def test_dimension_mismatch_is_not_a_pairing():
    current = raster(solid(20, 10))
    baseline = [raster(solid(10, 20)), raster(solid(21, 10))]

    assert differing_pixel_count(current, baseline[0]) is None
    assert best_match(current, baseline) == Dissimilar()


def test_row_hits_rejects_mismatched_sizes():
    with pytest.raises(ValueError):
        row_hits(raster(solid(2, 2)), raster(solid(3, 2)))


def test_best_match_prefers_fewest_differences():
    current = _with_rows(10, 10, [1])
    baseline = [
        _with_rows(10, 10, [5, 6, 7]),
        raster(solid(8, 8)),
        _with_rows(10, 10, [1, 2]),
    ]

    assert best_match(current, baseline) == Similar(2, 10)


def test_ties_go_to_the_lowest_baseline_index():
    current = raster(solid(10, 10))
    baseline = [
        raster(solid(5, 5)),
        _with_rows(10, 10, [3]),
        _with_rows(10, 10, [7]),
    ]

    assert best_match(current, baseline) == Similar(1, 10)


def test_exact_match_wins_regardless_of_position():
    current = _with_rows(10, 10, [4])
    baseline = [raster(solid(10, 10)), _with_rows(10, 10, [4]), _with_rows(10, 10, [4])]

    assert best_match(current, baseline) == Similar(1, 0)


def test_similar_always_outranks_dissimilar():
    ranked = sorted([Dissimilar(), Similar(3, 10_000), Similar(1, 5)], key=similarity_rank)
    assert ranked == [Similar(1, 5), Similar(3, 10_000), Dissimilar()]


def test_reordered_pages_are_matched_to_their_counterparts():
    first = _with_rows(10, 10, [1])
    second = _with_rows(10, 10, [8])

    assert match_pages([second, first], [first, second]) == [Similar(1, 0), Similar(0, 0)]


def test_unmatched_baseline_pages_have_no_effect():
    pages = [_with_rows(10, 10, [i]) for i in range(3)]

    result = match_pages(pages[:2], pages)

    assert result == [Similar(0, 0), Similar(1, 0)]


def test_empty_baseline_yields_dissimilar_pages():
    assert match_pages([raster(solid(2, 2))], []) == [Dissimilar()]


def test_parallel_matching_equals_serial():
    current = [_with_rows(12, 6, [i, i + 1]) for i in range(0, 10, 2)]
    baseline = [_with_rows(12, 6, [i]) for i in range(0, 12, 3)] + [raster(solid(6, 12))]

    assert match_pages(current, baseline, workers=4) == match_pages(current, baseline, workers=1)
