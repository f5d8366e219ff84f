import pytest

from pdfdelta.core.types import WHOLE_PAGE, Changed, Dissimilar, Identical, Similar
from pdfdelta.segments import encode_page, encode_pages, encode_rows

from conftest import raster, solid


def test_no_hits_produce_no_segments():
    assert encode_rows([False] * 5) == ()


def test_run_touching_the_last_row_is_flushed():
    hits = [False] * 7 + [True] * 3

    assert encode_rows(hits) == ((7 / 9, 1.0),)


def test_run_starting_at_the_first_row():
    assert encode_rows([True, True, False, False, False]) == ((0.0, 0.25),)


def test_separate_runs_stay_separate_and_ordered():
    hits = [False, True, False, False, True, True, False, False, False, True, False]

    assert encode_rows(hits) == ((0.1, 0.1), (0.4, 0.5), (0.9, 0.9))


def test_every_row_hit_is_the_whole_page():
    assert encode_rows([True] * 4) == WHOLE_PAGE


def test_single_row_signal():
    assert encode_rows([True]) == WHOLE_PAGE
    assert encode_rows([False]) == ()


def test_dissimilar_page_is_changed_everywhere():
    page = raster(solid(10, 10))

    assert encode_page(Dissimilar(), page, []) == Changed(WHOLE_PAGE)


def test_zero_distance_is_identical():
    page = raster(solid(10, 10))

    assert encode_page(Similar(0, 0), page, [raster(solid(10, 10))]) == Identical()


def test_band_is_measured_against_the_matched_page():
    current = solid(11, 4)
    current[5:8, 1] = 0
    baseline = [raster(solid(3, 3)), raster(solid(11, 4))]

    result = encode_page(Similar(1, 3), raster(current), baseline)

    assert result == Changed(((0.5, 0.7),))


def test_encode_pages_requires_one_similarity_per_page():
    with pytest.raises(ValueError):
        encode_pages([Dissimilar()], [], [])


@pytest.mark.parametrize(
    "segments",
    [
        (),
        ((0.5, 0.4),),
        ((-0.1, 0.2),),
        ((0.2, 1.1),),
        ((0.1, 0.3), (0.3, 0.5)),
        ((0.5, 0.6), (0.1, 0.2)),
    ],
)
def test_changed_rejects_malformed_segments(segments):
    with pytest.raises(ValueError):
        Changed(segments)
