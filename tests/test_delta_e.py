import numpy as np
import pytest

from paintmix.data.delta_e import (
    delta_e,
    delta_e_cie76,
    delta_e_cie94,
    delta_e_cie2000,
    delta_e_many_cie76,
    normalize_method,
)


def test_cie76_is_euclidean():
    assert delta_e_cie76((0, 0, 0), (3, 4, 0)) == pytest.approx(5.0)
    assert delta_e_cie76((50, 10, -10), (50, 10, -10)) == 0.0


def test_cie76_vectorized_matches_scalar():
    target = (53.24, 80.09, 67.2)
    labs = [(0, 0, 0), (100, 0, 0), (53.24, 80.09, 67.2), (32.3, 79.19, -107.86)]
    many = delta_e_many_cie76(target, labs)
    assert many.shape == (4,)
    np.testing.assert_allclose(many, [delta_e_cie76(target, lab) for lab in labs])


def test_cie94_lightness_only():
    assert delta_e_cie94((50, 0, 0), (40, 0, 0)) == pytest.approx(10.0)
    assert delta_e_cie94((50, 20, 20), (50, 20, 20)) == 0.0


def test_cie2000_reference_pair():
    # first pair of Sharma, Wu & Dalal's CIEDE2000 test data
    assert delta_e_cie2000((50.0, 2.6772, -79.7751), (50.0, 0.0, -82.7485)) == pytest.approx(2.0425, abs=1e-4)
    assert delta_e_cie2000((60, 10, 10), (60, 10, 10)) == 0.0


@pytest.mark.parametrize("lab1,lab2,expected", [
    # neutral reference color, hue undefined
    ((50.0, 0.0, 0.0), (50.0, -1.0, 2.0), 2.3669),
    # hues on opposite sides of the 0/360 seam
    ((50.0, 2.49, -0.001), (50.0, -2.49, 0.0009), 7.1792),
])
def test_cie2000_hue_edge_cases(lab1, lab2, expected):
    assert delta_e_cie2000(lab1, lab2) == pytest.approx(expected, abs=1e-4)
    assert delta_e_cie2000(lab2, lab1) == pytest.approx(expected, abs=1e-4)


@pytest.mark.parametrize("given,expected", [
    ("76", "76"), (76, "76"), ("cie76", "76"), ("CIE94", "94"), ("2000", "2000"), ("CIE2000", "2000"),
])
def test_normalize_method(given, expected):
    assert normalize_method(given) == expected


def test_unknown_method():
    with pytest.raises(ValueError):
        normalize_method("cmc")
    with pytest.raises(ValueError):
        delta_e((0, 0, 0), (1, 1, 1), method="bogus")


def test_delta_e_dispatch():
    assert delta_e((0, 0, 0), (3, 4, 0)) == pytest.approx(5.0)
    assert delta_e((50, 0, 0), (40, 0, 0), method="94") == pytest.approx(10.0)
