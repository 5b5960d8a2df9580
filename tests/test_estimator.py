import pytest

from gymtracker.services.entities import SetEntry
from gymtracker.services.estimator import best_set, estimate_one_rep_max, total_volume


def _set(weight: float, reps: int, completed: bool = True, n: int = 1) -> SetEntry:
    return SetEntry(set_number=n, weight=weight, reps=reps, completed=completed)


# ---------------------------------------------------------------------------
# estimate_one_rep_max
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("weight", [0.5, 20.0, 100.0, 250.5])
def test_single_rep_is_the_weight(weight: float):
    assert estimate_one_rep_max(weight, 1) == weight


@pytest.mark.parametrize(
    "weight,reps",
    [(0, 5), (-10, 5), (100, 0), (100, -3), (0, 0)],
)
def test_invalid_input_is_zero(weight: float, reps: int):
    assert estimate_one_rep_max(weight, reps) == 0


@pytest.mark.parametrize(
    "weight,reps",
    [(float("nan"), 5), (float("inf"), 5), (float("nan"), 1), (100, float("nan")), (100, float("inf"))],
)
def test_non_finite_input_is_zero(weight: float, reps: int):
    assert estimate_one_rep_max(weight, reps) == 0


def test_epley_formula():
    assert estimate_one_rep_max(100, 5) == pytest.approx(100 * (1 + 5 / 30))
    assert estimate_one_rep_max(60, 30) == pytest.approx(120.0)


# ---------------------------------------------------------------------------
# best_set
# ---------------------------------------------------------------------------


def test_best_set_empty():
    assert best_set([]) is None


def test_best_set_ignores_incomplete_and_zero_sets():
    sets = [
        _set(200, 5, completed=False),
        _set(0, 5),
        _set(80, 0),
    ]
    assert best_set(sets) is None


def test_best_set_picks_highest_estimate():
    light_many = _set(80, 12, n=1)  # 112.0
    heavy_few = _set(100, 3, n=2)  # 110.0
    assert best_set([heavy_few, light_many]) is light_many


def test_best_set_tie_keeps_first():
    first = _set(100, 5, n=1)
    second = _set(100, 5, n=2)
    assert best_set([first, second]) is first


# ---------------------------------------------------------------------------
# total_volume
# ---------------------------------------------------------------------------


def test_volume_counts_completed_only():
    sets = [_set(100, 5), _set(100, 5, completed=False), _set(50, 10)]
    assert total_volume(sets) == pytest.approx(1000.0)


def test_volume_zero_weight_completed_set_contributes_zero():
    assert total_volume([_set(0, 5)]) == 0


def test_volume_empty():
    assert total_volume([]) == 0
