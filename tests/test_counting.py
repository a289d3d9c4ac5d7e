import pytest

from counting import SYSTEMS, CardCounter, describe_system, round_count, system_names
from game import Card


def _feed(counter, *ranks):
    for rank in ranks:
        counter.update(Card.from_rank(rank))


def test_hi_lo_weights():
    counter = CardCounter("Hi-Lo")
    _feed(counter, "2", "6", "7", "9", "10", "K", "A")
    assert counter.running_count == 2 - 3


@pytest.mark.parametrize("system, ranks, expected", [
    ("Hi-Opt I", ["2", "3", "A", "K"], 0),
    ("Hi-Opt II", ["4", "5", "10"], 2),
    ("Omega II", ["6", "9", "Q"], -1),
    ("KO (Knockout)", ["7", "A"], 0),
    ("KO", ["7", "7"], 2),
    ("Ace-Five", ["5", "5", "A", "K"], 1),
])
def test_named_systems(system, ranks, expected):
    counter = CardCounter(system)
    _feed(counter, *ranks)
    assert counter.running_count == expected


def test_unknown_system_falls_back_to_hi_lo():
    counter = CardCounter("Zen")
    assert counter.values == SYSTEMS["Hi-Lo"]["values"]


def test_custom_values_and_unseen_ranks():
    counter = CardCounter("Custom", {"5": 3})
    _feed(counter, "5", "K", "A")
    assert counter.running_count == 3


def test_reset():
    counter = CardCounter()
    _feed(counter, "2", "3")
    counter.reset()
    assert counter.running_count == 0


@pytest.mark.parametrize("remaining", [0, 1, 26, 52, 150, 312, 1000])
def test_zero_running_count_gives_zero_true_count(remaining):
    assert CardCounter().true_count(remaining, 6) == 0


def test_true_count_divides_by_clamped_decks():
    counter = CardCounter()
    _feed(counter, "2", "3", "4", "5")
    assert counter.true_count(104, 6) == pytest.approx(2.0)
    # floor of half a deck
    assert counter.true_count(10, 6) == pytest.approx(8.0)
    # never more decks than the shoe holds
    assert counter.true_count(1000, 2) == pytest.approx(2.0)


def test_count_range_rounds_halves_away_from_zero():
    assert round_count(0.5) == 1
    assert round_count(-0.5) == -1
    assert round_count(1.49) == 1
    assert round_count(-2.5) == -3
    assert round_count(0.0) == 0
    counter = CardCounter()
    _feed(counter, "2")
    assert counter.count_range(104, 6) == 1


def test_describe_system():
    info = describe_system("KO")
    assert info["name"] == "KO (Knockout)"
    assert info["balanced"] is False
    assert info["values"]["7"] == 1
    assert describe_system("Custom")["values"] == {}
    assert "Custom" in system_names()
