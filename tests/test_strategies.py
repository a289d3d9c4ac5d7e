import pytest

from errors import ConfigurationError
from game import Action
from strategies import STRATEGIES, Strategy, default_action


@pytest.fixture
def basic():
    return Strategy.from_preset("basic")


def test_presets_listed():
    assert set(STRATEGIES) == {"basic", "simplest"}


def test_basic_hard_totals(basic):
    assert basic.decide_action("16", "10", True, False, 0) is Action.HIT
    assert basic.decide_action("16", "6", True, False, 0) is Action.STAND
    assert basic.decide_action("11", "6", True, False, 0) is Action.DOUBLE


def test_double_downgraded_when_not_allowed(basic):
    assert basic.decide_action("11", "6", False, False, 0) is Action.HIT
    assert basic.decide_action("S18", "3", False, False, 0) is Action.HIT


def test_basic_soft_totals(basic):
    assert basic.decide_action("S18", "3", True, False, 0) is Action.DOUBLE
    assert basic.decide_action("S18", "9", True, False, 0) is Action.HIT
    assert basic.decide_action("S19", "6", True, False, 0) is Action.STAND


def test_basic_pairs(basic):
    assert basic.decide_action("8,8", "10", True, True, 0) is Action.SPLIT
    assert basic.decide_action("A,A", "6", True, True, 0) is Action.SPLIT
    assert basic.decide_action("10,10", "6", True, True, 0) is Action.STAND
    assert basic.decide_action("9,9", "7", True, True, 0) is Action.STAND


def test_pair_table_skipped_when_split_not_allowed(basic):
    # unresolved pair label falls through to the safety default
    assert basic.decide_action("8,8", "10", True, False, 0) is Action.HIT


def test_pair_rows_keyed_by_ace_symbol():
    strategy = Strategy.from_input({"hard": {}, "soft": {}, "pairs": {"A": {"6": "S"}}})
    assert strategy.decide_action("A,A", "6", True, True, 0) is Action.STAND


def test_soft_falls_back_to_hard_total():
    strategy = Strategy.from_input({"hard": {"18": {"6": "S"}}, "soft": {}, "pairs": {}})
    assert strategy.decide_action("S18", "6", True, False, 0) is Action.STAND


@pytest.mark.parametrize("label, expected", [
    ("S15", Action.STAND),
    ("16", Action.HIT),
    ("17", Action.STAND),
    ("8,8", Action.HIT),
])
def test_safety_default(label, expected):
    empty = Strategy.from_input({"hard": {}, "soft": {}, "pairs": {}})
    assert empty.decide_action(label, "6", True, True, 0) is expected
    assert default_action(label) is expected


def test_unknown_action_code_is_hit():
    strategy = Strategy.from_input({"hard": {"12": {"2": "X"}}})
    assert strategy.decide_action("12", "2", True, False, 0) is Action.HIT


def test_non_string_cells_ignored():
    strategy = Strategy.from_input({"hard": {"18": {"6": 1, "7": "S"}}})
    assert "6" not in strategy.hard["18"]
    assert strategy.decide_action("18", "7", True, False, 0) is Action.STAND


def test_integer_keys_accepted():
    strategy = Strategy.from_input({"hard": {12: {2: "S"}}})
    assert strategy.decide_action("12", "2", True, False, 0) is Action.STAND


def test_count_tables_override_static():
    data = {
        "count_based": True,
        "hard": {"16": {"10": "H"}},
        "soft": {},
        "pairs": {"10": {"6": "S"}},
        "hard_by_count": {"2": {"16": {"10": "S"}}},
        "soft_by_count": {"3": {"18": {"2": "D"}}},
        "pairs_by_count": {"5": {"10": {"6": "P"}}},
    }
    strategy = Strategy.from_input(data)
    assert strategy.decide_action("16", "10", True, False, 2) is Action.STAND
    assert strategy.decide_action("16", "10", True, False, 1) is Action.HIT
    assert strategy.decide_action("10,10", "6", True, True, 5) is Action.SPLIT
    assert strategy.decide_action("10,10", "6", True, True, 4) is Action.STAND
    assert strategy.decide_action("S18", "2", True, False, 3) is Action.DOUBLE
    assert strategy.decide_action("S18", "2", False, False, 3) is Action.HIT


def test_count_tables_ignored_at_zero_or_when_disabled():
    data = {"hard": {"16": {"10": "H"}}, "hard_by_count": {"0": {"16": {"10": "S"}},
                                                           "2": {"16": {"10": "S"}}}}
    assert Strategy.from_input(data).decide_action("16", "10", True, False, 2) is Action.HIT
    data["count_based"] = True
    strategy = Strategy.from_input(data)
    assert strategy.decide_action("16", "10", True, False, 0) is Action.HIT
    assert strategy.decide_action("16", "10", True, False, 2) is Action.STAND


def test_negative_count_bucket_key():
    data = {"count_based": True, "hard": {"12": {"4": "S"}},
            "hard_by_count": {"-1": {"12": {"4": "H"}}}}
    assert Strategy.from_input(data).decide_action("12", "4", True, False, -1) is Action.HIT


@pytest.mark.parametrize("data", [
    {"hard": "not a table"},
    {"hard": {"12": ["H", "S"]}},
    {"hard": {}, "hard_by_count": ["nope"]},
    {"hard": {}, "soft_by_count": {"2": {"18": "D"}}},
])
def test_malformed_tables_rejected(data):
    with pytest.raises(ConfigurationError):
        Strategy.from_input(data)


def test_unknown_preset_rejected():
    with pytest.raises(ConfigurationError):
        Strategy.from_preset("martingale")


def test_export_keeps_codes(basic):
    exported = basic.export()
    assert exported["pairs"]["8"]["10"] == "P"
    assert exported["hard"]["11"]["A"] == "D"
    assert Strategy.from_input(exported).decide_action("8,8", "A", True, True, 0) is Action.SPLIT


def test_soft_label_falls_through_to_hard_count_table():
    data = {"count_based": True, "hard": {"18": {"2": "S"}}, "soft": {},
            "hard_by_count": {"3": {"18": {"2": "H"}}}}
    strategy = Strategy.from_input(data)
    assert strategy.decide_action("S18", "2", True, False, 3) is Action.HIT
    assert strategy.decide_action("S18", "2", True, False, 2) is Action.STAND
