"""
Strategy tables for deciding player actions in Blackjack.

A :class:`Strategy` answers ``decide_action(player_label, dealer_label,
can_double, can_split, count)`` from three lookup tables (hard totals, soft
totals and pairs), each mapping a row key to a dealer up-card to a one-letter
action code (``H``, ``S``, ``D`` or ``P``).  Optional per-count tables of the
same shape override the static ones when count based play is enabled.

Player labels follow :func:`game.describe_hand`: ``"8,8"`` for a pair,
``"S18"`` for a soft total and ``"12"`` for a hard total.  Pair rows are keyed
by card value (``"2"`` .. ``"10"``, ``"11"`` or ``"A"`` for aces), soft rows
by the total without its ``S`` prefix.

Presets included:

* ``basic`` – Basic Strategy for a 6-8 deck shoe, dealer stands on soft 17.
* ``simplest`` – Hits until 17 or more, then stands.

The presets are exported in the ``STRATEGIES`` dictionary for easy lookup.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from errors import ConfigurationError
from game import VALUES, Action

StrategyTable = Dict[str, Dict[str, Action]]
StrategyCountTable = Dict[str, StrategyTable]

DEALER_LABELS = ["2", "3", "4", "5", "6", "7", "8", "9", "10", "A"]


def _table_to_rows(table: Mapping) -> Dict[str, Dict[str, str]]:
    return {str(key): {dealer: action.code for dealer, action in row.items()}
            for key, row in table.items()}


def _to_table(value: Any, name: str) -> StrategyTable:
    """Validate one ``row -> dealer -> code`` mapping."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"strategy table '{name}' must be an object")
    table: StrategyTable = {}
    for key, row in value.items():
        if not isinstance(row, Mapping):
            raise ConfigurationError(f"strategy row '{name}[{key}]' must be an object")
        # non-string cells are ignored
        table[str(key)] = {
            str(dealer): Action.from_code(code)
            for dealer, code in row.items()
            if isinstance(code, str)
        }
    return table


def _to_count_table(value: Any, name: str) -> StrategyCountTable:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"count table '{name}' must be an object")
    return {str(count): _to_table(inner, f"{name}[{count}]") for count, inner in value.items()}


def _soft_key(label: str) -> str:
    return label[1:] if label.startswith("S") else label


def _pair_keys(label: str) -> Tuple[str, ...]:
    """Row keys to try in a pair table for a ``"V,V"`` label."""
    parts = [p.strip() for p in label.split(",")]
    if len(parts) != 2 or parts[0] != parts[1]:
        return ()
    symbol = parts[0]
    if symbol == "A":
        return ("11", "A")
    value = VALUES.get(symbol)
    if value is None:
        return ()
    return (str(value),)


def _lookup(table: StrategyTable, keys: Iterable[str], dealer: str) -> Optional[Action]:
    for key in keys:
        row = table.get(key)
        if row is not None and dealer in row:
            return row[dealer]
    return None


def default_action(player_label: str) -> Action:
    """Fallback when no table resolves the hand."""
    if player_label.startswith("S"):
        return Action.STAND
    try:
        total = int(player_label)
    except ValueError:
        # pair labels such as "7,7"
        return Action.HIT
    return Action.HIT if total < 17 else Action.STAND


class Strategy:
    """Read-only decision oracle built from validated tables."""

    def __init__(self, hard: StrategyTable, soft: StrategyTable, pairs: StrategyTable,
                 hard_by_count: Optional[StrategyCountTable] = None,
                 soft_by_count: Optional[StrategyCountTable] = None,
                 pairs_by_count: Optional[StrategyCountTable] = None,
                 count_based: bool = False) -> None:
        self.hard = hard
        self.soft = soft
        self.pairs = pairs
        self.hard_by_count = hard_by_count or {}
        self.soft_by_count = soft_by_count or {}
        self.pairs_by_count = pairs_by_count or {}
        self.count_based = count_based

    @classmethod
    def from_input(cls, data: Mapping) -> "Strategy":
        """
        Build a strategy from loosely typed input (e.g. decoded JSON).

        :raises ConfigurationError: when a table or one of its rows is not an
            object.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("strategy must be an object")
        return cls(
            hard=_to_table(data.get("hard"), "hard"),
            soft=_to_table(data.get("soft"), "soft"),
            pairs=_to_table(data.get("pairs"), "pairs"),
            hard_by_count=_to_count_table(data.get("hard_by_count"), "hard_by_count"),
            soft_by_count=_to_count_table(data.get("soft_by_count"), "soft_by_count"),
            pairs_by_count=_to_count_table(data.get("pairs_by_count"), "pairs_by_count"),
            count_based=bool(data.get("count_based") or False),
        )

    @classmethod
    def from_preset(cls, name: str) -> "Strategy":
        if name not in STRATEGIES:
            raise ConfigurationError(
                f"unknown strategy preset '{name}', expected one of {sorted(STRATEGIES)}"
            )
        return cls.from_input(STRATEGIES[name])

    def export(self) -> Dict[str, Any]:
        return {
            "count_based": self.count_based,
            "hard": _table_to_rows(self.hard),
            "soft": _table_to_rows(self.soft),
            "pairs": _table_to_rows(self.pairs),
            "hard_by_count": {c: _table_to_rows(t) for c, t in self.hard_by_count.items()},
            "soft_by_count": {c: _table_to_rows(t) for c, t in self.soft_by_count.items()},
            "pairs_by_count": {c: _table_to_rows(t) for c, t in self.pairs_by_count.items()},
        }

    def decide_action(self, player_label: str, dealer: str, can_double: bool,
                      can_split: bool, count: int) -> Action:
        pair_keys = _pair_keys(player_label) if can_split else ()
        action = None
        if self.count_based and count != 0:
            action = self._lookup_count(str(count), player_label, pair_keys, dealer)
        if action is None:
            action = self._lookup_static(player_label, pair_keys, dealer)
        if action is None:
            action = default_action(player_label)
        if action is Action.DOUBLE and not can_double:
            return Action.HIT
        return action

    def _lookup_count(self, count_key: str, player_label: str,
                      pair_keys: Tuple[str, ...], dealer: str) -> Optional[Action]:
        if pair_keys:
            action = _lookup(self.pairs_by_count.get(count_key, {}), pair_keys, dealer)
            if action is not None:
                return action
        if player_label.startswith("S"):
            action = _lookup(self.soft_by_count.get(count_key, {}),
                             (_soft_key(player_label),), dealer)
            if action is not None:
                return action
        return _lookup(self.hard_by_count.get(count_key, {}),
                       (_soft_key(player_label),), dealer)

    def _lookup_static(self, player_label: str, pair_keys: Tuple[str, ...],
                       dealer: str) -> Optional[Action]:
        if pair_keys:
            action = _lookup(self.pairs, pair_keys, dealer)
            if action is not None:
                return action
        if player_label.startswith("S"):
            action = _lookup(self.soft, (_soft_key(player_label),), dealer)
            if action is not None:
                return action
        return _lookup(self.hard, (_soft_key(player_label),), dealer)


def _row(codes: str) -> Dict[str, str]:
    """Expand ten action letters into a row keyed by dealer up-card 2..A."""
    return dict(zip(DEALER_LABELS, codes))


BASIC_STRATEGY: Dict[str, Any] = {
    "count_based": False,
    "hard": {
        "5": _row("HHHHHHHHHH"),
        "6": _row("HHHHHHHHHH"),
        "7": _row("HHHHHHHHHH"),
        "8": _row("HHHHHHHHHH"),
        "9": _row("HDDDDHHHHH"),
        "10": _row("DDDDDDDDHH"),
        "11": _row("DDDDDDDDDD"),
        "12": _row("HHSSSHHHHH"),
        "13": _row("SSSSSHHHHH"),
        "14": _row("SSSSSHHHHH"),
        "15": _row("SSSSSHHHHH"),
        "16": _row("SSSSSHHHHH"),
        "17": _row("SSSSSSSSSS"),
        "18": _row("SSSSSSSSSS"),
        "19": _row("SSSSSSSSSS"),
        "20": _row("SSSSSSSSSS"),
        "21": _row("SSSSSSSSSS"),
    },
    "soft": {
        "13": _row("HHHDDHHHHH"),
        "14": _row("HHDDDHHHHH"),
        "15": _row("HHDDDHHHHH"),
        "16": _row("HHDDDHHHHH"),
        "17": _row("HDDDDHHHHH"),
        "18": _row("SDDDDSSHHH"),
        "19": _row("SSSSSSSSSS"),
        "20": _row("SSSSSSSSSS"),
        "21": _row("SSSSSSSSSS"),
    },
    "pairs": {
        "2": _row("PPPPPPHHHH"),
        "3": _row("PPPPPPHHHH"),
        "4": _row("HHHPPHHHHH"),
        "5": _row("DDDDDDDDHH"),
        "6": _row("PPPPPHHHHH"),
        "7": _row("PPPPPPHHHH"),
        "8": _row("PPPPPPPPPP"),
        "9": _row("PPPPPSPPSS"),
        "10": _row("SSSSSSSSSS"),
        "11": _row("PPPPPPPPPP"),
    },
}

SIMPLEST_STRATEGY: Dict[str, Any] = {
    "count_based": False,
    "hard": {str(total): _row("H" * 10 if total < 17 else "S" * 10) for total in range(4, 22)},
    "soft": {str(total): _row("H" * 10 if total < 17 else "S" * 10) for total in range(12, 22)},
    "pairs": {str(value): _row("H" * 10 if 2 * value < 17 or value == 11 else "S" * 10)
              for value in range(2, 12)},
}

STRATEGIES: Dict[str, Dict[str, Any]] = {
    "basic": BASIC_STRATEGY,
    "simplest": SIMPLEST_STRATEGY,
}
