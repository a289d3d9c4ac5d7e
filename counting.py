"""
Card counting systems.

A :class:`CardCounter` keeps a running count from the cards it is shown,
weighted by one of the named systems below or by a caller supplied table.
The true count divides the running count by the estimated number of decks
left, clamped between half a deck and the size of the shoe.
"""

import math
from typing import Dict, List, Mapping, Optional

DEFAULT_SYSTEM = "Hi-Lo"
CUSTOM_SYSTEM = "Custom"

SYSTEMS: Dict[str, dict] = {
    "Hi-Lo": {
        "values": {
            "2": 1, "3": 1, "4": 1, "5": 1, "6": 1,
            "7": 0, "8": 0, "9": 0,
            "10": -1, "J": -1, "Q": -1, "K": -1, "A": -1,
        },
        "description": "Most popular balanced system. +1 for 2-6, 0 for 7-9, -1 for 10-A.",
        "balanced": True,
    },
    "Hi-Opt I": {
        "values": {
            "2": 0, "3": 1, "4": 1, "5": 1, "6": 1,
            "7": 0, "8": 0, "9": 0,
            "10": -1, "J": -1, "Q": -1, "K": -1, "A": 0,
        },
        "description": "Balanced system that ignores 2s and Aces. +1 for 3-6, -1 for 10-K.",
        "balanced": True,
    },
    "Hi-Opt II": {
        "values": {
            "2": 1, "3": 1, "4": 2, "5": 2, "6": 1,
            "7": 1, "8": 0, "9": 0,
            "10": -2, "J": -2, "Q": -2, "K": -2, "A": 0,
        },
        "description": "Advanced balanced system with two-level point values. Aces count 0.",
        "balanced": True,
    },
    "Omega II": {
        "values": {
            "2": 1, "3": 1, "4": 2, "5": 2, "6": 2,
            "7": 1, "8": 0, "9": -1,
            "10": -2, "J": -2, "Q": -2, "K": -2, "A": 0,
        },
        "description": "Advanced balanced system. Aces count 0, 9s count -1.",
        "balanced": True,
    },
    "KO (Knockout)": {
        "values": {
            "2": 1, "3": 1, "4": 1, "5": 1, "6": 1, "7": 1,
            "8": 0, "9": 0,
            "10": -1, "J": -1, "Q": -1, "K": -1, "A": -1,
        },
        "description": "Unbalanced system. +1 for 2-7, 0 for 8-9, -1 for 10-A.",
        "balanced": False,
    },
    "Ace-Five": {
        "values": {
            "2": 0, "3": 0, "4": 0, "5": 1, "6": 0,
            "7": 0, "8": 0, "9": 0,
            "10": 0, "J": 0, "Q": 0, "K": 0, "A": -1,
        },
        "description": "Simple system tracking only 5s and Aces. +1 for 5, -1 for Ace.",
        "balanced": False,
    },
}

ALIASES = {"KO": "KO (Knockout)"}


def system_names() -> List[str]:
    return list(SYSTEMS.keys()) + [CUSTOM_SYSTEM]


def system_values(system: Optional[str]) -> Dict[str, int]:
    """Weights for a named system; unknown names fall back to Hi-Lo."""
    name = ALIASES.get(system or DEFAULT_SYSTEM, system or DEFAULT_SYSTEM)
    return dict(SYSTEMS.get(name, SYSTEMS[DEFAULT_SYSTEM])["values"])


def describe_system(system: str) -> dict:
    if system == CUSTOM_SYSTEM:
        return {
            "name": CUSTOM_SYSTEM,
            "description": "Custom counting system",
            "balanced": False,
            "values": {},
        }
    name = ALIASES.get(system, system)
    if name not in SYSTEMS:
        name = DEFAULT_SYSTEM
    info = SYSTEMS[name]
    return {
        "name": name,
        "description": info["description"],
        "balanced": info["balanced"],
        "values": dict(info["values"]),
    }


def round_count(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class CardCounter:
    """Running count over the cards dealt since the last shuffle."""

    def __init__(self, system: Optional[str] = None,
                 custom_values: Optional[Mapping[str, int]] = None) -> None:
        self.system = system or DEFAULT_SYSTEM
        if self.system == CUSTOM_SYSTEM:
            self.values = {str(k): int(v) for k, v in (custom_values or {}).items()}
        else:
            self.values = system_values(self.system)
        self.running_count = 0.0

    def update(self, card) -> int:
        weight = self.values.get(card.rank, 0)
        self.running_count += weight
        return weight

    def reset(self) -> None:
        self.running_count = 0.0

    def true_count(self, remaining_cards: int, num_decks: int) -> float:
        decks = min(max(remaining_cards / 52.0, 0.5), float(num_decks))
        if decks <= 0:
            return 0.0
        return self.running_count / decks

    def count_range(self, remaining_cards: int, num_decks: int) -> int:
        """True count rounded to the bucket used for table lookup."""
        return round_count(self.true_count(remaining_cards, num_decks))
