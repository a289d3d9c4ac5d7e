"""
Pydantic data models for simulation input and API responses.

The request models validate the loosely typed run configuration once, before
any round is played.  The response models mirror the dataclasses returned by
the simulation functions and ensure that results are properly validated and
serialised by FastAPI.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from config import get_settings
from game import Card, GameRules, RoundOutcome
from strategies import Strategy

Rank = Literal["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]
ActionCode = Literal["H", "S", "D", "P"]

MAX_SEED = 2 ** 64 - 1


# ----- Input -----
class RulesConfig(BaseModel):
    """House rules for the whole run."""

    dealer_hits_soft_17: bool = Field(False, description="Dealer draws on soft 17.")
    dealer_stands_on: Literal["17", "17s"] = Field(
        "17", description='"17s" makes the dealer stand on every 17, soft or hard.'
    )
    double_after_split: bool = True
    allow_resplit: bool = True
    resplit_aces: bool = False
    blackjack_pays: Literal["3:2", "6:5", "1:1"] = "3:2"
    penetration_threshold: int = Field(
        75, ge=0, le=100, description="Percent of the shoe dealt before a reshuffle."
    )

    def to_rules(self) -> GameRules:
        return GameRules(
            dealer_hits_soft_17=self.dealer_hits_soft_17,
            dealer_stands_on=self.dealer_stands_on,
            double_after_split=self.double_after_split,
            allow_resplit=self.allow_resplit,
            resplit_aces=self.resplit_aces,
            blackjack_pays=self.blackjack_pays,
        )


class CountingConfig(BaseModel):
    enabled: bool = False
    system: Optional[str] = Field(None, description='Named system, or "Custom".')
    custom_values: Optional[Dict[str, int]] = Field(
        None, description="Rank to weight table used with the Custom system."
    )


class StrategyConfig(BaseModel):
    """
    Strategy tables as ``row -> dealer -> action code``.  The named ``preset``
    (``basic`` when no static table is given) supplies every table the
    request leaves out; tables and ``count_based`` sent with it take
    precedence.
    """

    preset: Optional[str] = None
    count_based: bool = False
    hard: Optional[Dict[str, Any]] = None
    soft: Optional[Dict[str, Any]] = None
    pairs: Optional[Dict[str, Any]] = None
    hard_by_count: Optional[Dict[str, Any]] = None
    soft_by_count: Optional[Dict[str, Any]] = None
    pairs_by_count: Optional[Dict[str, Any]] = None

    def to_strategy(self) -> Strategy:
        supplied = self.model_dump(exclude={"preset", "count_based"}, exclude_none=True)
        static = ("hard", "soft", "pairs")
        if self.preset is None and any(name in supplied for name in static):
            data: Dict[str, Any] = {}
        else:
            data = Strategy.from_preset(self.preset or "basic").export()
        data.update(supplied)
        if "count_based" in self.model_fields_set:
            data["count_based"] = self.count_based
        return Strategy.from_input(data)


def _default_progress_interval() -> int:
    return get_settings().progress_interval


class SimulationConfig(BaseModel):
    """Parameters for one simulation run."""

    num_decks: int = Field(6, ge=1, le=255, description="Number of decks in the shoe.")
    iterations: int = Field(10_000, ge=0, description="Number of rounds to simulate.")
    seed: int = Field(0, ge=0, le=MAX_SEED, description="Seed for the shoe's random source.")
    bet_size: float = Field(100.0, description="Stake per round; values below 1.0 are raised to 1.0.")
    progress_interval: int = Field(default_factory=_default_progress_interval)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    counting: Optional[CountingConfig] = None
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)

    @property
    def effective_bet_size(self) -> float:
        return max(self.bet_size, 1.0)

    @property
    def effective_progress_interval(self) -> int:
        return max(self.progress_interval, 1)


class SpotCheckConfig(SimulationConfig):
    """A forced opening hand, dealer up-card and first action."""

    player_cards: List[Rank] = Field(..., min_length=1)
    dealer_card: Rank
    forced_action: ActionCode


# ----- Output -----
class CardOut(BaseModel):
    rank: str
    value: int


class HandOut(BaseModel):
    cards: List[CardOut]
    bet: float = Field(..., description="Bet multiplier of this hand (2.0 after a double).")
    result: Optional[str] = Field(None, description='"lose" when the hand busted.')


class RoundOutcomeOut(BaseModel):
    """A single round as played by the engine."""

    outcome: str = Field(..., description="win, lose, push or blackjack.")
    winnings: float
    bet: float = Field(..., description="Total wagered across every hand of the round.")
    player_cards: List[CardOut] = Field(..., description="The opening two-card hand.")
    dealer_cards: List[CardOut]
    dealer_up_card: CardOut
    initial_action: Optional[ActionCode] = None
    hands: List[HandOut]
    hand_winnings: List[float]

    @classmethod
    def from_outcome(cls, outcome: RoundOutcome) -> "RoundOutcomeOut":
        return cls(
            outcome=outcome.outcome,
            winnings=outcome.winnings,
            bet=outcome.bet,
            player_cards=[_card(c) for c in outcome.player_cards],
            dealer_cards=[_card(c) for c in outcome.dealer_cards],
            dealer_up_card=_card(outcome.dealer_up_card),
            initial_action=outcome.initial_action.code if outcome.initial_action else None,
            hands=[HandOut(cards=[_card(c) for c in h.cards], bet=h.bet, result=h.result)
                   for h in outcome.hands],
            hand_winnings=list(outcome.hand_winnings),
        )


def _card(card: Card) -> CardOut:
    return CardOut(rank=card.rank, value=card.value)


class CellStatsOut(BaseModel):
    player_total: str
    dealer_card: str
    action: str
    count: int
    hands: int
    wins: int
    losses: int
    pushes: int
    total_winnings: float
    total_bet: float


class CountStatsOut(BaseModel):
    total_hands: int
    count_distribution: Dict[str, int]
    ev_by_count: Dict[str, float] = Field(..., description="Mean winnings per round in each bucket.")
    hands_by_count: Dict[str, int]


class SimulationResultOut(BaseModel):
    total_games: int
    wins: int
    losses: int
    pushes: int
    blackjacks: int
    total_winnings: float
    total_bet: float
    expected_value: float = Field(..., description="Mean winnings per game.")
    win_rate: float = Field(..., description="Wins as a percentage of games.")
    return_rate: float = Field(..., description="Winnings as a percentage of the amount wagered.")
    count_stats: Optional[CountStatsOut] = None
    cell_stats: Dict[str, CellStatsOut]

    @classmethod
    def from_result(cls, result) -> "SimulationResultOut":
        return cls(**asdict(result))


class SpotCheckResultOut(BaseModel):
    total_games: int
    wins: int
    losses: int
    pushes: int
    total_winnings: float
    total_bet: float
    expected_value: float
    win_rate: float
    return_rate: float

    @classmethod
    def from_result(cls, result) -> "SpotCheckResultOut":
        return cls(**asdict(result))


class CountingSystemOut(BaseModel):
    name: str
    description: str
    balanced: bool
    values: Dict[str, int]
