"""
Simulation driver: runs many rounds against one shoe and aggregates them.

A run owns a :class:`RunContext` (shoe, counter, game, strategy) for its whole
lifetime.  Before each round the shoe is reshuffled if it asks to be, the
pre-round true count is captured, the round is played and its outcome is
folded into global totals, count buckets and decision cells.  A decision cell
is keyed by the opening hand label, the dealer up-card, the opening action
and the pre-round count bucket.

Entry points:

* :func:`run` / :func:`run_with_progress` – full simulation.
* :func:`run_spot_check` – one forced scenario replayed over fresh shoes.
* :func:`play_single_round` – one round with its full structured outcome.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from counting import CardCounter, round_count
from errors import ConfigurationError
from game import Action, BlackjackGame, Card, RoundOutcome, Shoe, dealer_label, describe_hand
from schemas import CountingConfig, SimulationConfig, SpotCheckConfig
from strategies import Strategy

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int], None]
ConfigT = TypeVar("ConfigT", bound=BaseModel)

SEED_MASK = 2 ** 64 - 1


# ----- Results -----
@dataclass
class CellStats:
    """Outcomes of every round attributed to one decision cell."""

    player_total: str
    dealer_card: str
    action: str
    count: int
    hands: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    total_winnings: float = 0.0
    total_bet: float = 0.0


@dataclass
class CountStats:
    total_hands: int = 0
    count_distribution: Dict[str, int] = field(default_factory=dict)
    ev_by_count: Dict[str, float] = field(default_factory=dict)
    hands_by_count: Dict[str, int] = field(default_factory=dict)


@dataclass
class SimulationResult:
    total_games: int
    wins: int
    losses: int
    pushes: int
    blackjacks: int
    total_winnings: float
    total_bet: float
    expected_value: float
    win_rate: float
    return_rate: float
    count_stats: Optional[CountStats]
    cell_stats: Dict[str, CellStats]


@dataclass
class SpotCheckResult:
    total_games: int
    wins: int
    losses: int
    pushes: int
    total_winnings: float
    total_bet: float
    expected_value: float
    win_rate: float
    return_rate: float


@dataclass
class Aggregates:
    """Running totals for one run, fed one round at a time."""

    wins: int = 0
    losses: int = 0
    pushes: int = 0
    blackjacks: int = 0
    total_winnings: float = 0.0
    total_bet: float = 0.0
    count_stats: CountStats = field(default_factory=CountStats)
    cell_stats: Dict[str, CellStats] = field(default_factory=dict)

    def record_outcome(self, result: RoundOutcome) -> None:
        if result.outcome == "win":
            self.wins += 1
        elif result.outcome == "lose":
            self.losses += 1
        elif result.outcome == "push":
            self.pushes += 1
        elif result.outcome == "blackjack":
            self.wins += 1
            self.blackjacks += 1
        self.total_winnings += result.winnings
        self.total_bet += result.bet

    def record_count(self, true_count: float, winnings: float) -> None:
        key = str(round_count(true_count))
        stats = self.count_stats
        stats.count_distribution[key] = stats.count_distribution.get(key, 0) + 1
        stats.hands_by_count[key] = stats.hands_by_count.get(key, 0) + 1
        stats.ev_by_count[key] = stats.ev_by_count.get(key, 0.0) + winnings
        stats.total_hands += 1

    def record_cell(self, result: RoundOutcome, count_key: int) -> None:
        if result.initial_action is None:
            return
        player_total = describe_hand(result.player_cards)
        dealer_card = dealer_label(result.dealer_up_card)
        action = result.initial_action.code
        key = f"{player_total}_{dealer_card}_{action}_{count_key}"

        cell = self.cell_stats.get(key)
        if cell is None:
            cell = self.cell_stats[key] = CellStats(
                player_total=player_total,
                dealer_card=dealer_card,
                action=action,
                count=count_key,
            )
        cell.hands += 1
        cell.total_bet += result.bet
        cell.total_winnings += result.winnings
        if result.outcome in ("win", "blackjack"):
            cell.wins += 1
        elif result.outcome == "lose":
            cell.losses += 1
        else:
            cell.pushes += 1

    def finalize_count_stats(self) -> CountStats:
        stats = self.count_stats
        for key, hands in stats.hands_by_count.items():
            if hands > 0:
                stats.ev_by_count[key] = stats.ev_by_count.get(key, 0.0) / hands
        return stats


def _ratios(total_games: int, wins: int, total_winnings: float, total_bet: float):
    expected_value = total_winnings / total_games if total_games > 0 else 0.0
    win_rate = wins / total_games * 100.0 if total_games > 0 else 0.0
    return_rate = total_winnings / total_bet * 100.0 if abs(total_bet) > 1e-12 else 0.0
    return expected_value, win_rate, return_rate


# ----- Run context -----
@dataclass
class RunContext:
    """Everything one run mutates; owned by the driver for the run's lifetime."""

    game: BlackjackGame
    strategy: Strategy
    bet_size: float
    iterations: int
    progress_interval: int
    counting_enabled: bool
    aggregates: Aggregates = field(default_factory=Aggregates)


def _ensure_config(config: Union[ConfigT, Mapping], model: Type[ConfigT]) -> ConfigT:
    if isinstance(config, model):
        return config
    if isinstance(config, BaseModel):
        config = config.model_dump()
    try:
        return model.model_validate(config)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid {model.__name__}: {exc}") from exc


def build_counter(counting: Optional[CountingConfig]) -> Optional[CardCounter]:
    if counting is None or not counting.enabled:
        return None
    return CardCounter(counting.system, counting.custom_values)


def build_context(config: Union[SimulationConfig, Mapping]) -> RunContext:
    """Validate the configuration and set up the shoe, counter and strategy."""
    config = _ensure_config(config, SimulationConfig)
    strategy = config.strategy.to_strategy()
    shoe = Shoe(config.num_decks, config.rules.penetration_threshold, config.seed)
    counter = build_counter(config.counting)
    game = BlackjackGame(shoe, config.rules.to_rules(), counter)
    return RunContext(
        game=game,
        strategy=strategy,
        bet_size=config.effective_bet_size,
        iterations=config.iterations,
        progress_interval=config.effective_progress_interval,
        counting_enabled=counter is not None,
    )


def play_context_round(ctx: RunContext) -> RoundOutcome:
    """Play one round of a run and fold it into the run's aggregates."""
    game = ctx.game
    game.reshuffle_if_needed()
    true_count = game.true_count()
    count_key = game.count_range()

    result = game.play_round(ctx.strategy, ctx.bet_size)

    agg = ctx.aggregates
    agg.record_outcome(result)
    if ctx.counting_enabled:
        agg.record_count(true_count, result.winnings)
    agg.record_cell(result, count_key)
    return result


def summarize(ctx: RunContext) -> SimulationResult:
    """
    Build the final result.  Global totals are rebuilt from the decision
    cells so that they agree with the per-cell breakdown.
    """
    agg = ctx.aggregates
    count_stats = agg.finalize_count_stats() if ctx.counting_enabled else None

    cells = agg.cell_stats.values()
    if agg.cell_stats:
        total_games = sum(c.hands for c in cells)
        wins = sum(c.wins for c in cells)
        losses = sum(c.losses for c in cells)
        pushes = sum(c.pushes for c in cells)
        total_bet = sum(c.total_bet for c in cells)
        total_winnings = sum(c.total_winnings for c in cells)
    else:
        total_games = ctx.iterations
        wins, losses, pushes = agg.wins, agg.losses, agg.pushes
        total_bet, total_winnings = agg.total_bet, agg.total_winnings

    expected_value, win_rate, return_rate = _ratios(total_games, wins, total_winnings, total_bet)
    return SimulationResult(
        total_games=total_games,
        wins=wins,
        losses=losses,
        pushes=pushes,
        blackjacks=agg.blackjacks,
        total_winnings=total_winnings,
        total_bet=total_bet,
        expected_value=expected_value,
        win_rate=win_rate,
        return_rate=return_rate,
        count_stats=count_stats,
        cell_stats=dict(agg.cell_stats),
    )


def run_with_progress(config: Union[SimulationConfig, Mapping],
                      on_progress: Optional[ProgressFn] = None) -> SimulationResult:
    """
    Run ``config.iterations`` rounds.  ``on_progress(completed, total)`` is
    called every ``progress_interval`` rounds and on the last one.

    :raises ConfigurationError: before any round is played when the rules,
        strategy or counting input is malformed.
    """
    ctx = build_context(config)
    logger.info(
        "Simulating %d rounds: %d deck(s), bet %.2f, counting %s",
        ctx.iterations, ctx.game.shoe.num_decks, ctx.bet_size,
        "on" if ctx.counting_enabled else "off",
    )
    for index in range(ctx.iterations):
        play_context_round(ctx)
        completed = index + 1
        if completed % ctx.progress_interval == 0 or completed == ctx.iterations:
            logger.debug("Progress %d/%d", completed, ctx.iterations)
            if on_progress is not None:
                on_progress(completed, ctx.iterations)

    result = summarize(ctx)
    logger.info(
        "Finished %d games: EV %.4f, win rate %.2f%%, return %.3f%%",
        result.total_games, result.expected_value, result.win_rate, result.return_rate,
    )
    return result


def run(config: Union[SimulationConfig, Mapping]) -> SimulationResult:
    return run_with_progress(config, None)


def play_single_round(config: Union[SimulationConfig, Mapping]) -> RoundOutcome:
    """Play exactly one round from a freshly seeded shoe."""
    ctx = build_context(config)
    return ctx.game.play_round(ctx.strategy, ctx.bet_size)


def run_spot_check(config: Union[SpotCheckConfig, Mapping]) -> SpotCheckResult:
    """
    Replay one scenario over many shoes.  Each iteration builds a full shoe
    from ``seed + i``, removes the forced player cards and dealer up-card,
    deals the hole card and plays the round with the opening action forced.
    Later decisions, resplits included, follow the strategy.
    """
    config = _ensure_config(config, SpotCheckConfig)
    strategy = config.strategy.to_strategy()
    rules = config.rules.to_rules()
    forced_action = Action.from_code(config.forced_action)
    bet_size = config.effective_bet_size

    player_cards = [Card.from_rank(rank) for rank in config.player_cards]
    dealer_up = Card.from_rank(config.dealer_card)

    logger.info(
        "Spot check %s vs %s, forced %s, %d iterations",
        ",".join(config.player_cards), config.dealer_card, forced_action.code, config.iterations,
    )

    wins = losses = pushes = 0
    total_winnings = 0.0
    total_bet = 0.0
    seed = config.seed
    for _ in range(config.iterations):
        shoe = Shoe(config.num_decks, 100, seed)
        seed = (seed + 1) & SEED_MASK
        for card in player_cards:
            shoe.remove_card_by_rank(card.rank)
        shoe.remove_card_by_rank(dealer_up.rank)

        game = BlackjackGame(shoe, rules, build_counter(config.counting))
        dealer_cards = [dealer_up, game.deal_card()]
        result = game.play_from(player_cards, dealer_cards, strategy, bet_size, forced_action)

        total_winnings += result.winnings
        total_bet += result.bet
        if result.winnings > 0:
            wins += 1
        elif result.winnings < 0:
            losses += 1
        else:
            pushes += 1

    total_games = config.iterations
    expected_value, win_rate, return_rate = _ratios(total_games, wins, total_winnings, total_bet)
    return SpotCheckResult(
        total_games=total_games,
        wins=wins,
        losses=losses,
        pushes=pushes,
        total_winnings=total_winnings,
        total_bet=total_bet,
        expected_value=expected_value,
        win_rate=win_rate,
        return_rate=return_rate,
    )
