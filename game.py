"""
Core game logic for simulating rounds of Blackjack without suits.

This module defines the shoe, hands, house rules, and the state machine that
plays one full round.  Card ranks are tracked without their suits; each deck
contributes four copies of each rank into the shoe, so the probability of
drawing a rank diminishes as copies of it are dealt.

A round deals two cards each to the player and the dealer, resolves an
immediate player blackjack, then walks the player's hands in index order
(splits append new hands behind the current one), checks the dealer's hole
card for blackjack, plays the dealer out under the house rules and settles
every hand.  Every card drawn goes through :meth:`BlackjackGame.deal_card`
so the optional counter sees it.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from errors import ShoeInvariantError

logger = logging.getLogger(__name__)


# ----- Card definitions -----
RANKS: List[str] = ["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]
VALUES: Dict[str, int] = {
    "A": 11,
    "2": 2,
    "3": 3,
    "4": 4,
    "5": 5,
    "6": 6,
    "7": 7,
    "8": 8,
    "9": 9,
    "10": 10,
    "J": 10,
    "Q": 10,
    "K": 10,
}
CARDS_PER_DECK = 52

BLACKJACK_PAYOUTS: Dict[str, float] = {
    "3:2": 1.5,
    "6:5": 1.2,
    "1:1": 1.0,
}


@dataclass(frozen=True)
class Card:
    """A single card: its rank symbol and its blackjack value (A=11)."""

    rank: str
    value: int

    @classmethod
    def from_rank(cls, rank: str) -> "Card":
        return _CARDS.get(rank) or cls(rank=rank, value=VALUES.get(rank, 0))


_CARDS: Dict[str, Card] = {rank: Card(rank=rank, value=value) for rank, value in VALUES.items()}


class Action(str, Enum):
    """The four player moves, keyed by their one-letter table code."""

    HIT = "H"
    STAND = "S"
    DOUBLE = "D"
    SPLIT = "P"

    @classmethod
    def from_code(cls, code: str) -> "Action":
        """Unrecognised codes are read as a hit."""
        try:
            return cls(code)
        except ValueError:
            return cls.HIT

    @property
    def code(self) -> str:
        return self.value


class Shoe:
    """
    A shoe containing multiple decks of 52 cards, but only storing card
    ranks (suits are omitted).  Each rank appears four times per deck.

    Cards are dealt from the tail of the undealt list.  The random source is
    seeded once; every shuffle continues the same stream.
    """

    def __init__(self, num_decks: int = 6, penetration_threshold: float = 75,
                 seed: Optional[int] = None) -> None:
        self.num_decks = num_decks
        self.penetration_threshold = penetration_threshold
        self._rng = random.Random(seed)
        self._shoe: List[Card] = []
        self._used = 0
        self.penetration = 0.0
        self.shuffle()

    @property
    def total_cards(self) -> int:
        return self.num_decks * CARDS_PER_DECK

    @property
    def used_cards(self) -> int:
        return self._used

    def shuffle(self) -> None:
        """Reload every deck in rank order and randomise it."""
        self._shoe = []
        for _ in range(self.num_decks):
            for rank in RANKS:
                # 4 copies per rank per deck
                self._shoe.extend([_CARDS[rank]] * 4)
        self._rng.shuffle(self._shoe)
        self._used = 0
        self.penetration = 0.0

    def cards_remaining(self) -> int:
        return len(self._shoe)

    def deal_card(self) -> Card:
        """Pop one card from the shoe, reshuffling first when it is empty."""
        if not self._shoe:
            self.shuffle()
            if not self._shoe:
                raise ShoeInvariantError(
                    f"shoe of {self.num_decks} deck(s) is empty right after a shuffle"
                )
        card = self._shoe.pop()
        self._used += 1
        self.penetration = self._used / float(self.total_cards) * 100.0
        return card

    def should_reshuffle(self) -> bool:
        return (self.penetration >= self.penetration_threshold
                and len(self._shoe) < CARDS_PER_DECK)

    def remove_card_by_rank(self, rank: str) -> bool:
        """Take the first undealt card of ``rank`` out of the shoe."""
        for pos, card in enumerate(self._shoe):
            if card.rank == rank:
                del self._shoe[pos]
                return True
        return False


# ----- Hands -----
def hand_value(cards: Sequence[Card]) -> Tuple[int, bool]:
    """
    Compute the Blackjack value of a hand, counting Aces as 1 or 11
    to avoid busting where possible.  The flag is True while an Ace is
    still counted as 11.
    """
    total = 0
    aces = 0
    for card in cards:
        if card.rank == "A":
            total += 11
            aces += 1
        else:
            total += card.value
    while total > 21 and aces > 0:
        total -= 10
        aces -= 1
    return total, aces > 0 and total <= 21


def is_blackjack(cards: Sequence[Card]) -> bool:
    return len(cards) == 2 and hand_value(cards)[0] == 21


def is_pair(cards: Sequence[Card]) -> bool:
    return len(cards) == 2 and cards[0].value == cards[1].value


def pair_symbol(card: Card) -> str:
    if card.rank == "A":
        return "A"
    return str(card.value)


def dealer_label(card: Card) -> str:
    """Dealer up-card as used by strategy tables: "2".."10" or "A"."""
    return pair_symbol(card)


def describe_hand(cards: Sequence[Card], as_pair: bool = True) -> str:
    """
    Label a hand for strategy lookup and statistics: ``"8,8"`` for a pair,
    ``"S17"`` for a soft total, ``"12"`` for a hard total.
    """
    if as_pair and is_pair(cards):
        symbol = pair_symbol(cards[0])
        return f"{symbol},{symbol}"
    total, soft = hand_value(cards)
    if soft:
        return f"S{total}"
    return str(total)


@dataclass
class Hand:
    """One player hand, its bet multiplier and its bust tag."""

    cards: List[Card]
    bet: float = 1.0
    result: Optional[str] = None

    @property
    def value(self) -> int:
        return hand_value(self.cards)[0]

    def is_pair(self) -> bool:
        return is_pair(self.cards)

    def is_bust(self) -> bool:
        return self.value > 21


@dataclass(frozen=True)
class GameRules:
    """House rules, fixed for the life of a simulation run."""

    dealer_hits_soft_17: bool = False
    dealer_stands_on: str = "17"
    double_after_split: bool = True
    allow_resplit: bool = True
    resplit_aces: bool = False
    blackjack_pays: str = "3:2"

    @property
    def blackjack_payout(self) -> float:
        return BLACKJACK_PAYOUTS.get(self.blackjack_pays, 1.5)

    def dealer_threshold(self, total: int, soft: bool) -> int:
        if self.dealer_stands_on == "17s":
            return 17
        if self.dealer_hits_soft_17 and soft and total == 17:
            return 18
        return 17


@dataclass
class RoundOutcome:
    """
    Represents the outcome of one full round, including every hand spawned
    by splits.

    ``player_cards`` is the opening two-card hand; the final cards of each
    hand are in ``hands``.  ``bet`` is the total amount wagered across all
    hands (splits and doubles included).
    """

    outcome: str  # "win" | "lose" | "push" | "blackjack"
    winnings: float
    bet: float
    player_cards: List[Card]
    dealer_cards: List[Card]
    dealer_up_card: Card
    initial_action: Optional[Action]
    hands: List[Hand]
    hand_winnings: List[float] = field(default_factory=list)


def _outcome_from_winnings(winnings: float) -> str:
    if winnings > 0:
        return "win"
    if winnings < 0:
        return "lose"
    return "push"


def _settle(player_value: int, dealer_value: int) -> int:
    """
    Compare player and dealer totals returning:
        +1 for a win, 0 for a push, and −1 for a loss.
    """
    if player_value > 21:
        return -1
    if dealer_value > 21:
        return 1
    if player_value > dealer_value:
        return 1
    if player_value < dealer_value:
        return -1
    return 0


class BlackjackGame:
    """
    Plays rounds against one shoe under fixed rules.  The counter, when
    present, sees every card dealt and is reset whenever the shoe is
    reshuffled between rounds.
    """

    def __init__(self, shoe: Shoe, rules: GameRules, counter=None) -> None:
        self.shoe = shoe
        self.rules = rules
        self.counter = counter

    # ----- count helpers -----
    def true_count(self) -> float:
        if self.counter is None:
            return 0.0
        return self.counter.true_count(self.shoe.cards_remaining(), self.shoe.num_decks)

    def count_range(self) -> int:
        if self.counter is None:
            return 0
        return self.counter.count_range(self.shoe.cards_remaining(), self.shoe.num_decks)

    def deal_card(self) -> Card:
        # an empty shoe refilled mid-round keeps the running count; only
        # reshuffle_if_needed resets the counter
        card = self.shoe.deal_card()
        if self.counter is not None:
            self.counter.update(card)
        return card

    def reshuffle_if_needed(self) -> bool:
        if not self.shoe.should_reshuffle():
            return False
        logger.debug("Reshuffling shoe at %.1f%% penetration", self.shoe.penetration)
        self.shoe.shuffle()
        if self.counter is not None:
            self.counter.reset()
        return True

    # ----- dealer -----
    def play_dealer(self, dealer_cards: Sequence[Card]) -> List[Card]:
        """Dealer draws until reaching the stand threshold for the rules."""
        hand = list(dealer_cards)
        while True:
            total, soft = hand_value(hand)
            if total > 21 or total >= self.rules.dealer_threshold(total, soft):
                return hand
            hand.append(self.deal_card())

    # ----- player -----
    def can_double(self, hand: Hand, hand_index: int, split_occurred: bool) -> bool:
        if len(hand.cards) != 2:
            return False
        if not split_occurred:
            return hand_index == 0
        return self.rules.double_after_split

    def can_split(self, hand: Hand, split_occurred: bool) -> bool:
        if not hand.is_pair():
            return False
        if not split_occurred:
            return True
        if not self.rules.allow_resplit:
            return False
        if hand.cards[0].rank == "A":
            return self.rules.resplit_aces
        return True

    def _play_player_hands(self, hands: List[Hand], up_label: str, strategy,
                           forced_action: Optional[Action] = None) -> Optional[Action]:
        """
        Walk the hands in index order until each stands, busts, doubles or
        reaches 21.  Splits append to ``hands`` and are visited after the
        current hand.  Returns the action taken on the opening hand's first
        decision.
        """
        initial_action: Optional[Action] = None
        hand_index = 0
        while hand_index < len(hands):
            hand = hands[hand_index]
            while hand.value < 21:
                split_occurred = len(hands) > 1
                can_double = self.can_double(hand, hand_index, split_occurred)
                can_split = self.can_split(hand, split_occurred)
                opening = hand_index == 0 and not split_occurred and initial_action is None

                if opening and forced_action is not None:
                    action = forced_action
                else:
                    label = describe_hand(hand.cards, as_pair=can_split)
                    action = strategy.decide_action(
                        label, up_label, can_double, can_split, self.count_range()
                    )

                # illegal double or split degrade to a hit
                if action is Action.DOUBLE and not can_double:
                    action = Action.HIT
                elif action is Action.SPLIT and not can_split:
                    action = Action.HIT

                if opening:
                    initial_action = action

                if action is Action.HIT:
                    hand.cards.append(self.deal_card())
                    if hand.is_bust():
                        hand.result = "lose"
                        break
                elif action is Action.STAND:
                    break
                elif action is Action.DOUBLE:
                    hand.bet *= 2.0
                    hand.cards.append(self.deal_card())
                    if hand.is_bust():
                        hand.result = "lose"
                    break
                elif action is Action.SPLIT:
                    moved = hand.cards.pop()
                    new_hand = Hand(cards=[moved, self.deal_card()], bet=hand.bet)
                    hand.cards.append(self.deal_card())
                    hands.append(new_hand)
                else:
                    raise ValueError(f"unknown action {action!r}")
            hand_index += 1
        return initial_action

    # ----- rounds -----
    def play_round(self, strategy, bet_size: float) -> RoundOutcome:
        """Deal a fresh round from the shoe and play it to completion."""
        self.reshuffle_if_needed()
        player_cards = [self.deal_card(), self.deal_card()]
        dealer_cards = [self.deal_card(), self.deal_card()]
        return self.play_from(player_cards, dealer_cards, strategy, bet_size)

    def play_from(self, player_cards: Sequence[Card], dealer_cards: Sequence[Card],
                  strategy, bet_size: float,
                  forced_action: Optional[Action] = None) -> RoundOutcome:
        """
        Play a round whose opening cards are already known.  ``forced_action``
        replaces the strategy's answer for the opening decision only.
        """
        player_cards = list(player_cards)
        dealer_cards = list(dealer_cards)
        dealer_up = dealer_cards[0]

        if is_blackjack(player_cards):
            if is_blackjack(dealer_cards):
                outcome, winnings = "push", 0.0
            else:
                outcome, winnings = "blackjack", bet_size * self.rules.blackjack_payout
            return RoundOutcome(
                outcome=outcome,
                winnings=winnings,
                bet=bet_size,
                player_cards=player_cards,
                dealer_cards=dealer_cards,
                dealer_up_card=dealer_up,
                initial_action=Action.STAND,
                hands=[Hand(cards=list(player_cards))],
                hand_winnings=[winnings],
            )

        hands = [Hand(cards=list(player_cards))]
        initial_action = self._play_player_hands(
            hands, dealer_label(dealer_up), strategy, forced_action
        )
        total_bet = bet_size * sum(h.bet for h in hands)

        # hole card is only checked once the player is done
        if is_blackjack(dealer_cards):
            hand_winnings = [-bet_size * h.bet for h in hands]
            return RoundOutcome(
                outcome="lose",
                winnings=sum(hand_winnings),
                bet=total_bet,
                player_cards=player_cards,
                dealer_cards=dealer_cards,
                dealer_up_card=dealer_up,
                initial_action=initial_action,
                hands=hands,
                hand_winnings=hand_winnings,
            )

        dealer_final = self.play_dealer(dealer_cards)
        dealer_value = hand_value(dealer_final)[0]

        hand_winnings = []
        for hand in hands:
            stake = bet_size * hand.bet
            if hand.result == "lose":
                hand_winnings.append(-stake)
                continue
            hand_winnings.append(stake * _settle(hand.value, dealer_value))

        winnings = sum(hand_winnings)
        return RoundOutcome(
            outcome=_outcome_from_winnings(winnings),
            winnings=winnings,
            bet=total_bet,
            player_cards=player_cards,
            dealer_cards=dealer_final,
            dealer_up_card=dealer_up,
            initial_action=initial_action,
            hands=hands,
            hand_winnings=hand_winnings,
        )
