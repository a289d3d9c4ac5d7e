import pytest

from game import BlackjackGame, Card, GameRules, Shoe


def stacked_shoe(ranks, num_decks=1):
    """A shoe that deals ``ranks`` in the given order."""
    shoe = Shoe(num_decks=num_decks, seed=0)
    shoe._shoe = [Card.from_rank(r) for r in reversed(ranks)]
    return shoe


def cards(*ranks):
    return [Card.from_rank(r) for r in ranks]


@pytest.fixture
def make_game():
    def _make(ranks, rules=None, counter=None):
        return BlackjackGame(stacked_shoe(ranks), rules or GameRules(), counter)
    return _make
