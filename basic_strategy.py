from enum import Enum
from functools import lru_cache
from typing import Dict, Optional

from blackjack import BlackjackRules, HandView, Move, RoundState, RoundView, SurrenderMode

class Action(Enum):
    HIT = "H"         # Always hit
    STAND = "S"       # Always stand
    SPLIT = "P"       # Split if allowed, otherwise play the total
    DOUBLE_OR_HIT = "Dh"    # Double if allowed, otherwise hit
    DOUBLE_OR_STAND = "Ds"  # Double if allowed, otherwise stand
    SPLIT_IF_DAS = "Ph"     # Split if double after split is allowed, otherwise hit
    SURRENDER_OR_HIT = "Rh" # Surrender if allowed, otherwise hit
    SURRENDER_OR_STAND = "Rs"  # Surrender if allowed, otherwise stand
    SURRENDER_OR_SPLIT = "Rp"  # Surrender if allowed, otherwise split

DEALER_CARDS = [2, 3, 4, 5, 6, 7, 8, 9, 10, 1]  # 1 is the ace


def _row(codes: str) -> Dict[int, str]:
    return dict(zip(DEALER_CARDS, codes.split()))


# Dealer stands on soft 17, four or more decks, double after split allowed.
# Columns are the dealer upcard 2-10, A.
HARD_TOTALS = {
    21: _row("S  S  S  S  S  S  S  S  S  S"),
    20: _row("S  S  S  S  S  S  S  S  S  S"),
    19: _row("S  S  S  S  S  S  S  S  S  S"),
    18: _row("S  S  S  S  S  S  S  S  S  S"),
    17: _row("S  S  S  S  S  S  S  S  S  S"),
    16: _row("S  S  S  S  S  H  H  Rh Rh Rh"),
    15: _row("S  S  S  S  S  H  H  H  Rh H"),
    14: _row("S  S  S  S  S  H  H  H  H  H"),
    13: _row("S  S  S  S  S  H  H  H  H  H"),
    12: _row("H  H  S  S  S  H  H  H  H  H"),
    11: _row("Dh Dh Dh Dh Dh Dh Dh Dh Dh H"),
    10: _row("Dh Dh Dh Dh Dh Dh Dh Dh H  H"),
    9:  _row("H  Dh Dh Dh Dh H  H  H  H  H"),
    8:  _row("H  H  H  H  H  H  H  H  H  H"),
    7:  _row("H  H  H  H  H  H  H  H  H  H"),
    6:  _row("H  H  H  H  H  H  H  H  H  H"),
    5:  _row("H  H  H  H  H  H  H  H  H  H"),
    4:  _row("H  H  H  H  H  H  H  H  H  H"),
}

SOFT_TOTALS = {
    21: _row("S  S  S  S  S  S  S  S  S  S"),
    20: _row("S  S  S  S  S  S  S  S  S  S"),
    19: _row("S  S  S  S  S  S  S  S  S  S"),
    18: _row("S  Ds Ds Ds Ds S  S  H  H  H"),
    17: _row("H  Dh Dh Dh Dh H  H  H  H  H"),
    16: _row("H  H  Dh Dh Dh H  H  H  H  H"),
    15: _row("H  H  Dh Dh Dh H  H  H  H  H"),
    14: _row("H  H  H  Dh Dh H  H  H  H  H"),
    13: _row("H  H  H  Dh Dh H  H  H  H  H"),
    12: _row("H  H  H  H  H  H  H  H  H  H"),
}

PAIRS = {
    'A': _row("P  P  P  P  P  P  P  P  P  P"),
    'T': _row("S  S  S  S  S  S  S  S  S  S"),
    '9': _row("P  P  P  P  P  S  P  P  S  S"),
    '8': _row("P  P  P  P  P  P  P  P  P  P"),
    '7': _row("P  P  P  P  P  P  H  H  H  H"),
    '6': _row("Ph P  P  P  P  H  H  H  H  H"),
    '5': _row("Dh Dh Dh Dh Dh Dh Dh Dh H  H"),
    '4': _row("H  H  H  Ph Ph H  H  H  H  H"),
    '3': _row("Ph Ph P  P  P  P  H  H  H  H"),
    '2': _row("Ph Ph P  P  P  P  H  H  H  H"),
}

# Changes when the dealer hits soft 17
H17_HARD = {(11, 1): "Dh", (15, 1): "Rh", (17, 1): "Rs"}
H17_SOFT = {(18, 2): "Ds", (19, 6): "Ds"}
H17_PAIRS = {('8', 1): "Rp"}


class StrategyTables:
    def __init__(self, hard_totals, soft_totals, pairs):
        self.hard_totals = hard_totals
        self.soft_totals = soft_totals
        self.pairs = pairs


@lru_cache(maxsize=None)
def build_tables(rules: BlackjackRules) -> StrategyTables:
    """Copy the base tables and apply the adjustments for ``rules``"""
    hard = {total: dict(row) for total, row in HARD_TOTALS.items()}
    soft = {total: dict(row) for total, row in SOFT_TOTALS.items()}
    pairs = {pair: dict(row) for pair, row in PAIRS.items()}

    if rules.dealer_hits_soft_17:
        for (total, dealer), code in H17_HARD.items():
            hard[total][dealer] = code
        for (total, dealer), code in H17_SOFT.items():
            soft[total][dealer] = code
        for (pair, dealer), code in H17_PAIRS.items():
            pairs[pair][dealer] = code

    decks = rules.number_of_decks
    if decks is not None and decks <= 2:
        hard[9][2] = "Dh"
        hard[11][1] = "Dh"
    if decks is not None and decks < 4:
        hard[16][9] = "H"

    return StrategyTables(hard, soft, pairs)


def surrender_early(hand: HandView, dealer_value: int, rules: BlackjackRules) -> bool:
    """Early surrender chart for hands facing a ten or an ace before the peek"""
    if hand.soft:
        return False
    if hand.is_pair:
        pair = hand.total // 2
        if dealer_value == 10:
            if pair == 8 and rules.number_of_decks == 1 and rules.allow_double_after_split:
                return False
            return pair in (7, 8)
        if dealer_value == 1:
            return pair in (3, 6, 7, 8) or (pair == 2 and rules.dealer_hits_soft_17)
        return False
    if dealer_value == 1:
        return 5 <= hand.total <= 7 or 12 <= hand.total <= 17
    if dealer_value == 10:
        return 14 <= hand.total <= 16
    return False


def dealer_key(view: RoundView) -> int:
    upcard = view.dealer_upcard
    return 1 if upcard.is_ace else upcard.get_value()


def pair_key(hand: HandView) -> str:
    rank = hand.cards[0].rank
    if rank == 'A':
        return 'A'
    return 'T' if hand.cards[0].get_value() == 10 else rank


class BasicStrategy:
    """Automated decision policy driven by the basic strategy tables.

    Never takes insurance. Table entries that depend on an unavailable move
    fall back to a plain move: ``Dh`` hits, ``Ds`` stands, and a pair
    that cannot be split is played as its hard or soft total.
    """

    def decide(self, view: RoundView) -> Move:
        if view.state is RoundState.INSURANCE:
            return Move.DECLINE
        if view.state is RoundState.EARLY_SURRENDER:
            if surrender_early(view.current_hand, dealer_key(view), view.rules):
                return Move.SURRENDER
            return Move.DECLINE
        if view.state is not RoundState.PLAYER_TURN:
            raise ValueError(f"No decision to make while the round is in {view.state.name}")

        action = self.get_action(view.current_hand, dealer_key(view), view.rules)
        return self._convert_action_to_move(action, view)

    def get_action(self, hand: HandView, dealer_value: int, rules: BlackjackRules,
                   use_pairs: bool = True) -> Action:
        """
        Look up the table entry for a hand.

        Args:
            hand: Player hand as seen by the policy
            dealer_value: Dealer upcard value, 1 for an ace
            rules: Table rules the tables are adjusted for
            use_pairs: Consult the pair table for two-card pairs

        Returns:
            Action enum with the table's preferred play
        """
        tables = build_tables(rules)
        if use_pairs and hand.is_pair and len(hand.cards) == 2:
            return Action(tables.pairs[pair_key(hand)][dealer_value])
        if hand.soft and hand.total in tables.soft_totals:
            return Action(tables.soft_totals[hand.total][dealer_value])
        return Action(tables.hard_totals[max(hand.total, 4)][dealer_value])

    def _convert_action_to_move(self, action: Action, view: RoundView) -> Move:
        """Convert a table entry into a move that is legal right now"""
        valid_moves = view.legal_moves

        if action == Action.STAND:
            return Move.STAND
        elif action == Action.HIT:
            return Move.HIT
        elif action == Action.DOUBLE_OR_HIT:
            return Move.DOUBLE if Move.DOUBLE in valid_moves else Move.HIT
        elif action == Action.DOUBLE_OR_STAND:
            return Move.DOUBLE if Move.DOUBLE in valid_moves else Move.STAND
        elif action == Action.SURRENDER_OR_HIT:
            return Move.SURRENDER if Move.SURRENDER in valid_moves else Move.HIT
        elif action == Action.SURRENDER_OR_STAND:
            return Move.SURRENDER if Move.SURRENDER in valid_moves else Move.STAND
        elif action == Action.SURRENDER_OR_SPLIT and Move.SURRENDER in valid_moves:
            return Move.SURRENDER
        elif action == Action.SPLIT_IF_DAS and not view.rules.allow_double_after_split:
            return Move.HIT

        # Split entries; without a legal split the pair is played as a total
        if Move.SPLIT in valid_moves:
            return Move.SPLIT
        fallback = self.get_action(view.current_hand, dealer_key(view), view.rules, use_pairs=False)
        return self._convert_action_to_move(fallback, view)

    def print_tables(self, rules: Optional[BlackjackRules] = None):
        """Print formatted basic strategy tables"""
        tables = build_tables(rules or BlackjackRules())
        print("\nLegend:")
        print("H   = Hit")
        print("S   = Stand")
        print("P   = Split")
        print("Dh  = Double if allowed, otherwise Hit")
        print("Ds  = Double if allowed, otherwise Stand")
        print("Ph  = Split if double after split is allowed, otherwise Hit")
        print("Rh  = Surrender if allowed, otherwise Hit")
        print("Rs  = Surrender if allowed, otherwise Stand")
        print("Rp  = Surrender if allowed, otherwise Split")

        header = "      " + "".join(f"{c:<4}" for c in ["2", "3", "4", "5", "6", "7", "8", "9", "T", "A"])
        print("\nHard Totals:")
        print(header)
        for total in range(20, 4, -1):
            print(f"{total:<6}" + "".join(f"{tables.hard_totals[total][d]:<4}" for d in DEALER_CARDS))

        print("\nSoft Totals:")
        print(header)
        for total in range(20, 12, -1):
            print(f"A,{total - 11:<4}" + "".join(f"{tables.soft_totals[total][d]:<4}" for d in DEALER_CARDS))

        print("\nPairs:")
        print(header)
        for pair in ["A", "T", "9", "8", "7", "6", "5", "4", "3", "2"]:
            print(f"{pair},{pair:<4}" + "".join(f"{tables.pairs[pair][d]:<4}" for d in DEALER_CARDS))


if __name__ == "__main__":
    BasicStrategy().print_tables()
