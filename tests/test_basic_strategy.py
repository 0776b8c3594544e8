from __future__ import annotations

import random

import pytest

from basic_strategy import Action, BasicStrategy, build_tables
from blackjack import Blackjack, BlackjackRules, Move, RoundState, SurrenderMode
from conftest import deal_round


@pytest.fixture
def strategy():
    return BasicStrategy()


class TestSurrender:
    @pytest.mark.parametrize("mode, expected", [
        (SurrenderMode.LATE, Move.SURRENDER),
        (SurrenderMode.NONE, Move.HIT),
    ])
    def test_hard_16_against_ten(self, strategy, mode, expected):
        round_ = deal_round(["10", "10", "6", "7"], BlackjackRules(surrender=mode))
        assert strategy.decide(round_.view()) is expected

    def test_three_card_16_hits(self, strategy):
        round_ = deal_round(["10", "10", "3", "7", "3"])
        round_.apply_action(Move.HIT)
        assert round_.current_hand.total == 16
        assert strategy.decide(round_.view()) is Move.HIT

    def test_early_surrender_offer(self, strategy):
        rules = BlackjackRules(surrender="early")
        round_ = deal_round(["10", "10", "6", "7"], rules)
        assert round_.state is RoundState.EARLY_SURRENDER
        assert strategy.decide(round_.view()) is Move.SURRENDER

        round_ = deal_round(["10", "10", "8", "7"], rules)
        assert strategy.decide(round_.view()) is Move.DECLINE


class TestTables:
    def test_never_takes_insurance(self, strategy):
        round_ = deal_round(["10", "A", "8", "7"])
        assert round_.state is RoundState.INSURANCE
        assert strategy.decide(round_.view()) is Move.DECLINE

    def test_doubles_eleven(self, strategy):
        round_ = deal_round(["5", "6", "6", "10"])
        assert strategy.decide(round_.view()) is Move.DOUBLE

    def test_eleven_after_hit_hits(self, strategy):
        round_ = deal_round(["2", "6", "4", "10", "5"])
        round_.apply_action(Move.HIT)
        assert round_.current_hand.total == 11
        assert strategy.decide(round_.view()) is Move.HIT

    def test_soft_18_against_three_doubles(self, strategy):
        round_ = deal_round(["A", "3", "7", "10"])
        assert strategy.decide(round_.view()) is Move.DOUBLE

    def test_soft_19_against_six_depends_on_soft_17_rule(self, strategy):
        s17 = deal_round(["A", "6", "8", "10"], BlackjackRules(dealer_hits_soft_17=False))
        h17 = deal_round(["A", "6", "8", "10"], BlackjackRules(dealer_hits_soft_17=True))
        assert strategy.decide(s17.view()) is Move.STAND
        assert strategy.decide(h17.view()) is Move.DOUBLE

    @pytest.mark.parametrize("ranks, expected", [
        (["8", "10", "8", "7"], Move.SPLIT),
        (["A", "6", "A", "10"], Move.SPLIT),
        (["K", "6", "10", "10"], Move.STAND),
        (["9", "7", "9", "10"], Move.STAND),
        (["5", "6", "5", "10"], Move.DOUBLE),
    ])
    def test_pairs(self, strategy, ranks, expected):
        assert strategy.decide(deal_round(ranks).view()) is expected

    def test_split_if_das(self, strategy):
        das = deal_round(["2", "3", "2", "10"], BlackjackRules(allow_double_after_split=True))
        no_das = deal_round(["2", "3", "2", "10"], BlackjackRules(allow_double_after_split=False))
        assert strategy.decide(das.view()) is Move.SPLIT
        assert strategy.decide(no_das.view()) is Move.HIT

    def test_unaffordable_split_plays_the_total(self, strategy):
        # 8,8 against a ten without chips to split is a hard 16
        round_ = deal_round(["8", "10", "8", "7"], chips=10)
        assert Move.SPLIT not in round_.get_valid_moves()
        assert strategy.decide(round_.view()) is Move.SURRENDER

    def test_h17_adjustments(self):
        s17 = build_tables(BlackjackRules())
        h17 = build_tables(BlackjackRules(dealer_hits_soft_17=True))
        assert s17.hard_totals[11][1] == "H"
        assert h17.hard_totals[11][1] == "Dh"
        assert h17.hard_totals[17][1] == "Rs"
        assert h17.pairs['8'][1] == "Rp"

    def test_deck_count_adjustments(self):
        single = build_tables(BlackjackRules(number_of_decks=1))
        assert single.hard_totals[9][2] == "Dh"
        assert single.hard_totals[16][9] == "H"
        infinite = build_tables(BlackjackRules(number_of_decks=None))
        assert infinite.hard_totals[16][9] == "Rh"

    def test_base_tables_not_modified(self):
        build_tables(BlackjackRules(dealer_hits_soft_17=True, number_of_decks=1))
        assert build_tables(BlackjackRules()).hard_totals[11][1] == "H"

    def test_get_action_codes(self, strategy):
        round_ = deal_round(["10", "10", "6", "7"])
        view = round_.view()
        assert strategy.get_action(view.current_hand, 10, view.rules) is Action.SURRENDER_OR_HIT

    def test_no_decision_outside_player_phases(self, strategy):
        round_ = deal_round(["A", "9", "K", "7"])
        with pytest.raises(ValueError):
            strategy.decide(round_.view())


class LegalityCheckingPolicy:
    def __init__(self, inner):
        self.inner = inner
        self.decisions = 0

    def decide(self, view):
        move = self.inner.decide(view)
        assert move in view.legal_moves, (move, view)
        self.decisions += 1
        return move


@pytest.mark.parametrize("rules", [
    BlackjackRules(),
    BlackjackRules(number_of_decks=1, dealer_hits_soft_17=True, surrender="early"),
    BlackjackRules(number_of_decks=None, surrender="none", allow_double_after_split=False,
                   allow_split_aces=False, max_splits=1),
])
def test_always_returns_a_legal_move(rules):
    game = Blackjack(rules, rng=random.Random(123), chips=100000)
    policy = LegalityCheckingPolicy(BasicStrategy())
    for _ in range(2000):
        game.play_round(10, policy)
    assert policy.decisions > 1000
