from __future__ import annotations

import dataclasses
from fractions import Fraction

import pytest

from blackjack import BlackjackRules, InvalidConfiguration, SurrenderMode, parse_payout


class TestBlackjackRules:
    def test_defaults(self):
        rules = BlackjackRules()
        assert rules.number_of_decks == 6
        assert rules.blackjack_payout == 1.5
        assert rules.surrender is SurrenderMode.LATE
        assert not rules.infinite_shoe

    def test_infinite_shoe(self):
        assert BlackjackRules(number_of_decks=None).infinite_shoe

    @pytest.mark.parametrize("payout, expected", [
        ("3:2", 1.5), ("6:5", 1.2), ("1/1", 1.0), ((3, 2), 1.5), (2, 2.0), ("1.5", 1.5),
    ])
    def test_payout_spellings(self, payout, expected):
        assert BlackjackRules(blackjack_payout=payout).blackjack_payout == pytest.approx(expected)

    def test_surrender_from_string(self):
        assert BlackjackRules(surrender="early").surrender is SurrenderMode.EARLY
        assert BlackjackRules(surrender="NONE").surrender is SurrenderMode.NONE

    @pytest.mark.parametrize("kwargs", [
        dict(number_of_decks=0),
        dict(number_of_decks=-2),
        dict(number_of_decks=2.5),
        dict(number_of_decks=True),
        dict(deck_penetration=0),
        dict(deck_penetration=1.2),
        dict(blackjack_payout=0),
        dict(blackjack_payout=-1.5),
        dict(blackjack_payout="0:2"),
        dict(blackjack_payout="three to two"),
        dict(blackjack_payout="3:0"),
        dict(surrender="sometimes"),
        dict(starting_chips=0),
        dict(starting_chips=10.5),
        dict(min_bet=0),
        dict(max_bet=-5),
        dict(min_bet=50, max_bet=10),
        dict(max_splits=-1),
        dict(max_splits=1.5),
        dict(max_splits=True),
        dict(blackjack_payout=float("nan")),
        dict(blackjack_payout=float("inf")),
        dict(blackjack_payout="inf"),
        dict(blackjack_payout="nan"),
        dict(blackjack_payout=[3, 2]),
        dict(deck_penetration=float("nan")),
        dict(deck_penetration="0.5"),
        dict(min_bet=float("nan")),
        dict(max_bet=float("inf")),
        dict(min_bet="5"),
        dict(max_bet=True),
        dict(dealer_hits_soft_17="yes"),
        dict(insurance_offered=1),
        dict(allow_double_after_split=None),
        dict(allow_split_aces="no"),
    ])
    def test_out_of_domain_values_rejected(self, kwargs):
        with pytest.raises(InvalidConfiguration):
            BlackjackRules(**kwargs)

    def test_immutable(self):
        rules = BlackjackRules()
        with pytest.raises(dataclasses.FrozenInstanceError):
            rules.number_of_decks = 8

    def test_new_configuration_is_new_value(self):
        rules = BlackjackRules()
        h17 = dataclasses.replace(rules, dealer_hits_soft_17=True)
        assert rules != h17
        assert not rules.dealer_hits_soft_17

    def test_hashable(self):
        assert len({BlackjackRules(), BlackjackRules(), BlackjackRules(blackjack_payout="6:5")}) == 2


def test_parse_payout_rejects_bool():
    with pytest.raises(InvalidConfiguration):
        parse_payout(True)


@pytest.mark.parametrize("payout", ["6:5", "6/5", (6, 5), 1.2, "1.2"])
def test_payout_is_exact(payout):
    assert BlackjackRules(blackjack_payout=payout).blackjack_payout == Fraction(6, 5)
