"""Shared helpers: scripted shoes and card builders.

Initial deals go player, dealer up-card, player, dealer hole card, so a
stack of ``["A", "9", "K", "7"]`` gives the player A-K against a dealer 9-7.
"""

from __future__ import annotations

import random

from blackjack import BlackjackRules, Card, Round, Shoe


def card(rank: str, suit: str = "♠") -> Card:
    return Card(suit, rank)


def cards(*ranks: str) -> list:
    return [card(rank) for rank in ranks]


class StackedShoe(Shoe):
    """Deals the given ranks in order, then carries on from a seeded shoe"""

    def __init__(self, rules: BlackjackRules, ranks):
        super().__init__(rules, random.Random(0))
        self.stacked = cards(*ranks)

    def draw(self) -> Card:
        if self.stacked:
            card = self.stacked.pop(0)
            self.in_play.append(card)
            self.cards_drawn += 1
            return card
        return super().draw()


def deal_round(ranks, rules: BlackjackRules | None = None, bet: float = 10.0,
               chips: float | None = None) -> Round:
    rules = rules or BlackjackRules()
    shoe = StackedShoe(rules, ranks)
    round_ = Round(rules, shoe, float(rules.starting_chips if chips is None else chips))
    round_.place_bet(bet)
    return round_
