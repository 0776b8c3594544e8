from __future__ import annotations

import random
from collections import Counter

import pytest

from blackjack import BlackjackRules, CARDS_PER_DECK, RANKS, Shoe, ShoeExhausted


class TestFiniteShoe:
    def test_full_shoe(self):
        shoe = Shoe(BlackjackRules(number_of_decks=6), random.Random(1))
        assert shoe.cards_remaining() == 6 * CARDS_PER_DECK
        counts = Counter((c.rank, c.suit) for c in shoe.cards)
        assert len(counts) == CARDS_PER_DECK
        assert set(counts.values()) == {6}

    def test_draw_keeps_card_in_play_until_collected(self):
        shoe = Shoe(BlackjackRules(number_of_decks=1), random.Random(1))
        card = shoe.draw()
        assert shoe.cards_remaining() == CARDS_PER_DECK - 1
        assert shoe.in_play == [card]
        assert shoe.discard_pile == []
        assert shoe.cards_drawn == 1

        shoe.collect()
        assert shoe.in_play == []
        assert shoe.discard_pile == [card]

    def test_needs_shuffle_at_penetration(self):
        shoe = Shoe(BlackjackRules(number_of_decks=1, deck_penetration=0.75), random.Random(1))
        for _ in range(38):
            shoe.draw()
        assert not shoe.needs_shuffle()
        shoe.draw()
        assert shoe.needs_shuffle()
        shoe.shuffle()
        assert not shoe.needs_shuffle()
        assert shoe.cards_remaining() == CARDS_PER_DECK

    def test_exhaustion_reshuffles_only_the_discards(self):
        shoe = Shoe(BlackjackRules(number_of_decks=1), random.Random(1))
        for _ in range(40):
            shoe.draw()
        shoe.collect()

        # 12 cards left, the 13th draw reshuffles the 40 discards
        drawn = [shoe.draw() for _ in range(20)]
        assert len(set(drawn)) == 20
        assert shoe.in_play == drawn
        assert shoe.discard_pile == []
        assert shoe.cards_remaining() == 40 - 8
        assert shoe.cards_drawn == 20

    def test_exhaustion_with_every_card_on_the_table(self):
        shoe = Shoe(BlackjackRules(number_of_decks=1), random.Random(1))
        for _ in range(CARDS_PER_DECK):
            shoe.draw()
        with pytest.raises(ShoeExhausted):
            shoe.draw()

    def test_seeded_shoes_deal_the_same_cards(self):
        rules = BlackjackRules(number_of_decks=2)
        a = Shoe(rules, random.Random(42))
        b = Shoe(rules, random.Random(42))
        assert [a.draw() for _ in range(50)] == [b.draw() for _ in range(50)]


class TestInfiniteShoe:
    def test_never_needs_shuffle(self):
        shoe = Shoe(BlackjackRules(number_of_decks=None), random.Random(3))
        for _ in range(5000):
            shoe.draw()
        assert not shoe.needs_shuffle()
        assert shoe.cards_remaining() is None
        assert shoe.size is None

    def test_draws_every_rank(self):
        shoe = Shoe(BlackjackRules(number_of_decks=None), random.Random(3))
        ranks = Counter(shoe.draw().rank for _ in range(13000))
        assert set(ranks) == set(RANKS)
        # roughly uniform: each rank near 1000
        assert all(800 < n < 1200 for n in ranks.values())
