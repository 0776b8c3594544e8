from dataclasses import dataclass
from enum import Enum, auto
from fractions import Fraction
from typing import Callable, Iterable, List, Tuple, Optional, Protocol, Union
import math
import random
import logging
from functools import wraps

logger = logging.getLogger(__name__)

SUITS = ['♠', '♣', '♥', '♦']
RANKS = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']
CARDS_PER_DECK = len(SUITS) * len(RANKS)
INSURANCE_PAYOUT = 2  # 2:1


class GameError(Exception):
    """Base class for every error raised by the game core"""
    pass


class InvalidConfiguration(GameError):
    """A rule value is out of its domain"""
    pass


class IllegalAction(GameError):
    """The requested move or bet is not valid in the current round state"""
    pass


class InsufficientFunds(GameError):
    """The move is legal but the chip balance cannot cover it"""
    pass


class ShoeExhausted(GameError):
    """Raised internally when a finite shoe runs dry; resolved by reshuffling"""
    pass


class GameResult(Enum):
    WIN = "win"
    LOSE = "lose"
    PUSH = "push"
    SURRENDER = "surrender"
    BLACKJACK = "blackjack"


class RoundState(Enum):
    BETTING = auto()
    DEALING = auto()
    EARLY_SURRENDER = auto()
    INSURANCE = auto()
    PLAYER_TURN = auto()
    DEALER_TURN = auto()
    SETTLEMENT = auto()
    DONE = auto()


class HandStatus(Enum):
    ACTIVE = "active"
    STOOD = "stood"
    BUSTED = "busted"
    BLACKJACK = "blackjack"
    SURRENDERED = "surrendered"
    DOUBLED_DOWN = "doubled"


class Move(Enum):
    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"
    SURRENDER = "surrender"
    INSURANCE = "insurance"
    DECLINE = "decline"


class SurrenderMode(Enum):
    NONE = "none"
    LATE = "late"
    EARLY = "early"


def exact_amount(value: Union[int, float, str, Fraction]) -> Fraction:
    """Exact value of a chip amount or ratio; floats are read as written, so 1.2 is 6/5"""
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Fraction)):
        raise TypeError(f"Not a number: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    return Fraction(value)


def parse_payout(value: Union[float, int, str, Tuple[int, int]]) -> Fraction:
    """Turn 1.5, "3:2", "6/5" or (6, 5) into an exact payout multiplier"""
    try:
        if isinstance(value, str) and ':' in value:
            value = tuple(value.split(':', 1))
        if isinstance(value, tuple):
            numerator, denominator = value
            return exact_amount(numerator) / exact_amount(denominator)
        return exact_amount(value)
    except (TypeError, ValueError, OverflowError, ZeroDivisionError):
        raise InvalidConfiguration(f"Invalid blackjack payout: {value!r}") from None


def _is_real(value) -> bool:
    return (isinstance(value, (int, float, Fraction)) and not isinstance(value, bool)
            and math.isfinite(value))


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class BlackjackRules:
    """Immutable table configuration.

    ``number_of_decks=None`` means an infinite shoe. ``max_splits=None`` allows
    splitting for as long as the chips last. The blackjack payout is kept as
    an exact fraction.
    """
    number_of_decks: Optional[int] = 6
    deck_penetration: float = 0.75
    dealer_hits_soft_17: bool = False
    blackjack_payout: Fraction = Fraction(3, 2)
    surrender: SurrenderMode = SurrenderMode.LATE
    insurance_offered: bool = True
    starting_chips: int = 1000
    min_bet: Optional[float] = None
    max_bet: Optional[float] = None
    max_splits: Optional[int] = None
    allow_double_after_split: bool = True
    allow_split_aces: bool = True

    def __post_init__(self):
        # Normalise the convenience spellings before validating
        object.__setattr__(self, 'blackjack_payout', parse_payout(self.blackjack_payout))
        if not isinstance(self.surrender, SurrenderMode):
            try:
                object.__setattr__(self, 'surrender', SurrenderMode(str(self.surrender).lower()))
            except ValueError:
                raise InvalidConfiguration(f"Unknown surrender mode: {self.surrender!r}") from None
        self._validate()

    def _validate(self):
        decks = self.number_of_decks
        if decks is not None and (not _is_count(decks) or decks < 1):
            raise InvalidConfiguration(f"Deck count must be a positive integer or None, got {decks!r}")
        if not _is_real(self.deck_penetration) or not 0 < self.deck_penetration <= 1:
            raise InvalidConfiguration(f"Deck penetration must be in (0, 1], got {self.deck_penetration!r}")
        if self.blackjack_payout <= 0:
            raise InvalidConfiguration(f"Blackjack payout must be positive, got {self.blackjack_payout}")
        if not _is_count(self.starting_chips) or self.starting_chips <= 0:
            raise InvalidConfiguration(f"Starting chips must be a positive integer, got {self.starting_chips!r}")
        for name in ('min_bet', 'max_bet'):
            limit = getattr(self, name)
            if limit is not None and (not _is_real(limit) or limit <= 0):
                raise InvalidConfiguration(f"{name} must be a positive finite number or None, got {limit!r}")
        if self.min_bet is not None and self.max_bet is not None and self.min_bet > self.max_bet:
            raise InvalidConfiguration("Minimum bet exceeds maximum bet")
        if self.max_splits is not None and (not _is_count(self.max_splits) or self.max_splits < 0):
            raise InvalidConfiguration(f"Max splits must be a non-negative integer or None, got {self.max_splits!r}")
        for name in ('dealer_hits_soft_17', 'insurance_offered', 'allow_double_after_split', 'allow_split_aces'):
            if not isinstance(getattr(self, name), bool):
                raise InvalidConfiguration(f"{name} must be True or False, got {getattr(self, name)!r}")

    @property
    def infinite_shoe(self) -> bool:
        return self.number_of_decks is None


@dataclass(frozen=True)
class Card:
    suit: str
    rank: str

    def __str__(self):
        return f"{self.rank}{self.suit}"

    @property
    def is_ace(self) -> bool:
        return self.rank == 'A'

    def get_value(self) -> int:
        if self.rank in ['J', 'Q', 'K']:
            return 10
        elif self.rank == 'A':
            return 11
        return int(self.rank)


class Shoe:
    """Card supply for a session.

    A finite shoe holds ``number_of_decks`` full decks. Cards dealt in the
    current round stay ``in_play`` until the next round collects them onto the
    discard pile; a shoe that runs dry mid-round reshuffles only the discards.
    An infinite shoe draws with replacement from a single deck's rank
    distribution. Each shoe owns its random generator.
    """

    def __init__(self, rules: BlackjackRules, rng: Optional[random.Random] = None):
        self.rules = rules
        self.rng = rng or random.Random()
        self.cards: List[Card] = []
        self.in_play: List[Card] = []
        self.discard_pile: List[Card] = []
        self.cards_drawn = 0
        self.shuffle()

    @property
    def infinite(self) -> bool:
        return self.rules.infinite_shoe

    @property
    def size(self) -> Optional[int]:
        if self.infinite:
            return None
        return self.rules.number_of_decks * CARDS_PER_DECK

    def shuffle(self):
        """Put every card back and shuffle; only called between rounds"""
        self.cards_drawn = 0
        self.in_play.clear()
        self.discard_pile.clear()
        if self.infinite:
            return
        self.cards = [Card(suit, rank) for _ in range(self.rules.number_of_decks)
                      for suit in SUITS for rank in RANKS]
        self.rng.shuffle(self.cards)
        logger.debug(f"Shoe reshuffled. {len(self.cards)} cards in play.")

    def collect(self):
        """Move the previous round's cards to the discard pile"""
        self.discard_pile.extend(self.in_play)
        self.in_play.clear()

    def _reshuffle_discards(self):
        if not self.discard_pile:
            raise ShoeExhausted("Every card in the shoe is on the table")
        self.cards = self.discard_pile
        self.discard_pile = []
        self.rng.shuffle(self.cards)
        self.cards_drawn = len(self.in_play)
        logger.debug(f"Shoe exhausted mid-round, reshuffled {len(self.cards)} discards")

    def needs_shuffle(self) -> bool:
        if self.infinite:
            return False
        return self.cards_drawn / self.size >= self.rules.deck_penetration

    def _take(self) -> Card:
        if not self.cards:
            raise ShoeExhausted("No cards left in the shoe")
        return self.cards.pop()

    def draw(self) -> Card:
        if self.infinite:
            card = Card(self.rng.choice(SUITS), self.rng.choice(RANKS))
        else:
            try:
                card = self._take()
            except ShoeExhausted:
                self._reshuffle_discards()
                card = self._take()
            self.in_play.append(card)
        self.cards_drawn += 1
        return card

    def cards_remaining(self) -> Optional[int]:
        if self.infinite:
            return None
        return len(self.cards)


def hand_value(cards: Iterable[Card]) -> Tuple[int, bool]:
    """Best total for a set of cards and whether it is soft.

    Every Ace starts at 1; at most one can be raised to 11 without busting, and
    raising it whenever possible gives the highest total that does not exceed
    21 (or the lowest total if the hand is bust anyway).
    """
    total = 0
    aces = 0
    for card in cards:
        if card.is_ace:
            aces += 1
            total += 1
        else:
            total += card.get_value()
    if aces and total + 10 <= 21:
        return total + 10, True
    return total, False


class Hand:
    def __init__(self, bet: Fraction = Fraction(0), cards: Optional[List[Card]] = None, is_split: bool = False):
        self.cards: List[Card] = list(cards or [])
        self.bet = Fraction(bet)
        self.original_bet = self.bet
        self.status = HandStatus.ACTIVE
        self.is_split = is_split
        self.is_doubled = False
        self.decisions = 0

    def add_card(self, card: Card):
        self.cards.append(card)

    def get_value(self) -> Tuple[int, bool]:
        return hand_value(self.cards)

    @property
    def total(self) -> int:
        return self.get_value()[0]

    def is_soft(self) -> bool:
        return self.get_value()[1]

    def is_blackjack(self) -> bool:
        # Only original non-split hands can have blackjack
        return len(self.cards) == 2 and self.total == 21 and not self.is_split

    def is_busted(self) -> bool:
        return self.total > 21

    def is_pair(self) -> bool:
        return len(self.cards) == 2 and self.cards[0].get_value() == self.cards[1].get_value()

    def is_done(self) -> bool:
        return self.status is not HandStatus.ACTIVE

    def __str__(self):
        total, soft = self.get_value()
        label = f"{'soft ' if soft else ''}{total}"
        return f"{' '.join(str(card) for card in self.cards)} ({label}, {self.status.value})"


@dataclass(frozen=True)
class HandView:
    cards: Tuple[Card, ...]
    bet: Fraction
    status: HandStatus
    total: int
    soft: bool
    is_pair: bool
    is_split: bool
    decisions: int


@dataclass(frozen=True)
class RoundView:
    """Everything a decision policy or a frontend is allowed to see"""
    state: RoundState
    rules: BlackjackRules
    hands: Tuple[HandView, ...]
    hand_index: int
    dealer_cards: Tuple[Card, ...]
    dealer_upcard: Optional[Card]
    chips: Fraction
    insurance_bet: Fraction
    legal_moves: Tuple[Move, ...]

    @property
    def current_hand(self) -> Optional[HandView]:
        if self.state is RoundState.PLAYER_TURN:
            return self.hands[self.hand_index]
        if self.state in (RoundState.EARLY_SURRENDER, RoundState.INSURANCE):
            return self.hands[0]
        return None

    @property
    def default_move(self) -> Optional[Move]:
        """STAND during the player turn, DECLINE while an offer is open"""
        return self.legal_moves[0] if self.legal_moves else None


@dataclass
class HandOutcome:
    result: GameResult
    bet: Fraction
    payout: Fraction
    busted: bool = False

    @property
    def net(self) -> Fraction:
        return self.payout - self.bet


@dataclass
class RoundResult:
    hand_results: List[HandOutcome]
    insurance_bet: Fraction
    insurance_net: Fraction
    total_win_loss: Fraction
    initial_bet: Fraction
    total_wagered: Fraction
    starting_chips: Fraction
    final_chips: Fraction
    dealer_hand: str
    dealer_blackjack: bool
    dealer_busted: bool
    player_hands: List[str]
    splits: int = 0
    doubles: int = 0

    @property
    def additional_wagered(self) -> Fraction:
        return self.total_wagered - self.initial_bet


def requires_state(*states: RoundState):
    """Reject a round operation unless the round is in one of ``states``"""
    def decorator(f):
        @wraps(f)
        def wrapper(self, *args, **kwargs):
            if self.state not in states:
                raise IllegalAction(f"{f.__name__} is not allowed while the round is in {self.state.name}")
            return f(self, *args, **kwargs)
        return wrapper
    return decorator


class DecisionPolicy(Protocol):
    def decide(self, view: RoundView) -> Move:
        ...


class Round:
    """One round of blackjack from the bet to settlement.

    The chip balance comes in through the constructor and leaves through the
    result, so a round touches no state other than its shoe.
    """

    def __init__(self, rules: BlackjackRules, shoe: Shoe, chips: Union[int, float, Fraction]):
        self.rules = rules
        self.shoe = shoe
        self.starting_chips = exact_amount(chips)
        self.chips = self.starting_chips
        self.dealer_hand = Hand()
        self.hands: List[Hand] = []
        self.hand_index = 0
        self.insurance_bet = Fraction(0)
        self.hole_card_revealed = False
        self.early_surrender_offered = False
        self.state = RoundState.BETTING
        self.result: Optional[RoundResult] = None

    @property
    def current_hand(self) -> Hand:
        return self.hands[self.hand_index]

    def get_dealer_upcard(self) -> Optional[Card]:
        return self.dealer_hand.cards[0] if self.dealer_hand.cards else None

    @requires_state(RoundState.BETTING)
    def place_bet(self, amount: Union[int, float, Fraction]) -> RoundState:
        try:
            amount = exact_amount(amount)
        except (TypeError, ValueError, OverflowError):
            raise IllegalAction(f"Bet must be a finite number, got {amount!r}") from None
        if amount <= 0:
            raise IllegalAction(f"Bet must be positive, got {float(amount)}")
        if self.rules.min_bet is not None and amount < self.rules.min_bet:
            raise IllegalAction(f"Bet must be at least {float(self.rules.min_bet):.2f}")
        if self.rules.max_bet is not None and amount > self.rules.max_bet:
            raise IllegalAction(f"Bet must be at most {float(self.rules.max_bet):.2f}")
        if amount > self.chips:
            raise InsufficientFunds(f"Bet of {float(amount):.2f} exceeds balance of {float(self.chips):.2f}")

        self.chips -= amount
        self.hands.append(Hand(bet=amount))
        self.state = RoundState.DEALING
        self._deal_initial_cards()
        return self.state

    def _deal_initial_cards(self):
        self.shoe.collect()
        hand = self.hands[0]
        # Deal cards alternately, the dealer's second card is the hole card
        for _ in range(2):
            hand.add_card(self.shoe.draw())
            self.dealer_hand.add_card(self.shoe.draw())
        if hand.is_blackjack():
            hand.status = HandStatus.BLACKJACK

        if self._dealer_may_have_blackjack():
            if self.rules.surrender is SurrenderMode.EARLY and hand.status is HandStatus.ACTIVE:
                self.state = RoundState.EARLY_SURRENDER
            elif self._insurance_available():
                self.state = RoundState.INSURANCE
            else:
                self._peek_for_blackjack()
        else:
            self._start_player_turn()

    def _dealer_may_have_blackjack(self) -> bool:
        return self.get_dealer_upcard().get_value() >= 10

    def _insurance_available(self) -> bool:
        return self.rules.insurance_offered and self.get_dealer_upcard().is_ace

    def _peek_for_blackjack(self):
        if self.dealer_hand.is_blackjack():
            self._finish_round()
        else:
            self._start_player_turn()

    def _start_player_turn(self):
        self.hand_index = 0
        if self.hands[0].is_done():
            self._finish_round()
        else:
            self.state = RoundState.PLAYER_TURN

    def _advance(self):
        while self.hand_index < len(self.hands) and self.current_hand.is_done():
            self.hand_index += 1
        if self.hand_index >= len(self.hands):
            self._finish_round()

    def _check_hand_done(self, hand: Hand):
        total = hand.total
        if total > 21:
            hand.status = HandStatus.BUSTED
        elif total == 21:
            hand.status = HandStatus.STOOD

    def can_double(self, hand: Hand) -> bool:
        return (len(hand.cards) == 2 and
                hand.decisions == 0 and
                not hand.is_doubled and
                (not hand.is_split or self.rules.allow_double_after_split))

    def can_split(self, hand: Hand) -> bool:
        if not hand.is_pair() or hand.decisions > 0:
            return False
        if hand.cards[0].is_ace and not self.rules.allow_split_aces:
            return False
        splits_made = len(self.hands) - 1
        return self.rules.max_splits is None or splits_made < self.rules.max_splits

    def can_surrender(self, hand: Hand) -> bool:
        if self.rules.surrender is SurrenderMode.NONE or self.early_surrender_offered:
            return False
        return (hand is self.hands[0] and
                len(self.hands) == 1 and
                len(hand.cards) == 2 and
                hand.decisions == 0)

    def get_valid_moves(self) -> List[Move]:
        """Legal moves in the current state, safe default first"""
        if self.state is RoundState.EARLY_SURRENDER:
            return [Move.DECLINE, Move.SURRENDER]
        if self.state is RoundState.INSURANCE:
            moves = [Move.DECLINE]
            if self.chips >= self.hands[0].bet / 2:
                moves.append(Move.INSURANCE)
            return moves
        if self.state is not RoundState.PLAYER_TURN:
            return []

        hand = self.current_hand
        moves = [Move.STAND, Move.HIT]
        if self.can_double(hand) and self.chips >= hand.bet:
            moves.append(Move.DOUBLE)
        if self.can_split(hand) and self.chips >= hand.bet:
            moves.append(Move.SPLIT)
        if self.can_surrender(hand):
            moves.append(Move.SURRENDER)
        return moves

    @requires_state(RoundState.PLAYER_TURN)
    def hit(self):
        hand = self.current_hand
        hand.decisions += 1
        hand.add_card(self.shoe.draw())
        self._check_hand_done(hand)
        self._advance()

    @requires_state(RoundState.PLAYER_TURN)
    def stand(self):
        hand = self.current_hand
        hand.decisions += 1
        hand.status = HandStatus.STOOD
        self._advance()

    @requires_state(RoundState.PLAYER_TURN)
    def double_down(self):
        hand = self.current_hand
        if not self.can_double(hand):
            raise IllegalAction("Double down is only allowed as the first decision on two cards")
        if self.chips < hand.bet:
            raise InsufficientFunds(f"Doubling needs {float(hand.bet):.2f}, balance is {float(self.chips):.2f}")

        self.chips -= hand.bet
        hand.bet *= 2
        hand.is_doubled = True
        hand.decisions += 1
        hand.add_card(self.shoe.draw())
        hand.status = HandStatus.BUSTED if hand.is_busted() else HandStatus.DOUBLED_DOWN
        self._advance()

    @requires_state(RoundState.PLAYER_TURN)
    def split(self):
        hand = self.current_hand
        if not self.can_split(hand):
            raise IllegalAction("Only an undecided pair of equal value can be split")
        if self.chips < hand.bet:
            raise InsufficientFunds(f"Splitting needs {float(hand.bet):.2f}, balance is {float(self.chips):.2f}")

        self.chips -= hand.bet
        new_hand = Hand(bet=hand.bet, cards=[hand.cards.pop()], is_split=True)
        hand.is_split = True
        hand.add_card(self.shoe.draw())
        new_hand.add_card(self.shoe.draw())
        self.hands.append(new_hand)
        for h in (hand, new_hand):
            self._check_hand_done(h)
        self._advance()

    def surrender(self):
        if self.state is RoundState.EARLY_SURRENDER:
            self.early_surrender_offered = True
            self.hands[0].status = HandStatus.SURRENDERED
            self._finish_round()
            return
        if self.state is not RoundState.PLAYER_TURN:
            raise IllegalAction(f"surrender is not allowed while the round is in {self.state.name}")
        hand = self.current_hand
        if not self.can_surrender(hand):
            raise IllegalAction("Surrender is only allowed as the first decision of the original hand")
        hand.decisions += 1
        hand.status = HandStatus.SURRENDERED
        self._advance()

    @requires_state(RoundState.INSURANCE)
    def place_insurance(self):
        amount = self.hands[0].bet / 2
        if self.chips < amount:
            raise InsufficientFunds(f"Insurance needs {float(amount):.2f}, balance is {float(self.chips):.2f}")
        self.chips -= amount
        self.insurance_bet = amount
        self._peek_for_blackjack()

    @requires_state(RoundState.EARLY_SURRENDER, RoundState.INSURANCE)
    def decline(self):
        if self.state is RoundState.EARLY_SURRENDER:
            self.early_surrender_offered = True
            if self._insurance_available():
                self.state = RoundState.INSURANCE
                return
        self._peek_for_blackjack()

    def apply_action(self, move: Move) -> RoundState:
        handlers = {
            Move.HIT: self.hit,
            Move.STAND: self.stand,
            Move.DOUBLE: self.double_down,
            Move.SPLIT: self.split,
            Move.SURRENDER: self.surrender,
            Move.INSURANCE: self.place_insurance,
            Move.DECLINE: self.decline,
        }
        try:
            handler = handlers[Move(move)]
        except ValueError:
            raise IllegalAction(f"Unknown move: {move!r}") from None
        handler()
        return self.state

    def play(self, policy: DecisionPolicy) -> RoundResult:
        """Let ``policy`` make every decision until the round is settled"""
        while self.state is not RoundState.DONE:
            self.apply_action(policy.decide(self.view()))
        return self.result

    def _needs_dealer_play(self) -> bool:
        return any(h.status in (HandStatus.STOOD, HandStatus.DOUBLED_DOWN) for h in self.hands)

    def play_dealer_hand(self):
        while True:
            value, is_soft = self.dealer_hand.get_value()
            if value > 17:
                break
            if value == 17 and not (is_soft and self.rules.dealer_hits_soft_17):
                break
            self.dealer_hand.add_card(self.shoe.draw())

    def _finish_round(self):
        self.state = RoundState.DEALER_TURN
        self.hole_card_revealed = True
        if self.dealer_hand.is_blackjack():
            self.dealer_hand.status = HandStatus.BLACKJACK
        elif self._needs_dealer_play():
            self.play_dealer_hand()
            self.dealer_hand.status = HandStatus.BUSTED if self.dealer_hand.is_busted() else HandStatus.STOOD
        else:
            self.dealer_hand.status = HandStatus.STOOD
        self._settle()

    def resolve_hand(self, hand: Hand) -> HandOutcome:
        """Work out the result and the amount returned to the player for a hand"""
        dealer_blackjack = self.dealer_hand.is_blackjack()
        if hand.status is HandStatus.SURRENDERED:
            return HandOutcome(GameResult.SURRENDER, hand.bet, hand.bet / 2)
        if hand.status is HandStatus.BUSTED:
            return HandOutcome(GameResult.LOSE, hand.bet, Fraction(0), busted=True)
        if hand.status is HandStatus.BLACKJACK:
            if dealer_blackjack:
                return HandOutcome(GameResult.PUSH, hand.bet, hand.bet)
            return HandOutcome(GameResult.BLACKJACK, hand.bet, hand.bet * (1 + self.rules.blackjack_payout))
        if dealer_blackjack:
            return HandOutcome(GameResult.LOSE, hand.bet, Fraction(0))
        if self.dealer_hand.is_busted():
            return HandOutcome(GameResult.WIN, hand.bet, hand.bet * 2)

        player_value = hand.total
        dealer_value = self.dealer_hand.total
        if player_value > dealer_value:
            return HandOutcome(GameResult.WIN, hand.bet, hand.bet * 2)
        elif player_value < dealer_value:
            return HandOutcome(GameResult.LOSE, hand.bet, Fraction(0))
        return HandOutcome(GameResult.PUSH, hand.bet, hand.bet)

    def _settle(self):
        self.state = RoundState.SETTLEMENT
        outcomes = [self.resolve_hand(hand) for hand in self.hands]
        dealer_blackjack = self.dealer_hand.is_blackjack()

        insurance_payout = Fraction(0)
        if self.insurance_bet and dealer_blackjack:
            insurance_payout = self.insurance_bet * (1 + INSURANCE_PAYOUT)
        insurance_net = insurance_payout - self.insurance_bet

        self.chips += sum(outcome.payout for outcome in outcomes) + insurance_payout
        total_bet = sum(hand.bet for hand in self.hands)
        self.result = RoundResult(
            hand_results=outcomes,
            insurance_bet=self.insurance_bet,
            insurance_net=insurance_net,
            total_win_loss=sum(outcome.net for outcome in outcomes) + insurance_net,
            initial_bet=self.hands[0].original_bet,
            total_wagered=total_bet + self.insurance_bet,
            starting_chips=self.starting_chips,
            final_chips=self.chips,
            dealer_hand=str(self.dealer_hand),
            dealer_blackjack=dealer_blackjack,
            dealer_busted=self.dealer_hand.is_busted(),
            player_hands=[str(hand) for hand in self.hands],
            splits=len(self.hands) - 1,
            doubles=sum(1 for hand in self.hands if hand.is_doubled),
        )
        self.state = RoundState.DONE

    def view(self) -> RoundView:
        if self.hole_card_revealed:
            dealer_cards = tuple(self.dealer_hand.cards)
        else:
            dealer_cards = tuple(self.dealer_hand.cards[:1])
        hands = []
        for hand in self.hands:
            total, soft = hand.get_value()
            hands.append(HandView(
                cards=tuple(hand.cards),
                bet=hand.bet,
                status=hand.status,
                total=total,
                soft=soft,
                is_pair=hand.is_pair(),
                is_split=hand.is_split,
                decisions=hand.decisions,
            ))
        return RoundView(
            state=self.state,
            rules=self.rules,
            hands=tuple(hands),
            hand_index=min(self.hand_index, max(len(self.hands) - 1, 0)),
            dealer_cards=dealer_cards,
            dealer_upcard=self.get_dealer_upcard(),
            chips=self.chips,
            insurance_bet=self.insurance_bet,
            legal_moves=tuple(self.get_valid_moves()),
        )


class InteractivePolicy:
    """Decision policy fed by an external source such as a terminal or GUI.

    ``prompt`` receives the current view and returns a move; anything that is
    not legal right now is replaced by the view's safe default.
    """

    def __init__(self, prompt: Callable[[RoundView], Optional[Move]]):
        self.prompt = prompt

    def decide(self, view: RoundView) -> Move:
        move = self.prompt(view)
        if move in view.legal_moves:
            return move
        logger.debug(f"Ignoring {move} in {view.state.name}, using {view.default_move}")
        return view.default_move


class Blackjack:
    """A player's session at the table: one shoe, one chip balance.

    This is the round-driving surface frontends use. Only one round can be in
    progress at a time and the balance is updated when a round is settled.
    """

    def __init__(self, rules: Optional[BlackjackRules] = None, rng: Optional[random.Random] = None,
                 chips: Optional[Union[int, float, Fraction]] = None):
        self.rules = rules or BlackjackRules()
        self.shoe = Shoe(self.rules, rng)
        self.chips = exact_amount(self.rules.starting_chips if chips is None else chips)
        self.active_round: Optional[Round] = None

    def start_round(self, bet_amount: Union[int, float, Fraction]) -> Round:
        """Start a round by placing a bet and dealing the initial cards"""
        if self.active_round is not None and self.active_round.state is not RoundState.DONE:
            raise IllegalAction("Previous round not complete")
        if self.shoe.needs_shuffle():
            self.shoe.shuffle()

        round_ = Round(self.rules, self.shoe, self.chips)
        round_.place_bet(bet_amount)
        self.active_round = round_
        self._sync(round_)
        return round_

    def apply_action(self, round_: Round, move: Move) -> RoundState:
        if round_ is not self.active_round:
            raise IllegalAction("Round does not belong to this session")
        state = round_.apply_action(move)
        self._sync(round_)
        return state

    def current_state(self, round_: Round) -> RoundView:
        return round_.view()

    def play_round(self, bet_amount: float, policy: DecisionPolicy) -> RoundResult:
        round_ = self.start_round(bet_amount)
        result = round_.play(policy)
        self._sync(round_)
        return result

    def abandon_round(self):
        """Drop an unfinished round; its bets never reach the session balance"""
        self.active_round = None

    def _sync(self, round_: Round):
        if round_.state is RoundState.DONE:
            self.chips = round_.result.final_chips
