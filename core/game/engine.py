"""Blackjack game engine with state machine."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from random import Random
from typing import Any, Callable, Iterator, Mapping

from transitions import Machine

from core.cards import Card, Shoe
from core.dealer import DealerFrame, DealerPolicy
from core.errors import GameError, IllegalTransition, InsufficientBalance, InvalidAmount
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.snapshot import GameSnapshot
from core.game.state import GameState
from core.hand import Hand, Outcome, evaluate_hands
from core.history import RoundHistory
from core.ledger import Asset, Ledger, parse_amount
from core.rules import RuleSet

logger = logging.getLogger(__name__)

RESULT_MESSAGES = {
    Outcome.WIN: "You Win!",
    Outcome.BLACKJACK: "Blackjack! You Win!",
    Outcome.PUSH: "Push - Tie Game",
    Outcome.LOSE: "Dealer Wins",
}


@dataclass
class RoundState:
    """Hands and stake of the round being played."""

    bet: Decimal
    player_hand: Hand = field(default_factory=Hand)
    dealer_hand: Hand = field(default_factory=Hand)
    dealer_revealed: bool = False
    can_double: bool = True
    is_doubled: bool = False
    outcome: Outcome | None = None
    payout: Decimal | None = None
    dealer_frames: tuple[DealerFrame, ...] = ()

    @property
    def visible_dealer_cards(self) -> tuple[Card, ...]:
        """Dealer cards the player may see."""
        if self.dealer_revealed:
            return tuple(self.dealer_hand.cards)
        return tuple(self.dealer_hand.cards[:1])


class BlackjackGame:
    """
    One player's session: shoe, round, ledger and history.

    This is the core game logic, completely UI-agnostic. Commands return a
    fresh GameSnapshot or raise a GameError before touching any state.
    """

    # State machine states
    STATES = [s.name.lower() for s in GameState]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "start_round", "source": "betting", "dest": "player_turn"},
        {"trigger": "settle_natural", "source": "betting", "dest": "settled"},
        {"trigger": "player_action", "source": "player_turn", "dest": "player_turn"},
        {"trigger": "player_busts", "source": "player_turn", "dest": "settled"},
        {"trigger": "player_done", "source": "player_turn", "dest": "dealer_turn"},
        {"trigger": "dealer_done", "source": "dealer_turn", "dest": "settled"},
        {"trigger": "clear_table", "source": "settled", "dest": "betting"},
    ]

    def __init__(
        self,
        rules: RuleSet | None = None,
        prices: Mapping[Asset, Decimal] | None = None,
        asset: Asset | str = Asset.BTC,
        bet: Decimal | None = None,
        shoe: Shoe | None = None,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a new session.

        Args:
            rules: Table rules (uses defaults if not provided)
            prices: USD price per asset for display conversions
            asset: Initially selected asset
            bet: Initial table bet (defaults to the minimum bet)
            shoe: Pre-built shoe, e.g. a stacked one for replays
            rng: Random number generator for reproducible games
        """
        self.rules = rules or RuleSet()
        self.shoe = shoe or Shoe(
            num_decks=self.rules.num_decks,
            reshoe_threshold=self.rules.reshoe_threshold,
            rng=rng,
        )
        self.ledger = Ledger(prices=prices, wager_multiplier=self.rules.wager_multiplier)
        self.history = RoundHistory(limit=self.rules.history_limit)
        self.dealer = DealerPolicy(stand_on=self.rules.dealer_stands_on)
        self.events = EventEmitter()

        self._asset = Asset.parse(asset)
        self._bet = bet if bet is not None else self.rules.min_bet
        self.round: RoundState | None = None
        self._message = ""

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="betting",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    # Queries

    @property
    def state(self) -> GameState:
        """Get current game state as enum."""
        return GameState[self._machine_state.upper()]  # type: ignore

    @property
    def asset(self) -> Asset:
        return self._asset

    @property
    def bet(self) -> Decimal:
        """The table bet staked by the next deal."""
        return self._bet

    @property
    def balance(self) -> Decimal:
        """Balance of the selected asset."""
        return self.ledger.balance(self._asset)

    @property
    def balances(self) -> dict[Asset, Decimal]:
        return self.ledger.balances

    def wager_remaining(self, asset: Asset | str | None = None) -> Decimal:
        """Stake still required before ``asset`` (default: selected) can be withdrawn."""
        return self.ledger.wager_remaining(Asset.parse(asset) if asset else self._asset)

    @property
    def message(self) -> str:
        return self._message

    @property
    def outcome(self) -> Outcome | None:
        return self.round.outcome if self.round else None

    @property
    def can_deal(self) -> bool:
        return self.state == GameState.BETTING and self._bet <= self.balance

    @property
    def can_hit(self) -> bool:
        return self.state == GameState.PLAYER_TURN

    @property
    def can_stand(self) -> bool:
        return self.state == GameState.PLAYER_TURN

    @property
    def can_double(self) -> bool:
        """Check if doubling is allowed and affordable."""
        if self.state != GameState.PLAYER_TURN or self.round is None:
            return False
        return self.round.can_double and self.round.bet <= self.balance

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to game events."""
        self.events.subscribe(handler, event_type)

    def unsubscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Remove a handler added with subscribe."""
        self.events.unsubscribe(handler, event_type)

    def snapshot(self) -> GameSnapshot:
        """Capture the current table as an immutable view."""
        current = self.round
        if current is None:
            player_cards: tuple[Card, ...] = ()
            dealer_cards: tuple[Card, ...] = ()
            hidden = 0
        else:
            player_cards = tuple(current.player_hand.cards)
            dealer_cards = current.visible_dealer_cards
            hidden = len(current.dealer_hand) - len(dealer_cards)

        return GameSnapshot(
            state=self.state,
            asset=self._asset,
            bet=self._bet,
            round_bet=current.bet if current else None,
            balances=self.ledger.balances,
            wager_remaining={a: self.ledger.wager_remaining(a) for a in Asset},
            player_cards=player_cards,
            player_value=Hand.of(player_cards).value,
            dealer_cards=dealer_cards,
            dealer_hidden=hidden,
            dealer_value=Hand.of(dealer_cards).value,
            dealer_frames=current.dealer_frames if current else (),
            can_deal=self.can_deal,
            can_hit=self.can_hit,
            can_stand=self.can_stand,
            can_double=self.can_double,
            message=self._message,
            outcome=current.outcome if current else None,
            payout=current.payout if current else None,
            shoe_remaining=self.shoe.cards_remaining,
            history=tuple(self.history.entries),
        )

    # Table and cashier commands

    def select_asset(self, asset: Asset | str) -> GameSnapshot:
        """Switch the asset the next round is played in."""
        with self._validating("select asset"):
            selected = Asset.parse(asset)
            if self.state.in_round:
                raise IllegalTransition("change asset", str(self.state))

        self._asset = selected
        self.events.emit_new(EventType.ASSET_SELECTED, asset=str(selected))
        return self.snapshot()

    def deposit(self, asset: Asset | str, amount: Any) -> GameSnapshot:
        """Credit a deposit to ``asset``."""
        with self._validating("deposit"):
            target = Asset.parse(asset)
            value = self.ledger.deposit(target, amount)

        self.events.emit_new(
            EventType.DEPOSIT,
            asset=str(target),
            amount=str(value),
            balance=str(self.ledger.balance(target)),
        )
        return self.snapshot()

    def withdraw(self, asset: Asset | str, amount: Any, destination: str | None) -> GameSnapshot:
        """Withdraw from ``asset`` once its wager requirement is met."""
        with self._validating("withdraw"):
            target = Asset.parse(asset)
            value = self.ledger.withdraw(target, amount, destination)

        self.events.emit_new(
            EventType.WITHDRAWAL,
            asset=str(target),
            amount=str(value),
            destination=destination,
            balance=str(self.ledger.balance(target)),
        )
        return self.snapshot()

    def set_bet(self, amount: Any) -> GameSnapshot:
        """Set the table bet, clamped to [min bet, balance]."""
        with self._validating("change bet"):
            self._require_state("change bet", GameState.BETTING)
            value = parse_amount(amount, "bet")
        return self._change_bet(min(value, self.balance))

    def halve_bet(self) -> GameSnapshot:
        """Halve the table bet, never below the minimum."""
        with self._validating("change bet"):
            self._require_state("change bet", GameState.BETTING)
        return self._change_bet(self._bet / 2)

    def double_bet(self) -> GameSnapshot:
        """Double the table bet, capped at the balance."""
        with self._validating("change bet"):
            self._require_state("change bet", GameState.BETTING)
        return self._change_bet(min(self.balance, self._bet * 2))

    def _change_bet(self, amount: Decimal) -> GameSnapshot:
        self._bet = max(self.rules.min_bet, amount)
        self.events.emit_new(EventType.BET_CHANGED, bet=str(self._bet), asset=str(self._asset))
        return self.snapshot()

    # Round commands

    def deal(self) -> GameSnapshot:
        """
        Stake the table bet and deal a new round.

        A player natural settles immediately: push against a dealer natural,
        blackjack otherwise.
        """
        with self._validating("deal"):
            self._require_state("deal", GameState.BETTING)
            if self._bet <= 0:
                raise InvalidAmount("Please enter a valid bet amount.")
            self.ledger.ensure_available(
                self._asset, self._bet, "You don't have enough balance for this bet."
            )

        bet = self._bet
        self.ledger.debit(self._asset, bet)
        logger.debug("Dealing round: %s %s staked", bet, self._asset)

        if self.shoe.reshoe_if_needed():
            self.events.emit_new(EventType.SHOE_SHUFFLED, cards=self.shoe.cards_remaining)

        self.round = RoundState(bet=bet)
        self._message = ""
        player_hand = self.round.player_hand
        dealer_hand = self.round.dealer_hand

        self._deal_card_to_hand(player_hand)
        self._deal_card_to_hand(player_hand)
        self._deal_card_to_hand(dealer_hand)
        self._deal_card_to_hand(dealer_hand, face_up=False)

        self.events.emit_new(EventType.ROUND_STARTED, bet=str(bet), asset=str(self._asset))

        if player_hand.is_blackjack:
            self.events.emit_new(EventType.PLAYER_BLACKJACK)
            self._reveal_hole_card()
            self.settle_natural()
            outcome = Outcome.PUSH if dealer_hand.is_blackjack else Outcome.BLACKJACK
            return self._settle(outcome)

        self.start_round()
        return self.snapshot()

    def hit(self) -> GameSnapshot:
        """Player takes another card; a bust settles the round at once."""
        with self._validating("hit"):
            self._require_state("hit", GameState.PLAYER_TURN)

        assert self.round is not None
        hand = self.round.player_hand
        self._deal_card_to_hand(hand)
        self.round.can_double = False
        self.events.emit_new(EventType.PLAYER_HIT, hand_value=hand.value)

        if hand.is_busted:
            return self._player_bust()

        self.player_action()
        return self.snapshot()

    def stand(self) -> GameSnapshot:
        """Player keeps the current hand; the dealer plays out."""
        with self._validating("stand"):
            self._require_state("stand", GameState.PLAYER_TURN)

        assert self.round is not None
        self.events.emit_new(EventType.PLAYER_STAND, hand_value=self.round.player_hand.value)
        self.player_done()
        return self._play_dealer()

    def double(self) -> GameSnapshot:
        """Double the stake, take exactly one card, then stand."""
        with self._validating("double"):
            self._require_state("double", GameState.PLAYER_TURN)
            assert self.round is not None
            if not self.round.can_double:
                raise IllegalTransition("double", "after a hit")
            self.ledger.ensure_available(
                self._asset,
                self.round.bet,
                "You don't have enough balance to double down.",
            )

        current = self.round
        self.ledger.debit(self._asset, current.bet)
        current.bet *= 2
        current.is_doubled = True
        current.can_double = False

        hand = current.player_hand
        self._deal_card_to_hand(hand)
        self.events.emit_new(
            EventType.PLAYER_DOUBLE,
            hand_value=hand.value,
            new_bet=str(current.bet),
        )

        if hand.is_busted:
            return self._player_bust()

        self.player_done()
        return self._play_dealer()

    def play_again(self) -> GameSnapshot:
        """Clear a settled round and return to betting. No-op while betting."""
        if self.state == GameState.BETTING:
            return self.snapshot()

        with self._validating("play again"):
            self._require_state("play again", GameState.SETTLED)

        self.round = None
        self._message = ""
        self.clear_table()
        self.events.emit_new(EventType.ROUND_CLEARED)
        return self.snapshot()

    # Internals

    @contextmanager
    def _validating(self, action: str) -> Iterator[None]:
        """Report rejected commands as events before re-raising them."""
        try:
            yield
        except GameError as exc:
            event_type = (
                EventType.INSUFFICIENT_FUNDS
                if isinstance(exc, InsufficientBalance)
                else EventType.INVALID_ACTION
            )
            self.events.emit_new(
                event_type,
                action=action,
                error=type(exc).__name__,
                message=exc.message,
            )
            logger.warning("Rejected %s: %s", action, exc.message)
            raise

    def _require_state(self, action: str, *states: GameState) -> None:
        if self.state not in states:
            raise IllegalTransition(action, str(self.state))

    def _deal_card_to_hand(self, hand: Hand, face_up: bool = True) -> Card:
        """Deal a card to a hand."""
        assert self.round is not None
        card = self.shoe.draw()
        hand.add_card(card)
        is_dealer = hand is self.round.dealer_hand
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card) if face_up else "??",
            hand="dealer" if is_dealer else "player",
            hand_value=hand.value if face_up and not is_dealer else None,
        )
        return card

    def _reveal_hole_card(self) -> None:
        assert self.round is not None
        self.round.dealer_revealed = True
        dealer_hand = self.round.dealer_hand
        self.events.emit_new(
            EventType.DEALER_REVEALS,
            card=str(dealer_hand.cards[1]),
            hand_value=dealer_hand.value,
        )

    def _player_bust(self) -> GameSnapshot:
        assert self.round is not None
        self.events.emit_new(EventType.PLAYER_BUSTS, hand_value=self.round.player_hand.value)
        self._reveal_hole_card()
        self.player_busts()
        return self._settle(Outcome.LOSE)

    def _play_dealer(self) -> GameSnapshot:
        """Reveal, run the dealer policy to completion and settle."""
        assert self.round is not None
        self._reveal_hole_card()

        dealer_hand = self.round.dealer_hand
        frames = self.dealer.play(dealer_hand, self.shoe)
        for frame in frames[1:]:
            self.events.emit_new(
                EventType.DEALER_HITS,
                card=str(frame[-1]),
                hand_value=Hand.of(frame).value,
            )
        self.round.dealer_frames = frames

        if dealer_hand.is_busted:
            self.events.emit_new(EventType.DEALER_BUSTS, hand_value=dealer_hand.value)
        else:
            self.events.emit_new(EventType.DEALER_STANDS, hand_value=dealer_hand.value)

        self.dealer_done()
        return self._settle(evaluate_hands(self.round.player_hand, dealer_hand))

    def _settle(self, outcome: Outcome) -> GameSnapshot:
        """Pay out, count the stake toward rollover and log the round."""
        assert self.round is not None
        bet = self.round.bet
        payout = self.rules.payout(outcome, bet)

        self.ledger.credit(self._asset, payout)
        self.ledger.record_wager(self._asset, bet)
        entry = self.history.append(outcome, payout - bet)

        self.round.outcome = outcome
        self.round.payout = payout
        self._message = RESULT_MESSAGES[outcome]

        self.events.emit_new(
            EventType.ROUND_SETTLED,
            outcome=outcome.value,
            bet=str(bet),
            payout=str(payout),
            net=str(entry.net),
            balance=str(self.balance),
        )
        logger.info(
            "Round settled: %s, bet %s %s, payout %s",
            outcome.value,
            bet,
            self._asset,
            payout,
        )
        return self.snapshot()
