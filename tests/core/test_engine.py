"""Tests for the round state machine."""

from decimal import Decimal

import pytest
from transitions import MachineError

from conftest import PRICES, make_cards
from core.cards import Shoe
from core.errors import (
    IllegalTransition,
    InsufficientBalance,
    InvalidAmount,
    UnknownAsset,
    WagerRequirementUnmet,
)
from core.game import BlackjackGame, EventType, GameState
from core.hand import Outcome
from core.ledger import Asset


class TestDeal:
    """Tests for dealing a round."""

    def test_deal_debits_bet_and_starts_player_turn(self, stacked_game):
        """The stake leaves the balance as soon as the cards are dealt."""
        game = stacked_game("10S 9H 6D 10C")
        snapshot = game.deal()

        assert snapshot.state == GameState.PLAYER_TURN
        assert snapshot.balance == Decimal("0.009")
        assert snapshot.round_bet == Decimal("0.001")
        assert snapshot.player_value == 19
        assert snapshot.can_hit and snapshot.can_stand and snapshot.can_double

    def test_hole_card_hidden_during_player_turn(self, stacked_game):
        """Only the dealer's up-card is visible before the reveal."""
        game = stacked_game("10S 9H 6D 10C")
        snapshot = game.deal()

        assert [str(c) for c in snapshot.dealer_cards] == ["6♦"]
        assert snapshot.dealer_hidden == 1
        assert snapshot.dealer_value == 6

    def test_player_blackjack_settles_immediately(self, stacked_game):
        """A natural against a non-natural pays 2.5x at once."""
        game = stacked_game("AS KH 9D 7C")
        snapshot = game.deal()

        assert snapshot.state == GameState.SETTLED
        assert snapshot.outcome == Outcome.BLACKJACK
        assert snapshot.payout == Decimal("0.0025")
        assert snapshot.balance == Decimal("0.0115")
        assert snapshot.dealer_hidden == 0
        assert snapshot.message == "Blackjack! You Win!"

    def test_both_naturals_push(self, stacked_game):
        """Player and dealer naturals push and return the stake."""
        game = stacked_game("AS KH AD QC")
        snapshot = game.deal()

        assert snapshot.outcome == Outcome.PUSH
        assert snapshot.balance == Decimal("0.01")
        assert snapshot.dealer_hidden == 0

    def test_dealer_natural_alone_does_not_end_round(self, stacked_game):
        """Without a player natural the round goes on to the player's turn."""
        game = stacked_game("10S 9H AD KC")
        assert game.deal().state == GameState.PLAYER_TURN

    def test_deal_with_insufficient_balance(self, stacked_game):
        """A bet above the balance is refused and nothing changes."""
        game = stacked_game("10S 9H 6D 10C", balance=None)
        remaining = game.shoe.cards_remaining

        with pytest.raises(InsufficientBalance):
            game.deal()

        assert game.state == GameState.BETTING
        assert game.round is None
        assert game.shoe.cards_remaining == remaining

    def test_deal_outside_betting(self, stacked_game):
        """A second deal during a round is an illegal transition."""
        game = stacked_game("10S 9H 6D 10C")
        game.deal()
        with pytest.raises(IllegalTransition):
            game.deal()

    def test_deal_reshoes_depleted_shoe(self):
        """A shoe with fewer than 52 cards is replaced before dealing."""
        game = BlackjackGame(shoe=Shoe.stacked(make_cards("10S 9H 6D 10C")))
        game.deposit(Asset.BTC, "0.01")
        events = []
        game.subscribe(events.append, EventType.SHOE_SHUFFLED)

        snapshot = game.deal()

        assert len(events) == 1
        assert snapshot.shoe_remaining == 312 - 4

    def test_shoe_persists_across_rounds(self, game):
        """Play again does not reshoe; the next round keeps drawing."""
        game.deal()
        if game.state == GameState.PLAYER_TURN:
            game.stand()
        after_round = game.shoe.cards_remaining
        game.play_again()

        assert game.shoe.cards_remaining == after_round
        game.deal()
        assert game.shoe.cards_remaining <= after_round - 4


class TestHit:
    """Tests for hitting."""

    def test_hit_adds_card_and_disables_double(self, stacked_game):
        """After a hit the player may no longer double."""
        game = stacked_game("5S 6H 10D 7C 2D")
        game.deal()
        snapshot = game.hit()

        assert snapshot.state == GameState.PLAYER_TURN
        assert snapshot.player_value == 13
        assert not snapshot.can_double

    def test_bust_settles_without_dealer_play(self, stacked_game):
        """A busted player loses at once; the dealer draws nothing."""
        game = stacked_game("10S 6H 9D 5C KD")
        game.deal()
        snapshot = game.hit()

        assert snapshot.state == GameState.SETTLED
        assert snapshot.outcome == Outcome.LOSE
        assert snapshot.player_value == 26
        assert snapshot.dealer_hidden == 0
        assert len(snapshot.dealer_cards) == 2
        assert snapshot.balance == Decimal("0.009")
        assert snapshot.message == "Dealer Wins"

    def test_hit_while_betting(self, game):
        """Hitting with no round in play is rejected."""
        balance = game.balance
        with pytest.raises(IllegalTransition):
            game.hit()
        assert game.state == GameState.BETTING
        assert game.balance == balance


class TestStand:
    """Tests for standing and dealer play."""

    def test_stand_dealer_busts_player_wins(self, stacked_game):
        """10-9 against a 6 up: dealer draws to a bust and the player is paid 2x."""
        game = stacked_game("10S 9H 6D 10C KH")
        game.deal()
        snapshot = game.stand()

        assert snapshot.state == GameState.SETTLED
        assert snapshot.outcome == Outcome.WIN
        assert snapshot.payout == Decimal("0.002")
        assert snapshot.balance == Decimal("0.011")
        assert snapshot.message == "You Win!"

    def test_stand_push(self, stacked_game):
        """Equal totals return the stake."""
        game = stacked_game("10S 8H 10D 8C")
        game.deal()
        snapshot = game.stand()

        assert snapshot.outcome == Outcome.PUSH
        assert snapshot.balance == Decimal("0.01")
        assert snapshot.message == "Push - Tie Game"

    def test_stand_lose(self, stacked_game):
        """A lower total loses the stake."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        snapshot = game.stand()

        assert snapshot.outcome == Outcome.LOSE
        assert snapshot.balance == Decimal("0.009")

    def test_dealer_stands_on_soft_17(self, stacked_game):
        """A-6 is a standing hand for the dealer."""
        game = stacked_game("10S 8H AD 6C 5H")
        game.deal()
        snapshot = game.stand()

        assert snapshot.dealer_value == 17
        assert len(snapshot.dealer_cards) == 2
        assert snapshot.outcome == Outcome.WIN

    def test_dealer_frames_for_animation(self, stacked_game):
        """Each dealer draw is captured as a frame."""
        game = stacked_game("10S 9H 2D 3C 4H 5S 6D")
        game.deal()
        snapshot = game.stand()

        assert [len(f) for f in snapshot.dealer_frames] == [2, 3, 4, 5]
        assert snapshot.dealer_value == 20
        assert snapshot.outcome == Outcome.LOSE

    def test_stand_while_betting(self, game):
        """Standing with no round in play is rejected."""
        with pytest.raises(IllegalTransition):
            game.stand()


class TestDouble:
    """Tests for doubling down."""

    def test_double_with_exact_balance(self, stacked_game):
        """Doubling may spend the last of the balance."""
        game = stacked_game("5S 6H 10D 7C 10H", balance="0.002")
        game.deal()
        assert game.balance == Decimal("0.001")

        snapshot = game.double()

        assert snapshot.round_bet == Decimal("0.002")
        assert snapshot.player_value == 21
        assert snapshot.state == GameState.SETTLED
        assert snapshot.outcome == Outcome.WIN
        assert snapshot.payout == Decimal("0.004")
        assert snapshot.balance == Decimal("0.004")

    def test_double_with_insufficient_balance(self, stacked_game):
        """A double the balance can't cover leaves the round untouched."""
        game = stacked_game("5S 6H 10D 7C 10H", balance="0.0015")
        game.deal()

        with pytest.raises(InsufficientBalance):
            game.double()

        snapshot = game.snapshot()
        assert snapshot.state == GameState.PLAYER_TURN
        assert snapshot.round_bet == Decimal("0.001")
        assert len(snapshot.player_cards) == 2
        assert snapshot.balance == Decimal("0.0005")
        assert not snapshot.can_double

    def test_double_after_hit(self, stacked_game):
        """Doubling is only legal on the first two cards."""
        game = stacked_game("2S 3H 10D 7C 4H")
        game.deal()
        game.hit()

        with pytest.raises(IllegalTransition):
            game.double()
        assert game.round.bet == Decimal("0.001")

    def test_double_bust(self, stacked_game):
        """A doubled bust loses twice the stake without dealer play."""
        game = stacked_game("10S 6H 10D 7C KH")
        game.deal()
        snapshot = game.double()

        assert snapshot.outcome == Outcome.LOSE
        assert snapshot.balance == Decimal("0.008")
        assert len(snapshot.dealer_cards) == 2

    def test_doubled_bet_counts_as_wagered(self, stacked_game):
        """The full doubled stake counts toward the rollover."""
        game = stacked_game("5S 6H 10D 7C 10H")
        game.deal()
        game.double()
        assert game.ledger.record(Asset.BTC).wagered == Decimal("0.002")

    def test_no_hit_after_double(self, stacked_game):
        """The round is over after a double."""
        game = stacked_game("5S 6H 10D 7C 2H")
        game.deal()
        game.double()
        with pytest.raises(IllegalTransition):
            game.hit()


class TestSettlement:
    """Tests for settlement bookkeeping."""

    def test_settle_records_wager_and_history(self, stacked_game):
        """A settled round counts as wagered and lands in the history."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        game.stand()

        assert game.ledger.record(Asset.BTC).wagered == Decimal("0.001")
        assert game.wager_remaining() == Decimal("0.499")
        entry = game.history.entries[0]
        assert entry.outcome == Outcome.LOSE
        assert entry.net == Decimal("-0.001")

    def test_settle_emits_event(self, stacked_game):
        """Subscribers see the settlement."""
        game = stacked_game("AS KH 9D 7C")
        events = []
        game.subscribe(events.append, EventType.ROUND_SETTLED)
        game.deal()

        assert len(events) == 1
        assert events[0].data["outcome"] == "blackjack"
        assert events[0].data["net"] == "0.0015"

    def test_history_capped_over_many_rounds(self, game):
        """Only the last 20 rounds are kept."""
        for _ in range(25):
            game.deal()
            if game.state == GameState.PLAYER_TURN:
                game.stand()
            game.play_again()

        assert len(game.history) == 20


class TestPlayAgain:
    """Tests for returning to betting."""

    def test_play_again_clears_round(self, stacked_game):
        """Hands and message are cleared; balances are not touched."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        game.stand()
        balance = game.balance

        snapshot = game.play_again()

        assert snapshot.state == GameState.BETTING
        assert snapshot.player_cards == ()
        assert snapshot.dealer_cards == ()
        assert snapshot.message == ""
        assert snapshot.outcome is None
        assert snapshot.balance == balance

    def test_play_again_is_idempotent(self, stacked_game):
        """A second play again changes nothing."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        game.stand()

        first = game.play_again()
        second = game.play_again()

        assert first.balances == second.balances
        assert first.history == second.history
        assert second.state == GameState.BETTING

    def test_play_again_mid_round(self, stacked_game):
        """A round in play can't be abandoned."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        with pytest.raises(IllegalTransition):
            game.play_again()


class TestBet:
    """Tests for table bet controls."""

    def test_set_bet_clamped_to_balance(self, stacked_game):
        """Bets above the balance are capped at the balance."""
        game = stacked_game("10S 7H 10D 8C")
        assert game.set_bet("5").bet == Decimal("0.01")

    def test_set_bet_clamped_to_minimum(self, stacked_game):
        """Bets below the minimum unit are raised to it."""
        game = stacked_game("10S 7H 10D 8C")
        assert game.set_bet("0.0001").bet == Decimal("0.001")

    def test_set_bet_invalid(self, stacked_game):
        """Unparsable bets are rejected."""
        game = stacked_game("10S 7H 10D 8C")
        with pytest.raises(InvalidAmount):
            game.set_bet("lots")
        with pytest.raises(InvalidAmount):
            game.set_bet(-1)

    def test_halve_and_double_bet(self, stacked_game):
        """Half and 2x controls respect the minimum and the balance."""
        game = stacked_game("10S 7H 10D 8C", bet="0.004")
        assert game.halve_bet().bet == Decimal("0.002")
        assert game.halve_bet().bet == Decimal("0.001")
        assert game.halve_bet().bet == Decimal("0.001")
        assert game.double_bet().bet == Decimal("0.002")
        game.set_bet("0.008")
        assert game.double_bet().bet == Decimal("0.01")

    def test_bet_locked_during_round(self, stacked_game):
        """The table bet can't change while a round is in play."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        with pytest.raises(IllegalTransition):
            game.set_bet("0.002")

    def test_double_does_not_change_table_bet(self, stacked_game):
        """The next round stakes the table bet, not the doubled one."""
        game = stacked_game("5S 6H 10D 7C 10H")
        game.deal()
        game.double()
        game.play_again()
        assert game.bet == Decimal("0.001")


class TestCashier:
    """Tests for deposits, withdrawals and asset selection through the game."""

    def test_deposit_then_withdraw_blocked(self, game):
        """A fresh deposit can't be withdrawn before wagering."""
        with pytest.raises(WagerRequirementUnmet) as exc_info:
            game.withdraw(Asset.BTC, "1", "bc1qaddress")
        assert exc_info.value.remaining == Decimal("50")
        assert exc_info.value.remaining_usd == Decimal("50") * PRICES[Asset.BTC]

    def test_rejection_emits_event(self, game):
        """Rejected commands are reported to subscribers."""
        events = []
        game.subscribe(events.append, EventType.INVALID_ACTION)
        with pytest.raises(WagerRequirementUnmet):
            game.withdraw("BTC", "1", "bc1qaddress")
        assert events[0].data["error"] == "WagerRequirementUnmet"

    def test_select_asset(self, stacked_game):
        """Rounds use the selected asset's balance."""
        game = stacked_game("10S 7H 10D 8C")
        game.deposit("eth", "2")
        snapshot = game.select_asset("ETH")
        assert snapshot.asset == Asset.ETH
        assert snapshot.balance == Decimal("2")

        game.deal()
        assert game.balance == Decimal("1.999")
        assert game.ledger.balance(Asset.BTC) == Decimal("0.01")

    def test_select_unknown_asset(self, game):
        """Unsupported symbols are rejected."""
        with pytest.raises(UnknownAsset):
            game.select_asset("DOGE")

    def test_select_asset_mid_round(self, stacked_game):
        """The asset is fixed while a round is in play."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        with pytest.raises(IllegalTransition):
            game.select_asset(Asset.SOL)

    def test_deposit_during_round(self, stacked_game):
        """Deposits are accepted at any time."""
        game = stacked_game("10S 7H 10D 8C")
        game.deal()
        assert game.deposit(Asset.BTC, "0.001").balance == Decimal("0.01")

    def test_snapshot_reports_wager_remaining_per_asset(self, game):
        """The snapshot lists the requirement for every asset."""
        game.deposit(Asset.SOL, "1")
        remaining = game.snapshot().wager_remaining
        assert remaining[Asset.BTC] == Decimal("50")
        assert remaining[Asset.SOL] == Decimal("50")
        assert remaining[Asset.LTC] == 0


class TestStateMachine:
    """Tests for the transition table."""

    def test_machine_edges_follow_round_flow(self):
        """The machine only moves along the round flow."""
        edges = {(t["source"], t["dest"]) for t in BlackjackGame.TRANSITIONS}
        assert edges == {
            ("betting", "player_turn"),
            ("betting", "settled"),
            ("player_turn", "player_turn"),
            ("player_turn", "settled"),
            ("player_turn", "dealer_turn"),
            ("dealer_turn", "settled"),
            ("settled", "betting"),
        }
        assert set(BlackjackGame.STATES) == {s.name.lower() for s in GameState}

    def test_machine_refuses_out_of_order_trigger(self, game):
        """Triggers fired from the wrong state are refused by the machine."""
        with pytest.raises(MachineError):
            game.clear_table()
        assert game.state == GameState.BETTING

    def test_unsubscribe(self, game):
        """Removed handlers receive no further events."""
        events = []
        game.subscribe(events.append)
        game.unsubscribe(events.append)
        game.deposit(Asset.BTC, "1")
        assert events == []

    def test_initial_state(self, game):
        """A new game waits for a bet."""
        assert game.state == GameState.BETTING
        assert game.bet == Decimal("0.001")
        assert game.message == ""
        assert game.outcome is None
