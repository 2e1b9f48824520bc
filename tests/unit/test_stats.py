"""Player, leaderboard and platform statistics."""

from src.pm_engine.engine.lifecycle import MarketLifecycleController
from src.pm_stats.application.service import PredictionStatsService
from tests.helpers import FakeClock, open_market


async def _two_resolved_markets(controller: MarketLifecycleController, clock: FakeClock) -> None:
    """Market 1: No wins. Market 2: Yes wins. Market 3 stays open, market 4 cancelled."""
    m1 = await open_market(controller)
    m2 = await open_market(controller)
    m3 = await open_market(controller)
    m4 = await open_market(controller)
    await controller.place_bet(m1.id, 0, 100, "alice")
    clock.advance(minutes=1)
    await controller.place_bet(m1.id, 1, 300, "bob")
    clock.advance(minutes=1)
    await controller.place_bet(m2.id, 0, 200, "bob")
    clock.advance(minutes=1)
    await controller.place_bet(m2.id, 1, 200, "alice")
    clock.advance(minutes=1)
    await controller.place_bet(m3.id, 0, 50, "carol")
    await controller.place_bet(m4.id, 0, 70, "alice")
    await controller.resolve(m1.id, 1)
    await controller.resolve(m2.id, 0)
    await controller.cancel(m4.id)


class TestPlayerStats:
    async def test_record(self, controller: MarketLifecycleController, clock: FakeClock) -> None:
        await _two_resolved_markets(controller, clock)
        stats = PredictionStatsService(controller).player_stats("bob")

        assert stats.total_bets == 2
        assert stats.total_wagered == 500
        assert stats.correct_predictions == 2
        assert stats.accuracy == 100.0
        # m1: net 380 on 300 -> 380; m2: net 380 on 200 -> 380
        assert stats.total_won == 760
        assert stats.current_streak == 2
        assert stats.best_streak == 2

    async def test_cancelled_excluded_from_accuracy(
        self, controller: MarketLifecycleController, clock: FakeClock
    ) -> None:
        await _two_resolved_markets(controller, clock)
        stats = PredictionStatsService(controller).player_stats("alice")

        assert stats.total_bets == 3
        assert stats.total_wagered == 370
        assert stats.correct_predictions == 0
        assert stats.accuracy == 0.0
        assert stats.current_streak == 0

    async def test_open_market_not_counted(
        self, controller: MarketLifecycleController, clock: FakeClock
    ) -> None:
        await _two_resolved_markets(controller, clock)
        stats = PredictionStatsService(controller).player_stats("carol")
        assert stats.total_bets == 1
        assert stats.correct_predictions == 0
        assert stats.accuracy == 0.0

    async def test_unknown_bettor(self, controller: MarketLifecycleController) -> None:
        stats = PredictionStatsService(controller).player_stats("ghost")
        assert stats.total_bets == 0
        assert stats.last_bet_time is None


class TestLeaderboard:
    async def test_ranked_by_winnings(
        self, controller: MarketLifecycleController, clock: FakeClock
    ) -> None:
        await _two_resolved_markets(controller, clock)
        board = PredictionStatsService(controller).leaderboard()

        assert [(e.rank, e.bettor_id) for e in board] == [(1, "bob"), (2, "alice"), (3, "carol")]

    async def test_limit(self, controller: MarketLifecycleController, clock: FakeClock) -> None:
        await _two_resolved_markets(controller, clock)
        assert len(PredictionStatsService(controller).leaderboard(limit=1)) == 1


class TestPlatformStats:
    async def test_totals(self, controller: MarketLifecycleController, clock: FakeClock) -> None:
        await _two_resolved_markets(controller, clock)
        await controller.claim(1, "bob")
        await controller.claim(4, "alice")

        stats = PredictionStatsService(controller).platform_stats()

        assert stats.total_markets == 4
        assert stats.total_bets == 6
        assert stats.total_volume == 920
        assert stats.total_players == 3
        assert stats.total_paid_out == 380 + 70
        assert stats.biggest_payout == 380
        assert stats.biggest_winner == "bob"

    async def test_refund_is_not_biggest_payout(self, controller: MarketLifecycleController) -> None:
        won = await open_market(controller)
        refunded = await open_market(controller)
        await controller.place_bet(won.id, 0, 100, "alice")
        await controller.place_bet(won.id, 1, 300, "bob")
        await controller.place_bet(refunded.id, 0, 5000, "carol")
        await controller.resolve(won.id, 1)
        await controller.cancel(refunded.id)
        await controller.claim(won.id, "bob")
        await controller.claim(refunded.id, "carol")

        stats = PredictionStatsService(controller).platform_stats()

        assert stats.total_paid_out == 380 + 5000
        assert stats.biggest_payout == 380
        assert stats.biggest_winner == "bob"

    async def test_only_refunds(self, controller: MarketLifecycleController) -> None:
        market = await open_market(controller)
        await controller.place_bet(market.id, 0, 5000, "carol")
        await controller.cancel(market.id)
        await controller.claim(market.id, "carol")

        stats = PredictionStatsService(controller).platform_stats()

        assert stats.total_paid_out == 5000
        assert stats.biggest_payout == 0
        assert stats.biggest_winner is None
