"""Prediction statistics: player records, leaderboard, platform totals.

Derived on demand from the controller's bets; nothing here is stored.
A "prediction" is a bet on a RESOLVED market; bets on cancelled markets
count toward wagered gold only.
"""

from src.pm_engine.engine.lifecycle import MarketLifecycleController
from src.pm_market.application.schemas import LeaderboardEntry, PlatformStats, PlayerStats


class PredictionStatsService:
    def __init__(self, controller: MarketLifecycleController) -> None:
        self._controller = controller

    def player_stats(self, bettor_id: str) -> PlayerStats:
        bets = self._controller.bets_for_bettor(bettor_id)
        total_won = 0
        correct = 0
        predictions = 0
        streak = 0
        best_streak = 0
        for bet in bets:
            market = self._controller.get_market(bet.market_id)
            if market.status != "RESOLVED":
                continue
            predictions += 1
            if bet.outcome_index == market.winning_outcome:
                correct += 1
                total_won += self._controller.payout_for(bet)
                streak += 1
                best_streak = max(best_streak, streak)
            else:
                streak = 0

        accuracy = round(correct * 100 / predictions, 1) if predictions else 0.0
        return PlayerStats(
            bettor_id=bettor_id,
            total_bets=len(bets),
            total_wagered=sum(b.amount for b in bets),
            total_won=total_won,
            correct_predictions=correct,
            accuracy=accuracy,
            current_streak=streak,
            best_streak=best_streak,
            last_bet_time=bets[-1].timestamp if bets else None,
        )

    def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        stats = [self.player_stats(b) for b in self._controller.bettor_ids()]
        stats.sort(key=lambda s: (-s.total_won, -s.accuracy, s.bettor_id))
        return [
            LeaderboardEntry(
                rank=i,
                bettor_id=s.bettor_id,
                accuracy=s.accuracy,
                total_bets=s.total_bets,
                total_won=s.total_won,
                current_streak=s.current_streak,
                best_streak=s.best_streak,
            )
            for i, s in enumerate(stats[:limit], start=1)
        ]

    def platform_stats(self) -> PlatformStats:
        bets = self._controller.all_bets()
        markets = self._controller.list_markets()
        cancelled = {m.id for m in markets if m.status == "CANCELLED"}
        biggest_payout = 0
        biggest_winner: str | None = None
        total_paid_out = 0
        for bet in bets:
            if not bet.claimed:
                continue
            payout = self._controller.payout_for(bet)
            total_paid_out += payout
            # Refunds count as paid out but never as winnings.
            if bet.market_id not in cancelled and payout > biggest_payout:
                biggest_payout, biggest_winner = payout, bet.bettor_id

        return PlatformStats(
            total_markets=len(markets),
            total_bets=len(bets),
            total_volume=sum(b.amount for b in bets),
            total_paid_out=total_paid_out,
            total_players=len({b.bettor_id for b in bets}),
            biggest_payout=biggest_payout,
            biggest_winner=biggest_winner,
        )
