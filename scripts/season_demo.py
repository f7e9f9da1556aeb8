#!/usr/bin/env python3
"""
Season demo: Create clubs → Friendly invite → Start league → Play every matchday → Transfer → Pay prizes.
Run from project root: python3 scripts/season_demo.py path/to/players.json [clubs]
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fantasy_league.catalog import PlayerCatalog, format_currency
from fantasy_league.clock import FixedClock
from fantasy_league.config import setup_logging
from fantasy_league.models import FixtureStatus, LeagueStatus
from fantasy_league.persistence import get_connection, init_db, set_db_path
from fantasy_league.services import FriendlyService, LeagueService, SquadService, TransferService
from fantasy_league.services.standings import sort_leaderboard

SERVER_ID = "demo-server"


def main() -> None:
    if len(sys.argv) < 2:
        print(f"usage: {sys.argv[0]} CATALOG_JSON [CLUBS]")
        sys.exit(2)
    catalog = PlayerCatalog.from_path(sys.argv[1])
    n_clubs = int(sys.argv[2]) if len(sys.argv) > 2 else 4
    setup_logging()

    # Use data/season_demo.db for demo (fresh every run)
    db_path = PROJECT_ROOT / "data" / "season_demo.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path)

    clock = FixedClock(datetime(2026, 8, 1, 15, 0, tzinfo=timezone.utc))
    squads = SquadService(catalog, clock=clock)
    leagues = LeagueService(clock=clock, catalog=catalog)
    transfers = TransferService(clock=clock)
    friendlies = FriendlyService(clock=clock)

    conn = get_connection()
    try:
        # 1. Clubs
        clubs = [
            squads.create_club(conn, f"manager-{i}", SERVER_ID, f"Demo Club {i + 1}", seed=i + 1)
            for i in range(n_clubs)
        ]
        for c in clubs:
            print(f"Created club: {c.name} (budget {format_currency(c.budget)})")

        # 2. Pre-season friendly
        invite = friendlies.send_invite(conn, clubs[0].id, clubs[1].id)
        friendly = friendlies.respond_to_invite(conn, invite.id, accept=True, seed=7)
        print(f"Friendly: {friendly.home_club_name} {friendly.home_score}-{friendly.away_score} {friendly.away_club_name}")

        # 3. League
        reward = leagues.available_reward_players(conn, SERVER_ID)
        league = leagues.create_league(
            conn, SERVER_ID, "Demo League", capacity=n_clubs,
            prizes={"first": 100_000, "second": 50_000, "third": 25_000, "others": 5_000},
            reward_player_id=reward[0].catalog_id if reward else None,
        )
        for c in clubs:
            leagues.join_league(conn, league.id, c.id)
        fixtures = leagues.start_league(conn, league.id)
        print(f"League started: {len(fixtures)} fixtures over {fixtures[-1].matchday} matchdays")

        # 4. Play every matchday, one day apart
        seed = 1000
        while leagues.get_league(conn, league.id).status is LeagueStatus.STARTED:
            league = leagues.get_league(conn, league.id)
            for f in leagues.list_fixtures(conn, league.id, matchday=league.current_matchday):
                if f.status is not FixtureStatus.AVAILABLE:
                    continue
                m = leagues.play_fixture(conn, league.id, f.id, seed=seed)
                seed += 1
                print(f"  MD{m.matchday}: {m.home_club_name} {m.home_score}-{m.away_score} {m.away_club_name}")
            leagues.clear_suspensions(conn, league.id)
            clock.advance(days=1)

        # 5. A transfer between the last two clubs
        buyer, seller = clubs[-1], clubs[-2]
        candidates = [p for p, _ in transfers.available_players_for_transfer(conn, buyer.id)
                      if p.club_id == seller.id and p.market_value <= squads.get_club(conn, buyer.id).budget]
        if candidates:
            offer = transfers.make_direct_offer(conn, buyer.id, candidates[0].id)
            records = transfers.respond_to_offer(conn, offer.id, accept=True)
            for r in records or []:
                print(f"Transfer: {r.player_name} for {format_currency(r.fee)}")

        # 6. Prizes
        result = leagues.terminate_league(conn, league.id)
        print("\nFinal table:")
        for rank, row in enumerate(sort_leaderboard(result.league.leaderboard), start=1):
            prize = result.payouts.get(row.club_id, 0)
            print(f"  {rank:>2}. {row.club_name:<16} {row.points:>3} pts  GD {row.goal_difference:+d}  prize {format_currency(prize)}")
        if result.league.top_scorers:
            top = result.league.top_scorers[0]
            print(f"Top scorer: {top.player_name} ({top.club_name}) {top.count} goals")

        print("\nSeason demo complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
