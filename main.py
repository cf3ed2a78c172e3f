import argparse
import asyncio
import logging

from cryptography.fernet import Fernet

from hackfest_realtime import (
    LoggingNotificationSink,
    NotificationBridge,
    NotificationLog,
    TeamsView,
    active_time,
    break_time,
    hackfest_factory,
)
from hackfest_realtime.models import Role, utcnow


async def demo(url: str, team_id: str, pause: float, encrypt: bool, reset: bool):
    config = {"url": url}
    if encrypt:
        config["key"] = Fernet.generate_key()

    async with hackfest_factory(config) as open_context:
        # Two contexts stand in for an admin tab and a volunteer tab.
        async with open_context() as admin, open_context() as volunteer:
            if reset:
                await admin.store.reset()
            teams = TeamsView(admin.bus, admin.store)
            log = NotificationLog(admin.bus)
            bridge = NotificationBridge(admin.bus, LoggingNotificationSink(), role=Role.ADMIN)
            await teams.start()
            await log.start()
            bridge.start()

            # Give a polling transport a chance to deliver.
            settle = 0.5 if url.startswith("sqlite") else 0

            await volunteer.tracker.start_onboarding(team_id)
            await asyncio.sleep(pause)
            await volunteer.tracker.start_break(team_id, "food")
            await asyncio.sleep(pause)
            await volunteer.tracker.end_break(team_id)
            await volunteer.store.request_help(team_id, "Our build server is down")
            await asyncio.sleep(pause)
            team = await volunteer.tracker.complete_onboarding(team_id)
            await volunteer.store.post_announcement("Dinner is served in the cafeteria.")
            await asyncio.sleep(settle)

            now = utcnow()
            print(f"\n--- Team {team.name} ---")
            print(f"Status: {team.onboarding_status.value}, sessions: {len(team.sessions)}")
            print(f"Active: {active_time(team, now)}ms, Break: {break_time(team, now)}ms")

            cached = teams.get(team_id)
            print(f"Admin view sees status: {cached.onboarding_status.value if cached else 'unknown'}")
            print(f"Admin notifications ({log.unread_count} unread):")
            for notification in log.notifications:
                print(f"  [{notification.type.value}] {notification.title}: {notification.message}")

            bridge.stop()
            await log.stop()
            await teams.stop()


async def main():
    parser = argparse.ArgumentParser(description="Run a two-context onboarding demo.")
    parser.add_argument("--url", default="memory://")
    parser.add_argument("--team", default="u3")
    parser.add_argument("--pause", type=float, default=0.5)
    parser.add_argument("--encrypt", action="store_true")
    parser.add_argument("--reset", action="store_true", help="wipe and reseed the stored document first")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    await demo(args.url, args.team, args.pause, args.encrypt, args.reset)


if __name__ == "__main__":
    asyncio.run(main())
