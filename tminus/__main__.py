"""
Command-line front end.

Usage:
    python -m tminus [-c CONFIG] [--debug] list
    python -m tminus add "Trip" "2026-07-01 09:00" --every yearly --notify 60 1440
    python -m tminus delete ID
    python -m tminus theme [light|dark]
    python -m tminus run
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .app import Tracker
from .common.config import AppConfig, ConfigError, load_config, setup_logging
from .events.countdown import format_time_remaining, is_event_soon, parse_datetime, time_remaining
from .events.models import Event, RecurringType, ThemeMode
from .events.recurrence import describe_recurrence
from .events.validation import (
    is_unique_event_name,
    validate_name,
    validate_notification_times,
    validate_recurring_config,
)
from .store import EventStore
from .sync.errors import SyncFailedError


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='tminus', description='Countdown event tracker')
    parser.add_argument(
        '-c', '--config',
        default='tminus.yaml',
        help='Path to JSON or YAML config file (default: tminus.yaml)'
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('list', help='Show events and their countdowns')

    add = commands.add_parser('add', help='Add an event')
    add.add_argument('name', help='Event name')
    add.add_argument(
        'when',
        help="Target time: '2025-12-01 20:00', '01/12/2025 20:00', 'tomorrow 19:00', 'in 2 hours'"
    )
    add.add_argument('--every', choices=[t.value for t in RecurringType], help='Repeat interval')
    add.add_argument('--category', help='Category id')
    add.add_argument(
        '--notify', type=int, nargs='+', metavar='MINUTES',
        help='Remind this many minutes before (enables reminders)'
    )

    delete = commands.add_parser('delete', help='Delete an event')
    delete.add_argument('event_id', help='Event id (see list)')

    theme = commands.add_parser('theme', help='Show or set the theme')
    theme.add_argument('mode', nargs='?', choices=[m.value for m in ThemeMode])

    commands.add_parser('run', help='Keep running: sweeps, reminders and remote updates')

    return parser


def build_event(
    name: str,
    when: str,
    every: Optional[str] = None,
    category: Optional[str] = None,
    notify: Optional[List[int]] = None,
    existing: Iterable[Event] = (),
    now: Optional[datetime] = None
) -> Event:
    """
    Validate command-line input and build a new Event.

    Raises:
        ValueError: With a user-facing message if any input is invalid.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    result = validate_name(name)
    if not result:
        raise ValueError(result.error)

    target = parse_datetime(when, now=now)
    if target <= now:
        raise ValueError("The date must be in the future")

    if every is not None:
        result = validate_recurring_config(every)
        if not result:
            raise ValueError(result.error)

    if notify is not None:
        result = validate_notification_times(notify)
        if not result:
            raise ValueError(result.error)

    if not is_unique_event_name(name, existing):
        logger.warning(f"An event named '{name.strip()}' already exists")

    return Event.create(
        name.strip(),
        target,
        category_id=category,
        is_recurring=every is not None,
        recurring_type=RecurringType.parse(every),
        notification_enabled=notify is not None,
        notification_times=tuple(notify) if notify is not None else None,
    )


def format_event(event: Event, now: Optional[datetime] = None) -> str:
    remaining = format_time_remaining(time_remaining(event.target_date, now))
    line = f"{event.id}  {event.name:<30} {event.target_date:%Y-%m-%d %H:%M}  {remaining}"
    if is_event_soon(event.target_date, now):
        line += "  [soon]"
    if event.is_recurring:
        line += f"  ({describe_recurrence(event)})"
    return line


async def _run_command(args: argparse.Namespace, config: AppConfig, nats_client=None) -> int:
    """Run one command against a started Tracker; one-shot commands drain
    queued remote writes before shutdown."""
    tracker = Tracker(config, nats_client=nats_client)
    store: EventStore = await tracker.start()
    try:
        if args.command == 'list':
            if not store.events:
                print("No events")
            for event in store.events:
                print(format_event(event))

        elif args.command == 'add':
            try:
                event = build_event(
                    args.name, args.when, args.every, args.category, args.notify, store.events
                )
            except ValueError as e:
                print(f"error: {e}", file=sys.stderr)
                return 2
            await store.add_event(event)
            print(format_event(event))

        elif args.command == 'delete':
            if store.get_event(args.event_id) is None:
                print(f"error: no event with id {args.event_id}", file=sys.stderr)
                return 1
            await store.delete_event(args.event_id)
            print(f"Deleted {args.event_id}")

        elif args.command == 'theme':
            if args.mode:
                await tracker.storage.save_theme(ThemeMode(args.mode))
            theme = await tracker.storage.load_theme()
            print(theme.value if theme else ThemeMode.LIGHT.value)

        elif args.command == 'run':
            logger.info("Running, press Ctrl+C to stop")
            await asyncio.Event().wait()

        if args.command != 'run':
            try:
                await store.flush_sync()
            except SyncFailedError as e:
                print(f"warning: changes not synced: {e}", file=sys.stderr)
        return 0

    finally:
        await tracker.stop()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    if args.debug:
        config.log_level = 'debug'
    setup_logging(config)

    try:
        return asyncio.run(_run_command(args, config))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        return 0


if __name__ == '__main__':
    sys.exit(main())
