import argparse
import logging
import sys

from gym_booking import run
from gym_booking.errors import BookingError

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configures logging to stderr with local time."""
    import time

    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    # Use local time instead of UTC for logging
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_arguments(argv=None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Book one of the 8 daily gym slots.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    parser.add_argument(
        "--store",
        choices=["auto", "firebase", "file", "memory"],
        default="auto",
        help="Where bookings live. Defaults to Firebase when configured, else a local JSON file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    date_help = "Date in YYYY-MM-DD format. Defaults to today."
    slot_help = "Slot number 1-8 as shown by 'show'."

    show_parser = subparsers.add_parser("show", help="Show the slots for a date.")
    show_parser.add_argument("--date", type=str, help=date_help)

    book_parser = subparsers.add_parser("book", help="Book a slot.")
    book_parser.add_argument("name", type=str, help="Your name.")
    book_parser.add_argument("--slot", type=int, required=True, help=slot_help)
    book_parser.add_argument("--date", type=str, help=date_help)

    cancel_parser = subparsers.add_parser("cancel", help="Cancel a booking.")
    cancel_parser.add_argument("--slot", type=int, required=True, help=slot_help)
    cancel_parser.add_argument("--date", type=str, help=date_help)

    watch_parser = subparsers.add_parser("watch", help="Print the slots for a date whenever they change.")
    watch_parser.add_argument("--date", type=str, help=date_help)

    return parser.parse_args(argv)


def main():
    args = parse_arguments()
    setup_logging(args.verbose)

    try:
        if args.command == "show":
            run.show(date_str=args.date, store_kind=args.store)
        elif args.command == "book":
            if not run.book(args.name, args.slot, date_str=args.date, store_kind=args.store):
                sys.exit(1)
        elif args.command == "cancel":
            if not run.cancel(args.slot, date_str=args.date, store_kind=args.store):
                sys.exit(1)
        elif args.command == "watch":
            run.watch(date_str=args.date, store_kind=args.store)
    except BookingError as e:
        logger.error(f"Booking store unavailable: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
