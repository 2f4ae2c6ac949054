import argparse
import logging
import sys
import threading
from typing import List, Optional, TextIO

from . import parse_uri
from .config import DEFAULT_DIGITS, DEFAULT_PERIOD, Algorithm
from .scheduler import RefreshScheduler, Update
from .totp import TOTP

PROMPT = "Enter your secret key to continue"
INVALID = "no code available - check your inputs"
BAR_WIDTH = 30


def render(update: Update, period: int) -> str:
    """
    One console line for an update: code, progress bar and seconds left.
    """
    if update.code is None:
        return PROMPT
    filled = round(BAR_WIDTH * update.remaining_seconds / period)
    bar = "#" * filled + "." * (BAR_WIDTH - filled)
    return "{}  [{}] {:>4d} seconds remaining".format(update.code, bar, update.remaining_seconds)


class ConsoleDisplay(object):
    def __init__(self, stream: TextIO, period: int) -> None:
        self.stream = stream
        self.period = period

    def __call__(self, update: Update) -> None:
        if update.rolled_over:
            self.stream.write("\n")
        self.stream.write("\r" + render(update, self.period).ljust(BAR_WIDTH + 40))
        self.stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="otpclock", description="Show a live, auto-refreshing TOTP code.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("secret", nargs="?", help="base32 shared secret")
    source.add_argument("--uri", help="otpauth:// provisioning URI instead of a raw secret")
    parser.add_argument("-d", "--digits", type=int, default=DEFAULT_DIGITS, help="number of digits (1-10)")
    parser.add_argument("-p", "--period", type=int, default=DEFAULT_PERIOD, help="period in seconds (1-3600)")
    parser.add_argument(
        "-a",
        "--algorithm",
        default=Algorithm.SHA1.value,
        choices=[a.value for a in Algorithm],
        help="HMAC hash function",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log scheduler activity to stderr")
    return parser


def main(argv: Optional[List[str]] = None, stream: TextIO = sys.stdout, stop: Optional[threading.Event] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    secret, digits, period, algorithm = args.secret, args.digits, args.period, args.algorithm
    if args.uri:
        try:
            otp = parse_uri(args.uri)
        except ValueError as e:
            print("{}: {}".format(INVALID, e), file=sys.stderr)
            return 2
        if not isinstance(otp, TOTP):
            print("{}: not a TOTP URI".format(INVALID), file=sys.stderr)
            return 2
        secret, digits, period, algorithm = otp.secret, otp.digits, otp.interval, otp.algorithm

    stop = stop or threading.Event()
    with RefreshScheduler(ConsoleDisplay(stream, max(period, 1))) as scheduler:
        result = scheduler.configure(secret, digits, period, algorithm)
        if not result.ok:
            stream.write("\n")
            print("{}: {}".format(INVALID, result.error), file=sys.stderr)
            return 2
        try:
            stop.wait()
        except KeyboardInterrupt:
            pass
    stream.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
