"""Two timers side by side -- a countdown and a stopwatch that gets paused.

Demonstrates:
- Creating timers through a TimerManager
- Pausing and resuming one timer while the other keeps ticking
- Pumping responses on the main thread with dispatch()

Run: python examples/timers.py --countdown 5 --stopwatch 3 --pause 2
"""

import argparse
import logging
import time

from tick_timer import TimerConfig, TimerKind, TimerManager, TimerSpec


def main() -> None:
    parser = argparse.ArgumentParser(description="tick-timer demo")
    parser.add_argument("--countdown", type=float, default=5.0, help="seconds")
    parser.add_argument("--stopwatch", type=float, default=3.0, help="seconds")
    parser.add_argument("--pause", type=float, default=2.0, help="stopwatch pause, seconds")
    parser.add_argument("--backend", choices=("auto", "thread", "process"), default="auto")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    def on_tick(time_string: str, timer_id: str) -> None:
        print(f"  {timer_id[-9:]}  {time_string}")

    def on_complete(timer_id: str) -> None:
        print(f"  {timer_id[-9:]}  done")

    with TimerManager(TimerConfig(backend=args.backend)) as manager:
        countdown = manager.create_timer(
            TimerSpec(TimerKind.COUNTDOWN, args.countdown * 1000, on_tick, on_complete)
        )
        stopwatch = manager.create_timer(
            TimerSpec("stopwatch", args.stopwatch * 1000, on_tick, on_complete)
        )
        print(f"=== countdown {countdown.id} / stopwatch {stopwatch.id} ===\n")

        countdown.start()
        stopwatch.start()

        pause_at: float | None = time.monotonic() + 1.0
        resume_at: float | None = None

        # The main thread is free to do other work between dispatch calls;
        # the workers keep time on their own.
        while manager.active_ids():
            manager.dispatch(timeout=0.05)
            now = time.monotonic()
            if pause_at is not None and now >= pause_at:
                stopwatch.pause()
                print(f"  {stopwatch.id[-9:]}  paused for {args.pause:g}s")
                pause_at = None
                resume_at = now + args.pause
            elif resume_at is not None and now >= resume_at:
                stopwatch.resume()
                print(f"  {stopwatch.id[-9:]}  resumed")
                resume_at = None

    print("\nAll timers finished.")


if __name__ == "__main__":
    main()
