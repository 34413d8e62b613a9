import argparse
import json
import logging
import sys
from typing import Dict, Iterator, Optional, Tuple

from .analytics import AnalyticsEngine
from .config import DEFAULT_SETTINGS, MAX_HISTORY
from .gaps import GapResolver
from .history import HistoryStore
from .utils import now_ms


def _open_feed(path: str):
    if path == "-":
        return sys.stdin
    try:
        return open(path, "r", encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Cannot read feed {path}: {exc}") from exc


def load_feed(path: str) -> Iterator[dict]:
    """Yield ``{"id", "block", "received"?}`` entries from a JSON-lines feed."""
    f = _open_feed(path)
    try:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except ValueError as exc:
                raise SystemExit(f"{path}:{lineno}: invalid JSON") from exc
            if not isinstance(entry, dict):
                raise SystemExit(f"{path}:{lineno}: expected JSON object")
            yield entry
    finally:
        if f is not sys.stdin:
            f.close()


def ingest(path: str, max_history: int = MAX_HISTORY) -> Tuple[HistoryStore, Dict[str, int]]:
    state: Dict[str, Optional[int]] = {"now": None}

    def clock() -> int:
        if state["now"] is None:
            return now_ms()
        return state["now"]

    store = HistoryStore(max_history=max_history, clock=clock)
    accepted = 0
    rejected = 0
    for entry in load_feed(path):
        received = entry.get("received")
        try:
            state["now"] = int(received) if received is not None else None
        except (TypeError, ValueError) as exc:
            raise SystemExit(f"Invalid received time: {received!r}") from exc
        if store.add(entry.get("block"), str(entry.get("id", ""))) is None:
            rejected += 1
        else:
            accepted += 1
    logging.getLogger(__name__).info("replayed %d reports (%d rejected)", accepted + rejected, rejected)
    return store, {"accepted": accepted, "rejected": rejected}


def _print(obj) -> None:
    print(json.dumps(obj, indent=2))


def cmd_replay(args: argparse.Namespace) -> None:
    store, counts = ingest(args.feed, args.max_history)
    counts["best"] = store.best_block_number()
    counts["size"] = len(store)
    counts["settings"] = dict(DEFAULT_SETTINGS, MAX_HISTORY=store.max_history)
    _print(counts)


def cmd_charts(args: argparse.Namespace) -> None:
    store, _ = ingest(args.feed, args.max_history)
    _print(AnalyticsEngine(store).get_charts())


def cmd_radar(args: argparse.Namespace) -> None:
    store, _ = ingest(args.feed, args.max_history)
    _print(AnalyticsEngine(store).get_node_propagation(args.node))


def cmd_gaps(args: argparse.Namespace) -> None:
    store, _ = ingest(args.feed, args.max_history)
    resolver = GapResolver(store)
    _print({
        "requires_update": resolver.requires_update(),
        "range": resolver.get_history_request_range(),
    })


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="netstats")
    p.add_argument("--max-history", type=int, default=MAX_HISTORY)
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("replay", help="ingest a feed and print a summary")
    s.add_argument("feed", help="JSON-lines file of block reports, or - for stdin")
    s.set_defaults(func=cmd_replay)

    s = sub.add_parser("charts", help="print the dashboard chart bundle")
    s.add_argument("feed")
    s.set_defaults(func=cmd_charts)

    s = sub.add_parser("radar", help="print one node's propagation over recent blocks")
    s.add_argument("feed")
    s.add_argument("--node", required=True)
    s.set_defaults(func=cmd_radar)

    s = sub.add_parser("gaps", help="print the backfill request range")
    s.add_argument("feed")
    s.set_defaults(func=cmd_gaps)

    return p


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.max_history <= 0:
        raise SystemExit("--max-history must be > 0")
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    args.func(args)


if __name__ == "__main__":
    main()
