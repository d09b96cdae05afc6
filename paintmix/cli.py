from __future__ import annotations

import argparse
import logging
import os
import sys
import uuid
from contextlib import closing
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Sequence

from paintmix.data.app_paths import data_root, logs_root
from paintmix.data.color_space import rgb_to_cmyk, rgb_to_hex, rgb_to_hsl, rgb_to_lab
from paintmix.data.color_store import CsvColorStore
from paintmix.data.engine_config import get_engine_config
from paintmix.data.rename_pigment import rename_across_formulas
from paintmix.data.sqlite_store import SqliteColorStore
from paintmix.errors import PaintmixError
from paintmix.formula.duplicates import find_duplicate_groups, parse_ratio
from paintmix.formula.tokenizer import calculate_total_amount
from paintmix.search.nearest import find_nearest, match_summary, resolve_target_rgb

log = logging.getLogger("paintmix.cli")

SQLITE_SUFFIXES = {".db", ".sqlite", ".sqlite3"}


class _SessionFilter(logging.Filter):
    """Inject a stable session id into every record."""
    def __init__(self, sid: str):
        super().__init__()
        self.sid = sid

    def filter(self, record: logging.LogRecord) -> bool:
        record.sid = self.sid
        return True


def _setup_logging() -> str:
    """Set up application logging and return the session ID."""
    log_dir = logs_root()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "paintmix.log"

    fmt = "%(asctime)s | %(levelname)s | %(name)s | sid=%(sid)s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    level_name = os.getenv("PAINTMIX_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # main() may run more than once per process (tests, embedding)
    for h in list(root_logger.handlers):
        if getattr(h, "_paintmix_handler", False):
            root_logger.removeHandler(h)
            h.close()

    fh = RotatingFileHandler(str(log_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    fh.setFormatter(logging.Formatter(fmt, datefmt))
    fh._paintmix_handler = True
    root_logger.addHandler(fh)

    # stdout carries command output; log lines go to stderr
    ch = logging.StreamHandler(stream=sys.stderr)
    ch.setFormatter(logging.Formatter(fmt, datefmt))
    ch._paintmix_handler = True
    root_logger.addHandler(ch)

    sid = os.getenv("PAINTMIX_SESSION_ID") or (
        datetime.now().strftime("%Y%m%d-%H%M%S") + "-" + uuid.uuid4().hex[:6]
    )
    sess_filter = _SessionFilter(sid)
    fh.addFilter(sess_filter)
    ch.addFilter(sess_filter)

    logging.info("Logging initialized. Log file=%s level=%s", log_path, level_name)
    return sid


def open_store(path: Optional[str]):
    """CSV store by default; SQLite for .db/.sqlite/.sqlite3 paths."""
    p = Path(path) if path else data_root() / "custom_colors.csv"
    if p.suffix.lower() in SQLITE_SUFFIXES:
        return SqliteColorStore(p)
    return CsvColorStore(p)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def _cmd_duplicates(args, out) -> int:
    config = get_engine_config()
    with closing(open_store(args.store)) as store:
        records = store.load_records()
    groups = find_duplicate_groups(records, min_size=args.min_size, unit_table=config.unit_table())
    if not groups:
        print("No duplicate formulas found.", file=out)
        return 0
    for n, group in enumerate(groups, 1):
        ratio = " : ".join(f"{i['name']} {i['ratio']:g}" for i in parse_ratio(group.signature)["items"])
        print(f"[{n}] {ratio}", file=out)
        for rec in group.records:
            total = calculate_total_amount(rec.formula, config.unit_table(), config.drop_to_gram())
            print(f"    {rec.id}\t{rec.color_code}\t{rec.formula}\t(~{total:g} g)", file=out)
    return 0


def _cmd_match(args, out) -> int:
    config = get_engine_config()
    limit = args.limit if args.limit is not None else config.match_limit()
    method = args.method or config.delta_e_method()
    with closing(open_store(args.store)) as store:
        records = store.load_records()
    results = find_nearest(
        args.color, records, limit=limit, method=method,
        category_fallbacks=config.category_fallback_rgb(),
    )
    if not results:
        print("No colors to match against.", file=out)
        return 0
    for res in results:
        s = match_summary(res)
        print(f"{s['delta_e']:>7.2f}  {s['id']}\t{s['color_code']}\t{s['formula']}", file=out)
    return 0


def _cmd_rename(args, out) -> int:
    with closing(open_store(args.store)) as store:
        changed = rename_across_formulas(store, args.old, args.new)
    print(f"Updated {changed} formula(s): {args.old} -> {args.new}", file=out)
    return 0


def _cmd_convert(args, out) -> int:
    r, g, b = resolve_target_rgb(args.color)
    c, m, y, k = rgb_to_cmyk(r, g, b)
    h, s, l = rgb_to_hsl(r, g, b)
    L, a, b_ = rgb_to_lab(r, g, b)
    print(f"RGB  {r}, {g}, {b}", file=out)
    print(f"HEX  {rgb_to_hex(r, g, b)}", file=out)
    print(f"CMYK {c}, {m}, {y}, {k}", file=out)
    print(f"HSL  {h}, {s}, {l}", file=out)
    print(f"LAB  {L:.2f}, {a:.2f}, {b_:.2f}", file=out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paintmix",
        description="Duplicate formulas, nearest colors and pigment renames for custom paint colors.",
    )
    parser.add_argument("--store", help="CSV or SQLite (.db) store (default: <data root>/custom_colors.csv)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("duplicates", help="List formulas with the same pigment ratios")
    p.add_argument("--min-size", type=int, default=2)
    p.set_defaults(func=_cmd_duplicates)

    p = sub.add_parser("match", help="Find the stored colors closest to COLOR")
    p.add_argument("color", help="#RRGGBB, rgb(r,g,b), cmyk(c,m,y,k) or hsl(h,s,l)")
    p.add_argument("--limit", type=int, default=None)
    p.add_argument("--method", choices=["76", "94", "2000"], default=None)
    p.set_defaults(func=_cmd_match)

    p = sub.add_parser("rename", help="Rename a pigment in every formula")
    p.add_argument("old")
    p.add_argument("new")
    p.set_defaults(func=_cmd_rename)

    p = sub.add_parser("convert", help="Show a color in every notation")
    p.add_argument("color")
    p.set_defaults(func=_cmd_convert)
    return parser


def main(argv: Optional[Sequence[str]] = None, out=None) -> int:
    out = out or sys.stdout
    args = build_parser().parse_args(argv)
    _setup_logging()
    try:
        return args.func(args, out)
    except (PaintmixError, ValueError, OSError) as e:
        # the stderr handler is the user-facing error message
        log.error("%s failed: %s", args.command, e)
        return 1
