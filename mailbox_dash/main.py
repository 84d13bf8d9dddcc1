"""
CLI エントリーポイント。stats / mailboxes / runs / trigger / watch / cancel を処理。
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# プロジェクトルートをパスに追加
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mailbox directory crawl dashboard")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory mock backend")
    parser.add_argument("--config", type=str, metavar="PATH", help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command")

    p_stats = sub.add_parser("stats", help="Show directory stats")
    p_stats.add_argument("--refresh", action="store_true", help="Recompute stats before showing")

    p_mb = sub.add_parser("mailboxes", help="List mailboxes")
    p_mb.add_argument("--page", type=int, default=1)
    p_mb.add_argument("--page-size", type=int, default=None)
    p_mb.add_argument("--state", type=str)
    p_mb.add_argument("--cmra", choices=["Y", "N"])
    p_mb.add_argument("--rdi", choices=["Residential", "Commercial"])
    p_mb.add_argument("--source", type=str)
    p_mb.add_argument("--search", type=str)

    sub.add_parser("runs", help="List crawl runs (newest first)")

    p_trigger = sub.add_parser("trigger", help="Start a crawl run")
    p_trigger.add_argument("links", nargs="*", help="Links to crawl (default: crawl.seed_links)")
    p_trigger.add_argument("--watch", action="store_true", help="Poll until the run finishes")

    p_watch = sub.add_parser("watch", help="Poll a run until it finishes")
    p_watch.add_argument("run_id")

    p_cancel = sub.add_parser("cancel", help="Request cancellation of a running run")
    p_cancel.add_argument("run_id")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    from dataclasses import replace

    from mailbox_dash.backend import get_backend
    from mailbox_dash.config import load_config
    from mailbox_dash.errors import MailboxDashError
    from mailbox_dash.params import DashboardParams
    from mailbox_dash.util.log import get_logger, setup_logging

    setup_logging()
    logger = get_logger("main")
    params = DashboardParams.from_config(load_config(args.config))
    if args.mock:
        params = replace(params, backend_mode="mock")
    backend = get_backend(params)

    try:
        return _dispatch(args, backend, params)
    except MailboxDashError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1


def _dispatch(args: argparse.Namespace, backend, params) -> int:
    from mailbox_dash.api.models import MailboxFilter

    if args.command == "stats":
        stats = backend.refresh_stats() if args.refresh else backend.get_stats()
        print(f"total={stats.total_mailboxes} commercial={stats.commercial_count} "
              f"residential={stats.residential_count} avg_price={stats.avg_price:.2f}")
        for state, count in sorted(stats.by_state.items(), key=lambda kv: -kv[1]):
            print(f"  {state}: {count}")
        for source, count in sorted(stats.by_source.items()):
            print(f"  [{source}] {count}")
        return 0

    if args.command == "mailboxes":
        flt = MailboxFilter(
            page=args.page,
            page_size=args.page_size or params.page_size,
            state=args.state,
            cmra=args.cmra,
            rdi=args.rdi,
            source=args.source,
            search=args.search,
        )
        page = backend.query(flt)
        for m in page.items:
            print(f"{m.mailbox_id}\t{m.name}\t{m.city or '-'}, {m.state or '-'}\t${m.price:.2f}\t{m.rdi}\t{m.cmra}")
        print(f"page {page.page}/{max(page.page_count, 1)} total={page.total}")
        return 0

    if args.command == "runs":
        for run in backend.list_runs():
            s = run.stats
            print(f"{run.run_id}\t{run.status.value}\tfound={s.found} validated={s.validated} "
                  f"skipped={s.skipped} failed={s.failed}")
        return 0

    if args.command == "trigger":
        run_id = backend.trigger_run(args.links or list(params.seed_links))
        print(run_id)
        if args.watch:
            return _watch(backend, params, run_id)
        return 0

    if args.command == "watch":
        backend.remember_run(args.run_id)
        return _watch(backend, params, args.run_id)

    if args.command == "cancel":
        backend.cancel_run(args.run_id)
        print(f"cancel requested: {args.run_id}")
        return 0
    return 2


def _watch(backend, params, run_id: str) -> int:
    from mailbox_dash.api.models import RunStatus
    from mailbox_dash.crawl.poller import RunPoller
    from mailbox_dash.util.log import get_logger, log_run_summary

    logger = get_logger("watch")
    with RunPoller(
        backend.list_runs,
        read_run=backend.get_run,
        interval_sec=params.poll_interval_sec,
        on_terminal=lambda run: log_run_summary(logger, run),
    ) as poller:
        poller.track(run_id)
        poller.start()
        poller.run_until_idle()
        run = poller.view.get(run_id)
    if run is None:
        logger.error("run %s not found", run_id)
        return 1
    return 0 if run.status in (RunStatus.SUCCESS, RunStatus.PARTIAL_HALT) else 1


if __name__ == "__main__":
    sys.exit(main())
