"""簡易ロギング。実行が終了したらサマリを必ず出せるようにする。"""
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mailbox_dash.api.models import CrawlRun


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_run_summary(logger: logging.Logger, run: "CrawlRun") -> None:
    logger.info(
        "run_summary run_id=%s status=%s found=%s validated=%s skipped=%s failed=%s errors_sample=%s",
        run.run_id,
        run.status.value,
        run.stats.found,
        run.stats.validated,
        run.stats.skipped,
        run.stats.failed,
        len(run.errors_sample),
    )
