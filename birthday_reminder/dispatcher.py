import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from birthday_reminder.birthdays import Celebrant

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


@dataclass
class BatchResult:
    index: int
    sent: int = 0
    failed: int = 0


@dataclass
class DispatchReport:
    batches: List[BatchResult] = field(default_factory=list)
    failures: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def sent(self):
        return sum(b.sent for b in self.batches)

    @property
    def failed(self):
        return sum(b.failed for b in self.batches)

    @property
    def processed(self):
        return self.sent + self.failed


def iter_batches(items: Sequence, batch_size: int):
    """Yield consecutive slices of at most ``batch_size`` items, in order."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    for start in range(0, len(items), batch_size):
        yield items[start:start + batch_size]


def dispatch_notifications(
    celebrants: Sequence[Celebrant],
    send: Callable[[Celebrant], None],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> DispatchReport:
    """
    Call ``send`` exactly once per celebrant.

    Celebrants are processed in groups of ``batch_size``. Sends inside a group
    run concurrently, and the next group only starts once every send of the
    current one has finished, successfully or not. A failing send is logged
    and counted; it never stops the remaining sends.
    """
    report = DispatchReport()
    batches = list(iter_batches(list(celebrants), batch_size))

    with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="birthday-send") as pool:
        for index, batch in enumerate(batches, start=1):
            futures = {pool.submit(send, celebrant): celebrant for celebrant in batch}
            wait(futures)

            result = BatchResult(index=index)
            for future, celebrant in futures.items():
                error = future.exception()
                if error is None:
                    result.sent += 1
                    logger.info("✅ Birthday email sent to %s", celebrant.email)
                else:
                    result.failed += 1
                    report.failures.append((celebrant.email, error))
                    logger.error("❌ Failed to send birthday email to %s: %s", celebrant.email, error)

            report.batches.append(result)
            logger.info(
                "📦 Batch %d/%d settled: sent=%d, failed=%d",
                index, len(batches), result.sent, result.failed,
            )

    logger.info("🎉 %d celebrant(s) processed, %d failed", report.processed, report.failed)
    return report
