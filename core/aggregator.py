"""
Unsafe Aggregator
Walks a repository, scans every candidate file and folds the per-file counts
into one CounterBlock. The first traversal or scan error aborts the whole run;
nothing partial is ever returned.
"""

import asyncio
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from core.counters import CounterBlock, PerFileCounts, Report
from core.scanner import RUST_EXTENSIONS, FileScanner

ScanFunction = Callable[[Path], PerFileCounts]


class UnsafeAggregator:
    def __init__(self, scan_file: Optional[ScanFunction] = None,
                 extensions: Iterable[str] = RUST_EXTENSIONS, include_tests: bool = False):
        if scan_file is None:
            from analyzers.unsafe_scanner import get_scanner
            scan_file = get_scanner(include_tests).scan_file
        self.scan_file = scan_file
        self.extensions = tuple(extensions)

    def candidates(self, root: Union[str, Path]):
        return FileScanner(root, self.extensions).scan()

    def aggregate(self, root: Union[str, Path]) -> CounterBlock:
        """Single pass: walk, scan and fold as files are found."""
        counter_block = CounterBlock.zero()
        for file_path in self.candidates(root):
            counter_block = counter_block + self.scan_file(file_path).counters
        return counter_block

    async def aggregate_async(self, root: Union[str, Path], max_workers: int = 4) -> CounterBlock:
        """
        Concurrent variant of aggregate().
        At most `max_workers` files are scanned at once on worker threads. Addition
        is commutative, so results are folded in completion order. The first error
        seen cancels the scans still outstanding and is raised as-is.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        counter_block = CounterBlock.zero()
        pending = set()
        try:
            # Directory listing blocks, so the walk also advances on a worker thread
            candidates = self.candidates(root)
            while True:
                file_path = await asyncio.to_thread(next, candidates, None)
                if file_path is None:
                    break
                if len(pending) >= max_workers:
                    done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                    counter_block = self._fold_done(counter_block, done)
                pending.add(asyncio.ensure_future(asyncio.to_thread(self.scan_file, file_path)))

            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                counter_block = self._fold_done(counter_block, done)
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return counter_block

    @staticmethod
    def _fold_done(counter_block: CounterBlock, done) -> CounterBlock:
        error = None
        for task in done:
            exc = task.exception()
            if exc is not None:
                error = error or exc
            elif error is None:
                counter_block = counter_block + task.result().counters
        if error is not None:
            raise error
        return counter_block


def find_unsafe(root: Union[str, Path], include_tests: bool = False, max_workers: int = 1) -> CounterBlock:
    """Scan a local tree; more than one worker switches to the concurrent fold."""
    aggregator = UnsafeAggregator(include_tests=include_tests)
    if max_workers > 1:
        return asyncio.run(aggregator.aggregate_async(root, max_workers=max_workers))
    return aggregator.aggregate(root)


def build_report(root: Union[str, Path], include_tests: bool = False, max_workers: int = 1) -> Report:
    return Report.from_counters(find_unsafe(root, include_tests=include_tests, max_workers=max_workers))
