#!/usr/bin/env python3
"""
Parallel upstream branches joined without cancelling each other
"""

import logging
import concurrent.futures
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class BranchOutcome:
    """Result of one branch: either a value or the exception it raised"""
    name: str
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def run_branches(tasks: Dict[str, Callable[[], Any]], max_workers: int = 4) -> Dict[str, BranchOutcome]:
    """
    Run independent calls concurrently and capture every outcome.

    A failing branch never cancels its siblings and nothing is raised past the
    join; callers decide per branch whether a failure is fatal.
    """
    if not tasks:
        return {}

    outcomes = {}
    workers = max(1, min(max_workers, len(tasks)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_name = {executor.submit(task): name for name, task in tasks.items()}

        for future in concurrent.futures.as_completed(future_to_name):
            name = future_to_name[future]
            try:
                outcomes[name] = BranchOutcome(name, value=future.result())
            except Exception as e:
                logger.debug(f"Branch {name} failed: {e}")
                outcomes[name] = BranchOutcome(name, error=e)

    return outcomes
