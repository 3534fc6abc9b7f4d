# src/unify_build/managers/progress_manager.py
import logging
import sys
from typing import Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Manages the lifecycle of the tqdm progress bar shown during a build.
    Disabled bars still count, so callers never branch on `enabled`.
    """

    def __init__(self, total: int, desc: str = "Composing", unit: str = "page", enabled: bool = True):
        if total <= 0:
            total = 1

        self.succeeded = 0
        self.failures = 0
        self.pbar: Optional[tqdm] = tqdm(
            total=total,
            desc=desc,
            unit=f" {unit}",
            dynamic_ncols=True,
            smoothing=0.1,
            mininterval=0.5,
            postfix={"ok": 0, "failures": 0},
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}] {postfix}",
            file=sys.stdout,
            disable=not enabled,
        )

    def advance(self, success: bool = True, steps: int = 1) -> None:
        """Counts one finished page and refreshes the status postfix."""
        if success:
            self.succeeded += steps
        else:
            self.failures += steps

        if self.pbar:
            self.pbar.update(steps)
            self.pbar.set_postfix({"ok": self.succeeded, "failures": self.failures}, refresh=False)

    def close(self) -> None:
        if not self.pbar:
            return
        try:
            self.pbar.set_postfix({"ok": self.succeeded, "failures": self.failures}, refresh=True)
            self.pbar.close()
            logger.debug("ProgressManager: Progress bar closed.")
        except (OSError, ValueError) as e:
            logger.error("Error encountered while closing progress bar: %s", e)
        finally:
            self.pbar = None
