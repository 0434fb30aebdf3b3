"""
Review Gate Interface

Post-recording approve/retake decision. The real gate plays the file back
to the operator; the orchestrator only needs the boolean answer.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional


class ReviewGateInterface(ABC):
    """
    Decides whether a finished recording is kept.
    """

    @abstractmethod
    def review(self, output_path: Path) -> bool:
        """
        Present the produced file and collect the decision.

        Args:
            output_path: Finished media file

        Returns:
            True to keep the file, False to delete it (retake)
        """
        pass


class AutoReviewGate(ReviewGateInterface):
    """Always answers the same way; used by tests and unattended runs"""

    def __init__(self, keep: bool = True):
        self.keep = keep
        self.reviewed: List[Path] = []

    def review(self, output_path: Path) -> bool:
        self.reviewed.append(output_path)
        return self.keep


class ConsoleReviewGate(ReviewGateInterface):
    """
    Asks on the terminal.

    An empty answer or closed stdin keeps the file, matching a review
    window closed without choosing.
    """

    def __init__(self, prompt: Callable[[str], str] = input, default_keep: bool = True):
        self.logger = logging.getLogger(__name__)
        self._prompt = prompt
        self.default_keep = default_keep

    def review(self, output_path: Path) -> bool:
        answer: Optional[str]
        try:
            answer = self._prompt(f"Keep {output_path.name}? [Y/n] ")
        except EOFError:
            answer = None

        if not answer or not answer.strip():
            self.logger.info(f"No review answer for {output_path.name}, keep={self.default_keep}")
            return self.default_keep
        return answer.strip().lower() not in ("n", "no", "r", "retake")
