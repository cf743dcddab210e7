"""
Token usage accounting for a batch run.
"""

import json
from pathlib import Path

from .config import logger
from .schemas import BatchUsageSummary, UsageMetrics


class UsageAccumulator:
    """
    Collects per-document token usage and its totals.

    One accumulator belongs to one batch run; it is written once at the end.
    """

    def __init__(self) -> None:
        self._per_file: dict[str, UsageMetrics] = {}

    def record(self, filename: str, usage: UsageMetrics) -> None:
        """Record the usage of one document; a repeated filename replaces its entry."""
        self._per_file[filename] = usage

    @property
    def _totals(self) -> UsageMetrics:
        return sum(self._per_file.values(), UsageMetrics())

    @property
    def summary(self) -> BatchUsageSummary:
        return BatchUsageSummary(
            per_file=dict(self._per_file),
            totals=self._totals,
            document_count=len(self._per_file),
        )

    def format_report(self) -> str:
        """Format the usage breakdown as human-readable text."""
        lines = [
            "=" * 60,
            "TOKEN USAGE SUMMARY",
            "=" * 60,
        ]

        if not self._per_file:
            lines.append("No token usage recorded.")
        else:
            lines.append("Per file:")
            for filename, usage in self._per_file.items():
                lines.append(
                    f"  {filename}: prompt={usage.prompt_tokens}, "
                    f"completion={usage.completion_tokens}, total={usage.total_tokens}"
                )

        lines.extend([
            "",
            f"Documents:         {len(self._per_file)}",
            f"Prompt tokens:     {self._totals.prompt_tokens}",
            f"Completion tokens: {self._totals.completion_tokens}",
            f"Total tokens:      {self._totals.total_tokens}",
            "=" * 60,
        ])

        return "\n".join(lines)

    def write(self, output_path: Path) -> None:
        """Write the usage summary as JSON, replacing any previous summary."""
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.summary.model_dump(mode="json", by_alias=True), f, indent=2)

        logger.info(f"Token usage summary saved to: {output_path}")
