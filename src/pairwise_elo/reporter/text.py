"""Text reporter for Pairwise Elo cohorts.

Provides a human-readable leaderboard for one cohort: rank, rounded rating,
matches and wins.
"""

from __future__ import annotations

from ..models import CohortData
from ..storage.store import RatingStore


class TextReporter:
    """Formats cohort standings as human-readable text.

    Example:
        ```python
        reporter = TextReporter()
        print(reporter.format_leaderboard(store.get_cohort(key), title="Folder: notes"))
        ```
    """

    def format_leaderboard(
        self,
        cohort: CohortData | None,
        title: str = "Leaderboard",
        limit: int | None = None,
    ) -> str:
        """Format a cohort's standings as text.

        Args:
            cohort: The cohort to format. ``None`` is treated as empty.
            title: Heading line.
            limit: Show at most this many rows.

        Returns:
            Formatted string.
        """
        players = cohort.players if cohort is not None else {}
        lines = [
            title,
            f"{'=' * 50}",
            f"Items: {len(players)}",
        ]

        if not players:
            lines.append("No comparisons yet.")
            return "\n".join(lines)

        ranks = RatingStore.compute_rank(cohort)
        ordered = sorted(ranks.items(), key=lambda kv: (kv[1], kv[0]))
        if limit is not None:
            ordered = ordered[:limit]

        lines.extend(
            [
                "",
                f"  {'Rank':<6} {'Item':<30} {'Rating':<8} {'Matches':<8} {'Wins'}",
                f"  {'-' * 60}",
            ]
        )
        for item_id, rank in ordered:
            player = players[item_id]
            lines.append(
                f"  {rank:<6} {item_id:<30} {round(player.rating):<8} "
                f"{player.matches:<8} {player.wins}"
            )

        return "\n".join(lines)


def print_leaderboard(cohort: CohortData | None, title: str = "Leaderboard") -> None:
    """Convenience function to print a cohort's standings.

    Example:
        ```python
        from pairwise_elo import print_leaderboard

        print_leaderboard(store.get_cohort("folder:notes"), title="Folder: notes")
        ```
    """
    print(TextReporter().format_leaderboard(cohort, title=title))
