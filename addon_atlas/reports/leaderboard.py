"""
addon_atlas/reports/leaderboard.py — Creator leaderboard notifier.

Given a creators population, computes one creator's standing against the
whole field and formats a leaderboard excerpt for a chat channel:

    - rank:        static rank by total downloads (descending)
    - percentile:  share of creators with downloads <= this creator's
                   (pandas rank(pct=True, method="max") × 100)
    - dominance:   creator downloads / leader downloads

Messages are chunked on line boundaries so that no chunk exceeds the
channel's per-message size limit, then posted one by one to a webhook.
"""

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Callable, Optional

import pandas as pd

from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig
from addon_atlas.ranking.engine import RankedEntry, rank_population
from addon_atlas.ranking.state import Population, PopulationKind

logger = logging.getLogger(__name__)


@dataclass
class CreatorStanding:
    """
    One creator's position in the creators population.

    Fields:
        name:         Creator name as stored in the snapshot.
        rank:         1-based rank by total downloads.
        total:        Population size.
        downloads:    Creator's total downloads.
        percentile:   0–100; 100 means nobody has more downloads.
        leader:       Name of the rank-1 creator.
        dominance:    downloads / leader downloads (0.0–1.0; 0 if leader has 0).
    """

    name: str
    rank: int
    total: int
    downloads: int
    percentile: float
    leader: str
    dominance: float


def _ranked_by_downloads(population: Population) -> list[RankedEntry]:
    if population.kind is not PopulationKind.CREATORS:
        raise ValueError("Leaderboard requires a creators population.")
    return rank_population(population.records, "downloads")


def _downloads(entry: RankedEntry) -> int:
    value = entry.record.get("downloadCount") or 0
    return int(value)


def creator_standing(population: Population, name: str) -> Optional[CreatorStanding]:
    """
    Compute the standing of `name` (case-insensitive exact match).

    Returns:
        CreatorStanding, or None when the creator is not in the population.
    """
    ranked = _ranked_by_downloads(population)
    target = name.strip().casefold()
    match = next((e for e in ranked if (e.name or "").casefold() == target), None)
    if match is None:
        return None

    downloads = pd.Series([_downloads(e) for e in ranked])
    pct = downloads.rank(pct=True, method="max") * 100
    leader = ranked[0]
    leader_downloads = _downloads(leader)

    return CreatorStanding(
        name=match.name,
        rank=match.rank,
        total=len(ranked),
        downloads=_downloads(match),
        percentile=round(float(pct.iloc[match.rank - 1]), 1),
        leader=leader.name or "",
        dominance=_downloads(match) / leader_downloads if leader_downloads else 0.0,
    )


def _line(entry: RankedEntry) -> str:
    rate = entry.record.get("downloadRate") or 0
    return (
        f"`#{entry.rank}` {entry.name} — {_downloads(entry):,} downloads "
        f"({rate:,.2f}/day)"
    )


def format_leaderboard(
    population: Population,
    name: Optional[str] = None,
    top_n: int = DEFAULT_CONFIG.leaderboard_top_n,
) -> str:
    """
    Format the top `top_n` creators, plus the neighbourhood and standing of
    `name` when given.
    """
    ranked = _ranked_by_downloads(population)
    lines = ["**Creator Leaderboard**"]
    if population.generated_at:
        lines.append(f"_Data generated: {population.generated_at}_")
    lines.append("")
    lines.extend(_line(e) for e in ranked[:top_n])

    if name:
        standing = creator_standing(population, name)
        if standing is None:
            lines.extend(["", f"No creator named {name!r} in the leaderboard."])
        else:
            if standing.rank > top_n:
                lo = max(top_n, standing.rank - 2)
                if lo > top_n:
                    lines.append("…")
                lines.extend(_line(e) for e in ranked[lo:standing.rank + 1])
            lines.extend([
                "",
                (
                    f"**{standing.name}** is #{standing.rank} of {standing.total} "
                    f"({standing.percentile:.1f}th percentile), "
                    f"with {standing.dominance:.1%} of {standing.leader}'s downloads."
                ),
            ])
    return "\n".join(lines)


def chunk_message(text: str, limit: int = DEFAULT_CONFIG.message_size_limit) -> list[str]:
    """
    Split `text` into chunks of at most `limit` characters.

    Splits on line boundaries; a single line longer than `limit` is cut.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def post_leaderboard(
    webhook_url: str,
    chunks: list[str],
    opener: Optional[Callable] = None,
    config: AddonAtlasConfig = DEFAULT_CONFIG,
) -> int:
    """
    POST each chunk as {"content": chunk} to a chat webhook, in order.

    Stops at the first failure.

    Returns:
        Number of chunks successfully posted.
    """
    opener = opener or urllib.request.urlopen
    posted = 0
    for chunk in chunks:
        req = urllib.request.Request(
            webhook_url,
            data=json.dumps({"content": chunk}).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with opener(req, timeout=config.request_timeout_seconds):
                pass
        except urllib.error.HTTPError as exc:
            logger.warning("Leaderboard post failed: HTTP %d", exc.code)
            break
        except urllib.error.URLError as exc:
            logger.warning("Leaderboard post failed: %s", exc.reason)
            break
        posted += 1
    logger.info("Posted %d/%d leaderboard chunks.", posted, len(chunks))
    return posted
