"""Row reconstruction from absolutely positioned text runs and link annotations"""
import logging
from collections import defaultdict
from typing import Dict, List, Sequence, Set, Tuple

from . import config
from .models import LinkAnnotation, Row, TextRun
from .row_parser import looks_like_product_row

logger = logging.getLogger(__name__)


def _join_runs(runs: Sequence[TextRun]) -> str:
    ordered = sorted(runs, key=lambda r: r.x)
    return " ".join(r.text for r in ordered)


def _in_claimed_band(y: float, bands: List[Tuple[float, float]]) -> bool:
    return any(low <= y <= high for low, high in bands)


def reconstruct_rows(text_runs: Sequence[TextRun],
                     links: Sequence[LinkAnnotation],
                     tolerance: float = config.ROW_Y_TOLERANCE,
                     bucket_size: float = config.ROW_BUCKET_SIZE) -> List[Row]:
    """
    Group a page's text runs into rows

    Linked rows are built first: every run within +/- tolerance of a link's
    baseline joins the row of the nearest such link and the band is claimed.
    Remaining runs are bucketed by rounded y; buckets outside every claimed
    band become URL-less rows, kept only when they look like product data.

    Args:
        text_runs: Positioned text runs of one page
        links: URI link annotations of the same page
        tolerance: Half-height of the band claimed by a link row
        bucket_size: Rounding step for grouping un-linked runs

    Returns:
        URL rows (in link order) followed by URL-less rows (top to bottom)
    """
    rows: List[Row] = []
    claimed_bands = [(link.baseline - tolerance, link.baseline + tolerance) for link in links]
    used: Set[int] = set()

    # 1. Rows anchored by a link; a run inside several bands goes to the nearest baseline
    members: Dict[int, List[TextRun]] = defaultdict(list)
    for i, run in enumerate(text_runs):
        best_link = None
        best_distance = None
        for link_index, link in enumerate(links):
            distance = abs(run.y - link.baseline)
            if distance <= tolerance and (best_distance is None or distance < best_distance):
                best_link, best_distance = link_index, distance
        if best_link is not None:
            members[best_link].append(run)
            used.add(i)

    for link_index, link in enumerate(links):
        if not members[link_index]:
            logger.debug("Link without text in its band: %s", link.url)
            continue
        rows.append(Row(text=_join_runs(members[link_index]), url=link.url))

    # 2. Pure table rows outside the claimed bands
    buckets: Dict[float, List[TextRun]] = defaultdict(list)
    for i, run in enumerate(text_runs):
        if i in used:
            continue
        buckets[round(run.y / bucket_size) * bucket_size].append(run)

    for y in sorted(buckets):
        if _in_claimed_band(y, claimed_bands):
            logger.debug("Skipped row at y=%s (within claimed band)", y)
            continue

        text = _join_runs(buckets[y])
        if looks_like_product_row(text):
            rows.append(Row(text=text, url=None))

    return rows
