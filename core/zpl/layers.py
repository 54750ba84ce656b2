"""Grouping of stacked text layers (shadow/bold copies of one visual field)."""

from __future__ import annotations

from dataclasses import dataclass

from core.zpl.models import ZplAnalysis, ZplField

DEFAULT_LAYER_TOLERANCE = 2


@dataclass(frozen=True)
class FieldCluster:
    """Indices of text fields drawn at (almost) the same spot."""

    representative: int
    members: tuple[int, ...]


def _is_near(a: ZplField, b: ZplField, tolerance: int) -> bool:
    return (
        abs(a.x - b.x) <= tolerance
        and abs(a.y - b.y) <= tolerance
        and a.field_type == b.field_type
    )


def cluster_layers(
    analysis: ZplAnalysis, tolerance: int = DEFAULT_LAYER_TOLERANCE
) -> list[FieldCluster]:
    """Cluster non-empty text fields; the result is sorted top-to-bottom, left-to-right."""

    groups: list[list[int]] = []
    for index, item in enumerate(analysis.fields):
        if item.field_type != "text" or not item.content.strip():
            continue
        for group in groups:
            if _is_near(analysis.fields[group[0]], item, tolerance):
                group.append(index)
                break
        else:
            groups.append([index])

    clusters = [
        FieldCluster(
            representative=min(group, key=lambda i: (analysis.fields[i].is_reversed, i)),
            members=tuple(group),
        )
        for group in groups
    ]
    clusters.sort(
        key=lambda cluster: (
            analysis.fields[cluster.representative].y,
            analysis.fields[cluster.representative].x,
        )
    )
    return clusters


def layers_of(
    analysis: ZplAnalysis, index: int, tolerance: int = DEFAULT_LAYER_TOLERANCE
) -> tuple[int, ...]:
    """Return the cluster members containing ``index`` (just ``index`` if unclustered)."""

    for cluster in cluster_layers(analysis, tolerance):
        if index in cluster.members:
            return cluster.members
    return (index,)
