"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, graphlens.toml only contains
overrides. An empty (or missing) file yields a fully working engine.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from graphlens.domain.types import CommunityAlgorithm, PathMode

# --- graphlens.toml sections ---
#
# [layout] and [filters] reuse LayoutSettings / GraphFilters from the
# domain layer directly; the sections below only cover engine knobs that
# have no domain counterpart.


class AnalyticsConfig(BaseModel):
    """[analytics] section."""

    model_config = {"frozen": True}

    community_algorithm: CommunityAlgorithm = CommunityAlgorithm.LOUVAIN
    community_seed: int = 42
    resolution: float = Field(default=1.0, gt=0)
    weighted_centrality: bool = False
    central_fraction: float = Field(default=0.10, gt=0, le=1)
    bridge_fraction: float = Field(default=0.05, gt=0, le=1)
    path_mode: PathMode = PathMode.WEIGHTED
    max_path_depth: int = Field(default=5, ge=1)


class BuilderConfig(BaseModel):
    """[builder] section."""

    model_config = {"frozen": True}

    wikilink_strength: float = Field(default=0.9, ge=0, le=1)
    mention_strength: float = Field(default=0.6, ge=0, le=1)
    parent_strength: float = Field(default=1.0, ge=0, le=1)
    mention_links: bool = True
    shared_tag_links: bool = True
    tag_nodes: bool = False


class ExportConfig(BaseModel):
    """[export] section."""

    model_config = {"frozen": True}

    include_metadata: bool = True
    include_positions: bool = True
    format_version: str = "1.0"


class SchedulerConfig(BaseModel):
    """[scheduler] section."""

    model_config = {"frozen": True}

    max_workers: int = Field(default=2, ge=1)
    timeout: float | None = Field(default=30.0, gt=0)
