"""Search configuration for DevCanvas.

Holds the hybrid fusion weights, BM25 parameters and query-time limits.
"""

import argparse
import os
from typing import Any

from pydantic import BaseModel, Field, model_validator


class SearchConfig(BaseModel):
    """Search configuration."""

    dense_weight: float = Field(
        default=0.5, ge=0.0, description="Weight of dense cosine similarity in hybrid score"
    )
    sparse_weight: float = Field(
        default=0.5, ge=0.0, description="Weight of sparse dot product in hybrid score"
    )

    bm25_k1: float = Field(default=1.2, gt=0.0, description="BM25 term frequency saturation")
    bm25_b: float = Field(
        default=0.75, ge=0.0, le=1.0, description="BM25 document length normalization"
    )

    max_results: int = Field(default=10, gt=0, description="Default number of results")

    candidate_multiplier: int = Field(
        default=3,
        ge=1,
        description="Hybrid candidates fetched per requested result before re-ranking",
    )

    rewrite_query: bool = Field(
        default=True, description="Rewrite queries through the generation capability"
    )
    expand_synonyms: bool = Field(
        default=True, description="Add programming synonyms to the sparse query form"
    )
    diversify_results: bool = Field(
        default=True,
        description="Reward the first result of each chunk kind, framework and file",
    )

    embedding_timeout: float = Field(
        default=15.0, gt=0.0, description="Timeout in seconds for the query embedding"
    )
    generation_timeout: float = Field(
        default=30.0, gt=0.0, description="Timeout in seconds for the query rewrite"
    )

    @model_validator(mode="after")
    def validate_weights(self) -> "SearchConfig":
        if self.dense_weight == 0.0 and self.sparse_weight == 0.0:
            raise ValueError("dense_weight and sparse_weight cannot both be 0")
        return self

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--dense-weight", type=float, help="Dense similarity weight (default: 0.5)"
        )
        parser.add_argument(
            "--sparse-weight", type=float, help="Sparse similarity weight (default: 0.5)"
        )
        parser.add_argument(
            "--no-rewrite",
            action="store_true",
            help="Skip the LLM query rewrite step",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if dense := os.getenv("DEVCANVAS_SEARCH__DENSE_WEIGHT"):
            config["dense_weight"] = float(dense)
        if sparse := os.getenv("DEVCANVAS_SEARCH__SPARSE_WEIGHT"):
            config["sparse_weight"] = float(sparse)
        if k1 := os.getenv("DEVCANVAS_SEARCH__BM25_K1"):
            config["bm25_k1"] = float(k1)
        if b := os.getenv("DEVCANVAS_SEARCH__BM25_B"):
            config["bm25_b"] = float(b)
        if max_results := os.getenv("DEVCANVAS_SEARCH__MAX_RESULTS"):
            config["max_results"] = int(max_results)
        if rewrite := os.getenv("DEVCANVAS_SEARCH__REWRITE_QUERY"):
            config["rewrite_query"] = rewrite.lower() in ("1", "true", "yes")
        if synonyms := os.getenv("DEVCANVAS_SEARCH__EXPAND_SYNONYMS"):
            config["expand_synonyms"] = synonyms.lower() in ("1", "true", "yes")
        if diversify := os.getenv("DEVCANVAS_SEARCH__DIVERSIFY_RESULTS"):
            config["diversify_results"] = diversify.lower() in ("1", "true", "yes")
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        if getattr(args, "dense_weight", None) is not None:
            overrides["dense_weight"] = args.dense_weight
        if getattr(args, "sparse_weight", None) is not None:
            overrides["sparse_weight"] = args.sparse_weight
        if getattr(args, "no_rewrite", False):
            overrides["rewrite_query"] = False
        if getattr(args, "limit", None):
            overrides["max_results"] = args.limit
        return overrides
