from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .api import SalesforceAPI, SFConfig
from .service import DataService, RestDataService
from .sf_cli import SfCliDataService
from .soql import DEFAULT_LIMIT
from .table import DEFAULT_PAGE_SIZE, PAGE_SIZES
from .utils import is_truthy

_logger = logging.getLogger(__name__)

BACKENDS = ("rest", "sf-cli")


@dataclass
class BuilderConfig:
    """Settings for the query builder itself (auth lives in SFConfig)."""

    backend: str = "rest"
    target_org: Optional[str] = None
    query_limit: int = DEFAULT_LIMIT
    page_size: int = DEFAULT_PAGE_SIZE
    tooling: bool = False

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"SFQUERY_BACKEND must be one of {BACKENDS}, got {self.backend!r}")
        if self.page_size not in PAGE_SIZES:
            raise ValueError(f"SFQUERY_PAGE_SIZE must be one of {PAGE_SIZES}, got {self.page_size}")
        if self.query_limit <= 0:
            raise ValueError("SFQUERY_QUERY_LIMIT must be positive")

    @classmethod
    def from_env(cls) -> BuilderConfig:
        return cls(
            backend=os.getenv("SFQUERY_BACKEND", "rest").strip().lower(),
            target_org=os.getenv("SFQUERY_TARGET_ORG") or None,
            query_limit=int(os.getenv("SFQUERY_QUERY_LIMIT", str(DEFAULT_LIMIT))),
            page_size=int(os.getenv("SFQUERY_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
            tooling=is_truthy(os.getenv("SFQUERY_TOOLING")),
        )


def make_service(cfg: BuilderConfig, sf_cfg: Optional[SFConfig] = None) -> DataService:
    """Build the data service the config asks for."""
    if cfg.backend == "sf-cli":
        _logger.debug("Using sf CLI backend (target org: %s)", cfg.target_org or "<default>")
        return SfCliDataService(target_org=cfg.target_org, tooling=cfg.tooling)
    api = SalesforceAPI(sf_cfg or SFConfig.from_env(), tooling=cfg.tooling)
    return RestDataService(api, tooling=cfg.tooling)
