"""
wbtariffs_pipeline.sources — upstream data source adapters.

  WildberriesSource — Wildberries common API (box tariffs, JSON)
"""

from wbtariffs_pipeline.sources.wildberries import WildberriesSource

__all__ = ["WildberriesSource"]
