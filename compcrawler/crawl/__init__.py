"""Crawl orchestration, record normalisation and the daily scheduler."""

from compcrawler.crawl.normalize import CompositionRecord, build_record
from compcrawler.crawl.orchestrator import CrawlBatchResult, CrawlOrchestrator
from compcrawler.crawl.scheduler import PeriodicTask

__all__ = [
    "CompositionRecord",
    "CrawlBatchResult",
    "CrawlOrchestrator",
    "PeriodicTask",
    "build_record",
]
