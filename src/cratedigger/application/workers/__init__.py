"""Worker system - background label crawling."""

from cratedigger.application.workers.ingestion_worker import IngestionWorker

__all__ = ["IngestionWorker"]
