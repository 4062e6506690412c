"""Background task wrappers - request handlers hand work off here and return immediately."""
import asyncio
from typing import Optional, Set

import structlog

from packages.domain.classification.classifier.base import Classifier
from packages.domain.classification.enrichment import MatchEnricher
from packages.domain.classification.job_store import ClassificationJobStore
from services.worker.tasks.classify_item import run_classification

logger = structlog.get_logger()


class ClassificationDispatcher:
    """Spawns one detached asyncio task per classification job and tracks it until done."""

    def __init__(
        self,
        classifier: Classifier,
        enricher: MatchEnricher,
        store: ClassificationJobStore,
        timeout_seconds: float,
    ):
        self.classifier = classifier
        self.enricher = enricher
        self.store = store
        self.timeout_seconds = timeout_seconds
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def queue_classification(
        self,
        job_id: str,
        description: Optional[str],
        image_base64: Optional[str],
    ) -> asyncio.Task:
        """Queue a classification job on the running event loop."""
        task = asyncio.create_task(
            run_classification(
                job_id,
                description,
                image_base64,
                classifier=self.classifier,
                enricher=self.enricher,
                store=self.store,
                timeout_seconds=self.timeout_seconds,
            ),
            name=f"classify-{job_id}",
        )
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self) -> None:
        """Cancel jobs still in flight."""
        if not self._tasks:
            return

        logger.info("classification_tasks_cancelling", count=len(self._tasks))
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
