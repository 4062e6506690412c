"""
Classification task - runs one HS code classification job to completion

Flow:
1. Call the external classifier under a deadline
2. Reconcile the suggested codes with the reference table
3. Remember the top match in the recent-items list
4. Complete the job (or fail it - timeouts get their own message)

There is no retry: a failed job is final and the caller submits again.
"""
import asyncio
import time
from typing import Optional

import structlog

from packages.common.metrics import CLASSIFICATION_JOBS_FINISHED, CLASSIFIER_LATENCY_SECONDS
from packages.domain.classification.classifier.base import Classifier, ClassifierTimeoutError
from packages.domain.classification.enrichment import MatchEnricher
from packages.domain.classification.job_store import ClassificationJobStore
from packages.domain.classification.schemas import ClassificationResult

logger = structlog.get_logger()

TIMEOUT_MESSAGE = "HS code scan timed out. Try a shorter description or smaller image."
FAILURE_MESSAGE = "HS code scan failed."


async def run_classification(
    job_id: str,
    description: Optional[str],
    image_base64: Optional[str],
    *,
    classifier: Classifier,
    enricher: MatchEnricher,
    store: ClassificationJobStore,
    timeout_seconds: float,
) -> None:
    """
    Process one classification job.

    Never raises (except on cancellation): every outcome ends up on the job.

    Args:
        job_id: Job created by the store for this request
        description: Trimmed item description (may be None for image-only requests)
        image_base64: Normalized image payload
        classifier: External classifier
        enricher: Reference reconciliation
        store: Job store receiving the terminal state
        timeout_seconds: Deadline for the classifier call
    """
    structlog.contextvars.bind_contextvars(job_id=job_id)
    started = time.perf_counter()

    try:
        logger.info("classification_started",
                    provider=classifier.name,
                    has_description=bool(description),
                    has_image=bool(image_base64))

        try:
            model_response = await asyncio.wait_for(
                classifier.classify(description, image_base64),
                timeout=timeout_seconds,
            )
        finally:
            CLASSIFIER_LATENCY_SECONDS.observe(time.perf_counter() - started)

        # Reference lookups take the index lock and may re-read the file
        matches = await asyncio.to_thread(enricher.enrich, model_response.matches, description)

        if matches:
            top = matches[0]
            store.record_recent(top.code, top.description)

        result = ClassificationResult(
            matches=matches,
            note=model_response.note,
            recent=store.get_recent(),
        )
        store.complete_job(job_id, result)
        CLASSIFICATION_JOBS_FINISHED.labels(outcome="completed").inc()

        logger.info("classification_completed",
                    matches=len(matches),
                    validated=sum(1 for m in matches if m.validated),
                    duration_ms=int((time.perf_counter() - started) * 1000))

    except (asyncio.TimeoutError, ClassifierTimeoutError):
        logger.warning("classification_timed_out",
                       timeout_seconds=timeout_seconds)
        store.fail_job(job_id, TIMEOUT_MESSAGE)
        CLASSIFICATION_JOBS_FINISHED.labels(outcome="timeout").inc()

    except Exception as e:
        logger.error("classification_failed",
                     error=str(e),
                     exc_info=True)
        store.fail_job(job_id, FAILURE_MESSAGE)
        CLASSIFICATION_JOBS_FINISHED.labels(outcome="failed").inc()

    finally:
        structlog.contextvars.unbind_contextvars("job_id")
