import asyncio

from packages.domain.classification.classifier import ClassifierError, ClassifierTimeoutError
from packages.domain.classification.enrichment import MatchEnricher
from packages.domain.classification.job_store import ClassificationJobStore
from packages.domain.classification.schemas import JobStatus, Match
from services.worker.tasks.classify_item import (
    FAILURE_MESSAGE,
    TIMEOUT_MESSAGE,
    run_classification,
)

from tests.conftest import FakeClassifier

COOKER = "2kg stainless steel pressure cooker with glass lid"


def _run(classifier, reference_index, store, timeout=5.0, description=COOKER):
    job = store.create_job()
    asyncio.run(run_classification(
        job.id,
        description,
        None,
        classifier=classifier,
        enricher=MatchEnricher(reference_index),
        store=store,
        timeout_seconds=timeout,
    ))
    return store.try_get_job(job.id)


def test_completed_job_has_enriched_matches(reference_index):
    store = ClassificationJobStore()
    classifier = FakeClassifier(
        matches=[
            Match(code="732393", description="Cookware", confidence=88),
            Match(code="9999.99", description="qqqq", confidence=10),
        ],
        note="Consider the lid material",
    )

    job = _run(classifier, reference_index, store)

    assert job.status == JobStatus.COMPLETED
    assert classifier.calls == [(COOKER, None)]
    top, other = job.result.matches
    assert top.validated
    assert top.code == "7323.93"
    assert top.description == "Table, kitchen or other household articles of stainless steel"
    # Second candidate falls back to a search on the caller's description
    assert other.validated
    assert job.result.note == "Consider the lid material"
    assert [entry.code for entry in job.result.recent] == ["7323.93"]
    assert store.get_recent()[0].code == "7323.93"


def test_no_matches_completes_with_note(reference_index):
    store = ClassificationJobStore()
    classifier = FakeClassifier(matches=[], note="Please describe the material.")

    job = _run(classifier, reference_index, store)

    assert job.status == JobStatus.COMPLETED
    assert job.result.matches == []
    assert job.result.note == "Please describe the material."
    assert store.get_recent() == []


def test_deadline_fails_job_with_timeout_message(reference_index):
    store = ClassificationJobStore()
    classifier = FakeClassifier(delay=1.0)

    job = _run(classifier, reference_index, store, timeout=0.05)

    assert job.status == JobStatus.FAILED
    assert job.error == TIMEOUT_MESSAGE
    assert job.result is None


def test_provider_timeout_maps_to_timeout_message(reference_index):
    store = ClassificationJobStore()
    classifier = FakeClassifier(error=ClassifierTimeoutError("read timeout"))

    job = _run(classifier, reference_index, store)

    assert job.error == TIMEOUT_MESSAGE


def test_other_errors_fail_with_generic_message(reference_index):
    store = ClassificationJobStore()

    job = _run(FakeClassifier(error=ClassifierError("HTTP 500")), reference_index, store)

    assert job.status == JobStatus.FAILED
    assert job.error == FAILURE_MESSAGE


def test_unexpected_exception_is_contained(reference_index):
    store = ClassificationJobStore()

    job = _run(FakeClassifier(error=RuntimeError("boom")), reference_index, store)

    assert job.error == FAILURE_MESSAGE


def test_expired_job_is_ignored(reference_index):
    store = ClassificationJobStore()
    classifier = FakeClassifier(matches=[Match(code="847130", description="Laptop")])

    asyncio.run(run_classification(
        "never-created",
        COOKER,
        None,
        classifier=classifier,
        enricher=MatchEnricher(reference_index),
        store=store,
        timeout_seconds=1.0,
    ))

    assert store.try_get_job("never-created") is None
