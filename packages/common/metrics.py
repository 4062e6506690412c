"""
Prometheus metrics shared by the API and the classification worker
"""
from prometheus_client import Counter, Histogram

CLASSIFICATION_JOBS_CREATED = Counter(
    "hscode_classification_jobs_created_total",
    "Classification jobs accepted for processing",
)

CLASSIFICATION_JOBS_FINISHED = Counter(
    "hscode_classification_jobs_finished_total",
    "Classification jobs that reached a terminal state",
    ["outcome"],  # completed, timeout, failed
)

CLASSIFIER_LATENCY_SECONDS = Histogram(
    "hscode_classifier_latency_seconds",
    "Wall time spent waiting on the external classifier",
    buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)

ADMISSION_REJECTIONS = Counter(
    "hscode_admission_rejections_total",
    "Classification requests rejected before a job was created",
    ["reason"],
)

REFERENCE_RELOADS = Counter(
    "hscode_reference_reloads_total",
    "Reference dataset parse attempts",
    ["outcome"],  # loaded, failed
)
