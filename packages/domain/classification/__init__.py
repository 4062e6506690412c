"""
Classification Module - HS code matching for declared goods

Flow:
1. Admission: reject vague or off-topic descriptions before any work is queued
2. Classification (AI): external model suggests up to 5 HS codes
3. Enrichment (Rules): each suggestion is reconciled with the reference table
   (hierarchical code lookup → text search fallback)
4. Jobs: results are exposed through a poll-based job store with 30 minute TTL

Example flow:
- "2kg stainless steel pressure cooker with glass lid"
  → AI: "7323.93" (table, kitchen or household articles of stainless steel)
  → Reference: "7323.93.00.00" validated, official description attached
"""

from packages.domain.classification.admission import (
    AdmissionResult,
    RejectionReason,
    validate_submission,
)
from packages.domain.classification.enrichment import MatchEnricher
from packages.domain.classification.hs_codes import format_code
from packages.domain.classification.job_store import ClassificationJob, ClassificationJobStore
from packages.domain.classification.reference_index import ReferenceIndex
from packages.domain.classification.schemas import (
    ClassificationResult,
    ClassifierResponse,
    JobStatus,
    Match,
    RecentEntry,
)

__all__ = [
    'AdmissionResult',
    'RejectionReason',
    'validate_submission',
    'MatchEnricher',
    'format_code',
    'ClassificationJob',
    'ClassificationJobStore',
    'ReferenceIndex',
    'ClassificationResult',
    'ClassifierResponse',
    'JobStatus',
    'Match',
    'RecentEntry',
]
