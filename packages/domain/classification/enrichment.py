"""
Match Enrichment - reconcile classifier candidates with the reference table

The external model and the reference spreadsheet disagree often: the model
returns codes in loose notation, at the wrong depth, or with its own wording.
For every candidate:

1. Normalize the code and look it up hierarchically in the reference index
2. No row? Fall back to a text search on the caller's description, then on
   the candidate's own description (top hit only)
3. Replace code/description with the reference row's values when present
4. Mark the match validated only if a reference row was found

Matches are frozen - each enriched match is a new value.
"""
from typing import Dict, List, Optional

import structlog

from packages.domain.classification.hs_codes import format_code, get_column, get_key_column
from packages.domain.classification.reference_index import ReferenceIndex
from packages.domain.classification.schemas import Match

logger = structlog.get_logger()


class MatchEnricher:
    """Cross-references classifier matches against the reference index."""

    def __init__(self, index: ReferenceIndex):
        self.index = index

    def enrich(self, matches: Optional[List[Match]], query: Optional[str] = None) -> List[Match]:
        """
        Enrich classifier matches with reference data.

        Args:
            matches: Raw candidates from the classifier (order preserved)
            query: Caller's original description, used for the search fallback

        Returns:
            New list of enriched matches
        """
        if not matches:
            return []

        enriched = [self._enrich_one(match, query) for match in matches]

        logger.info("matches_enriched",
                    total=len(enriched),
                    validated=sum(1 for m in enriched if m.validated))

        return enriched

    def _enrich_one(self, match: Match, query: Optional[str]) -> Match:
        normalized = format_code(match.code) or match.code
        columns = self._reconcile(normalized, match, query)
        validated = bool(columns)

        return match.model_copy(update={
            "code": get_key_column(columns) or normalized,
            "description": get_column(columns, "Description", "description") or match.description,
            "reference_columns": columns if validated else None,
            "validated": validated,
        })

    def _reconcile(self, normalized: str, match: Match, query: Optional[str]) -> Optional[Dict[str, str]]:
        columns = self.index.lookup_by_code(normalized) if normalized else None
        if columns:
            return columns

        for text, source in ((query, "query"), (match.description, "candidate_description")):
            columns = self.index.find_best_by_description(text)
            if columns:
                logger.debug("match_reconciled_by_search",
                             code=match.code,
                             source=source)
                return columns

        return None
