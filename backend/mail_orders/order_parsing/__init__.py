"""
Order Parsing Package

Hybrid pattern/LLM order extraction over a retailer registry.

Architecture:
- filtering: Pre-filter that rejects non-order email and spots known merchants
- llm_extraction: Backend selection and LLM answer to ExtractionRecord mapping
- merging: Gap-filling merge of pattern and LLM records
- router: Confidence-threshold routing (HybridOrderParser)

Public API:
- HybridOrderParser.classify_and_extract(email) - Route a single email
- HybridOrderParser.classify_and_extract_batch(emails) - Route many emails
- get_llm_provider(config) - Build the configured LLM backend, or None
"""

from .filtering import EmailClassifier, find_marketing_sender
from .llm_extraction import email_payload, get_llm_provider, record_from_llm
from .merging import merge_records, merge_status
from .router import HybridOrderParser

__all__ = [
    "EmailClassifier",
    "HybridOrderParser",
    "email_payload",
    "find_marketing_sender",
    "get_llm_provider",
    "merge_records",
    "merge_status",
    "record_from_llm",
]
