"""Order extraction from retailer and carrier emails.

This package contains:
- Email content model and language detection
- Per-language vocabulary and number/date normalization
- Retailer pattern extractors and their registry
- LLM backend adapters (Anthropic, Google)
- The hybrid router that combines them
"""
