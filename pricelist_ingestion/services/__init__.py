"""Business logic services for price list ingestion.

Available Services:
    - facility_resolver: Facility name normalization against the alias table
    - procedure_codes: Stable procedure code generation
    - tag_hydration: Rule-based record tagging
    - llm: Cached LLM document summarization
    - ingestion_service: Batch orchestration over many files
"""
