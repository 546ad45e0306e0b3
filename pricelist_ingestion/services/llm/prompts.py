"""Prompt templates for document summarization."""

from datetime import datetime, timezone
from typing import Optional

from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.services.llm.document_preview import DocumentPreview

DOCUMENT_SUMMARY_PROMPT = """Extract a structured summary of this healthcare price list document in JSON.

Return JSON with this schema:
{{
  "facilityName": "string",
  "currency": "string",
  "effectiveDate": "YYYY-MM-DD or ISO date string (optional)",
  "items": [
    {{
      "description": "string",
      "price": number,
      "unit": "string (optional)",
      "tier": "string (optional)",
      "category": "string (optional)",
      "notes": "string (optional)",
      "rawRow": "string (optional)"
    }}
  ],
  "documentMetadata": {{
    "sourceFile": "{source_file}",
    "extractedAt": "{extracted_at}",
    "model": "{model}"
  }}
}}

Guidelines:
- Use currency "{currency}" unless specified otherwise.
- If a price is missing or non-numeric, omit that item.
- Keep descriptions concise and human-readable.
- Facility name must be the real facility (not the provider, not "price list", not "services only").
- Avoid generic names like "Healthcare Facility", "Medical Facility", "Hospital", or "Clinic" without a location.
- If the facility name is not explicit, infer it from the document title, header rows, or filename.
- Preserve location qualifiers (e.g., "General Hospital Badagry").
- If the document mentions LASUTH, use "Lagos State University Teaching Hospital (LASUTH)".

Document Preview:
{preview}"""


def build_document_summary_prompt(
    preview: DocumentPreview,
    context: ParseContext,
    model: Optional[str] = None,
) -> str:
    return DOCUMENT_SUMMARY_PROMPT.format(
        source_file=preview.source_file,
        extracted_at=datetime.now(timezone.utc).isoformat(),
        model=model or "unknown",
        currency=context.currency,
        preview=preview.preview,
    )
