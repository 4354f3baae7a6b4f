"""
Prompt Construction
-------------------
One fixed instruction, an inline JSON schema example, then the document text.

  1. Schema is given as a concrete example, not abstract prose, so the model
     sees every key it must return.
  2. Enumerated fields list their allowed values inline.
  3. The document text is appended verbatim. Nothing is escaped; embedded
     braces or fences in the document can confuse the model, and the
     response parser is what absorbs that.

build_prompt is pure: the same text always yields the same prompt.
"""

_INSTRUCTION = (
    "Please analyze the following document and provide a comprehensive "
    "summary in JSON format with this structure:"
)

_SCHEMA_EXAMPLE = """{
  "executiveSummary": "...",
  "keyPoints": ["..."],
  "actionItems": [{"task":"...","priority":"high|medium|low","deadline":"...","department":"...","estimatedHours":"..."}],
  "complianceItems": ["..."],
  "riskFactors": ["..."],
  "recommendations": ["..."],
  "categories": ["..."],
  "confidence": "percentage",
  "language": "English/Malayalam/Mixed",
  "documentType": "...",
  "urgencyLevel": "low|medium|high|critical"
}"""


def build_prompt(text: str) -> str:
    return f"{_INSTRUCTION}\n{_SCHEMA_EXAMPLE}\n\nDocument Text:\n{text}"
