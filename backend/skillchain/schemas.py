"""
Response contracts for the structured Gemini calls.

The schemas are plain dicts in Gemini's ``responseSchema`` dialect so the
same object is sent to the model and used to check what comes back.
"""
import math
from typing import Any, Dict

from .errors import ContractViolation

MATCH_STATUSES = ["MATCH", "MISMATCH", "PARTIAL"]
UNIQUENESS_STATUSES = ["UNIQUE", "GENERIC", "COPIED"]
CERTIFICATE_STATUSES = ["Likely Authentic", "Suspicious", "Likely Original"]
SKILL_STATUSES = ["Verified", "Unverified"]

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "candidateName": {
            "type": "STRING",
            "description": "Name extracted from resume. If not found, return 'Unknown Candidate'.",
        },
        "identifiedRole": {"type": "STRING", "description": "Primary job role identified"},
        "identityVerification": {
            "type": "OBJECT",
            "properties": {
                "matchStatus": {"type": "STRING", "enum": MATCH_STATUSES},
                "reasoning": {
                    "type": "STRING",
                    "description": "Explanation of the name matching. Mention if LinkedIn failed "
                                   "(Full Name required) or GitHub passed/failed (First Name required).",
                },
            },
            "required": ["matchStatus", "reasoning"],
        },
        "projectUniquenessVerification": {
            "type": "OBJECT",
            "properties": {
                "status": {"type": "STRING", "enum": UNIQUENESS_STATUSES},
                "originalityScore": {
                    "type": "NUMBER",
                    "description": "0-100 score. High if projects seem unique/custom. "
                                   "Low if they look like tutorials or copy-pasted templates.",
                },
                "reasoning": {
                    "type": "STRING",
                    "description": "Check if projects are unique or just generic tutorials found on the "
                                   "internet. Ensure they match between GitHub and LinkedIn.",
                },
            },
            "required": ["status", "originalityScore", "reasoning"],
        },
        "certificates": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "issuer": {"type": "STRING"},
                    "issueDate": {"type": "STRING"},
                    "authenticityScore": {
                        "type": "NUMBER",
                        "description": "0-100 likelihood of being authentic based on forensic analysis.",
                    },
                    "verificationStatus": {"type": "STRING", "enum": CERTIFICATE_STATUSES},
                    "reasoning": {
                        "type": "STRING",
                        "description": "Detailed forensic analysis. Mention if QR Code data matched the "
                                       "text or if Serial Number format (e.g. NPTEL) was valid.",
                    },
                },
                "required": ["name", "issuer", "authenticityScore", "verificationStatus", "reasoning"],
            },
        },
        "professionalSummary": {"type": "STRING", "description": "Short summary of the candidate"},
        "overallAuthenticityScore": {
            "type": "NUMBER",
            "description": "A score from 0-100 indicating how realistic the resume claims appear based on context",
        },
        "technicalSkills": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "skillName": {"type": "STRING"},
                    "confidenceLevel": {
                        "type": "NUMBER",
                        "description": "0 to 100 confidence score based on keywords and context",
                    },
                    "reasoning": {"type": "STRING", "description": "Why this confidence score was given"},
                    "verificationStatus": {
                        "type": "STRING",
                        "enum": SKILL_STATUSES,
                        "description": "Mark 'Verified' only if skill is supported by project links or strong "
                                       "evidence. Mark 'Unverified' if it lacks proof.",
                    },
                },
                "required": ["skillName", "confidenceLevel", "reasoning", "verificationStatus"],
            },
        },
    },
    "required": [
        "candidateName",
        "identifiedRole",
        "identityVerification",
        "projectUniquenessVerification",
        "professionalSummary",
        "overallAuthenticityScore",
        "technicalSkills",
        "certificates",
    ],
}

PROJECT_EVALUATION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "newConfidenceScore": {"type": "NUMBER", "description": "The new calculated confidence score (0-100)."},
        "reasoning": {"type": "STRING", "description": "Explanation for the score change (or lack thereof)."},
        "skillImproved": {"type": "BOOLEAN", "description": "True if the score increased."},
    },
    "required": ["newConfidenceScore", "reasoning", "skillImproved"],
}


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # json.loads accepts NaN and Infinity
    return isinstance(value, int) or math.isfinite(value)


_TYPE_CHECKS = {
    "OBJECT": lambda v: isinstance(v, dict),
    "ARRAY": lambda v: isinstance(v, list),
    "STRING": lambda v: isinstance(v, str),
    "NUMBER": _is_number,
    "INTEGER": lambda v: _is_number(v) and float(v).is_integer(),
    "BOOLEAN": lambda v: isinstance(v, bool),
}


def validate(schema: Dict[str, Any], value: Any, path: str = "$") -> None:
    """Raise ContractViolation if ``value`` does not satisfy ``schema``.

    Checks type, required properties and enums recursively. Properties that
    the schema does not declare are ignored.
    """
    expected = schema.get("type")
    check = _TYPE_CHECKS.get(expected)
    if check is None:
        raise ValueError(f"Unsupported schema type {expected!r} at {path}")
    if not check(value):
        raise ContractViolation(f"expected {expected}, got {type(value).__name__}", path)

    if "enum" in schema and value not in schema["enum"]:
        raise ContractViolation(f"{value!r} is not one of {schema['enum']}", path)

    if expected == "OBJECT":
        properties = schema.get("properties", {})
        for key in schema.get("required", []):
            if key not in value or value[key] is None:
                raise ContractViolation("missing required field", f"{path}.{key}")
        for key, sub_schema in properties.items():
            if key in value and value[key] is not None:
                validate(sub_schema, value[key], f"{path}.{key}")
    elif expected == "ARRAY" and "items" in schema:
        for i, item in enumerate(value):
            validate(schema["items"], item, f"{path}[{i}]")
