import json
from types import SimpleNamespace

import pytest


def analysis_payload(**overrides):
    payload = {
        "candidateName": "Jane Doe",
        "identifiedRole": "Backend Engineer",
        "identityVerification": {"matchStatus": "MATCH", "reasoning": "Names agree."},
        "projectUniquenessVerification": {
            "status": "UNIQUE",
            "originalityScore": 82,
            "reasoning": "Custom compiler project.",
        },
        "certificates": [],
        "professionalSummary": "Systems programmer.",
        "overallAuthenticityScore": 77,
        "technicalSkills": [
            {
                "skillName": "Rust",
                "confidenceLevel": 85,
                "reasoning": "Linked repository.",
                "verificationStatus": "Verified",
            },
            {
                "skillName": "Haskell",
                "confidenceLevel": 35,
                "reasoning": "Keyword only.",
                "verificationStatus": "Unverified",
            },
        ],
    }
    payload.update(overrides)
    return payload


class StubModel:
    """Deterministic stand-in for GeminiModel that records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def generate(self, parts, schema=None, system_instruction=None):
        self.calls.append({"parts": parts, "schema": schema, "system_instruction": system_instruction})
        response = self.responses[0] if len(self.responses) == 1 else self.responses.pop(0)
        if callable(response):
            response = response(parts)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


class FakeCollection:
    """In-memory stand-in for a motor collection."""

    def __init__(self):
        self.docs = []

    @staticmethod
    def _get(doc, key):
        for part in key.split("."):
            if not isinstance(doc, dict):
                return None
            doc = doc.get(part)
        return doc

    def _match(self, query):
        for doc in self.docs:
            if all(self._get(doc, k) == v for k, v in query.items()):
                return doc
        return None

    async def find_one(self, query):
        doc = self._match(query)
        return dict(doc) if doc else None

    async def insert_one(self, doc):
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=len(self.docs))

    async def update_one(self, query, update):
        doc = self._match(query)
        if doc is None:
            return SimpleNamespace(matched_count=0)
        doc.update(update.get("$set", {}))
        return SimpleNamespace(matched_count=1)


@pytest.fixture
def fake_db():
    return {"users": FakeCollection(), "logs": FakeCollection()}
