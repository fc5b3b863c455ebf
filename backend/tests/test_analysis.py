"""
Unit tests for the fail-closed analysis client.
"""
import asyncio
import json
import re

import pytest

from conftest import StubModel, analysis_payload
from skillchain.analysis import (
    COACH_APOLOGY,
    COACH_EMPTY,
    COACH_NO_CREDENTIAL,
    AnalysisClient,
    build_default_client,
)
from skillchain.config import Settings
from skillchain.errors import TransportError
from skillchain.models import AnalysisRequest, AnalysisResult, ChatMessage, ProjectSubmission
from skillchain.prompts import ANALYSIS_SYSTEM_INSTRUCTION, COACH_SYSTEM_INSTRUCTION, PROJECT_SYSTEM_INSTRUCTION
from skillchain.schemas import (
    ANALYSIS_SCHEMA,
    CERTIFICATE_STATUSES,
    MATCH_STATUSES,
    PROJECT_EVALUATION_SCHEMA,
    SKILL_STATUSES,
    UNIQUENESS_STATUSES,
)

GITHUB = "https://github.com/janedoe"
LINKEDIN = "https://linkedin.com/in/jane-doe"
PROJECT = ProjectSubmission(name="CLI Tool", link="https://github.com/x/y", description="A Rust CLI")


def make_request(text="Jane Doe\nExperienced in Rust and Haskell"):
    return AnalysisRequest(resume_text=text, github_url=GITHUB, linkedin_url=LINKEDIN)


def run(coro):
    return asyncio.run(coro)


def assert_contract_valid(result: AnalysisResult):
    scores = [result.overall_authenticity_score, result.project_uniqueness_verification.originality_score]
    scores += [s.confidence_level for s in result.technical_skills]
    scores += [c.authenticity_score for c in result.certificates]
    assert all(0 <= s <= 100 for s in scores)
    assert result.identity_verification.match_status in MATCH_STATUSES
    assert result.project_uniqueness_verification.status in UNIQUENESS_STATUSES
    assert all(s.verification_status in SKILL_STATUSES for s in result.technical_skills)
    assert all(c.verification_status in CERTIFICATE_STATUSES for c in result.certificates)


def identity_echo(parts):
    """Applies the identity rule the way the instructions describe it."""
    resume = parts[0]["text"].split("\n", 1)[1]
    name = resume.splitlines()[0].strip().lower()
    instructions = parts[-1]["text"]
    github_user = re.search(r"GitHub Profile: https://github.com/(\S+)", instructions).group(1).lower()
    linkedin_slug = re.search(r"LinkedIn Profile: https://linkedin.com/in/(\S+)", instructions).group(1).lower()
    first = name.split()[0]
    if linkedin_slug != "-".join(name.split()):
        status = "MISMATCH"
    elif first not in github_user:
        status = "PARTIAL"
    else:
        status = "MATCH"
    return analysis_payload(
        candidateName=name.title(),
        identityVerification={"matchStatus": status, "reasoning": f"{name} vs {github_user}/{linkedin_slug}"},
    )


def test_run_analysis_success():
    model = StubModel(analysis_payload())
    result = run(AnalysisClient(model).run_analysis(make_request()))

    assert result.candidate_name == "Jane Doe"
    assert [s.skill_name for s in result.technical_skills] == ["Rust", "Haskell"]
    call = model.calls[0]
    assert call["schema"] is ANALYSIS_SCHEMA
    assert call["system_instruction"] == ANALYSIS_SYSTEM_INSTRUCTION
    assert_contract_valid(result)


def test_scores_are_clamped():
    payload = analysis_payload(overallAuthenticityScore=140.6)
    payload["technicalSkills"][0]["confidenceLevel"] = -12
    payload["projectUniquenessVerification"]["originalityScore"] = 101
    result = run(AnalysisClient(StubModel(payload)).run_analysis(make_request()))

    assert result.overall_authenticity_score == 100
    assert result.technical_skills[0].confidence_level == 0
    assert result.project_uniqueness_verification.originality_score == 100
    assert_contract_valid(result)


def test_fenced_json_is_accepted():
    text = "```json\n" + json.dumps(analysis_payload()) + "\n```"
    result = run(AnalysisClient(StubModel(text)).run_analysis(make_request()))
    assert result.overall_authenticity_score == 77


def test_blank_name_becomes_sentinel():
    result = run(AnalysisClient(StubModel(analysis_payload(candidateName="  "))).run_analysis(make_request()))
    assert result.candidate_name == "Unknown Candidate"


def test_missing_credential_skips_network():
    model = StubModel(analysis_payload())
    client = AnalysisClient(model, has_credential=False)

    result = run(client.run_analysis(make_request()))
    evaluation = run(client.evaluate_project("Rust", 60, PROJECT))

    assert model.calls == []
    assert "credential missing" in result.identity_verification.reasoning
    assert result.identity_verification.match_status == "PARTIAL"
    assert result.overall_authenticity_score == 0
    assert evaluation.new_confidence_score == 60
    assert evaluation.skill_improved is False
    assert "credential missing" in evaluation.reasoning


@pytest.mark.parametrize("response", [
    TransportError("HTTP 503"),
    RuntimeError("socket closed"),
    "not json at all",
    '{"candidateName": "Jane"}',
])
def test_failures_return_fallback(response):
    result = run(AnalysisClient(StubModel(response)).run_analysis(make_request()))

    assert result.candidate_name == "Unknown Candidate"
    assert result.identified_role == "Developer"
    assert result.identity_verification.match_status == "PARTIAL"
    assert "service unavailable" in result.identity_verification.reasoning.lower()
    assert result.project_uniqueness_verification.status == "GENERIC"
    assert result.project_uniqueness_verification.originality_score == 50
    assert result.overall_authenticity_score == 0
    assert result.technical_skills == []
    assert result.certificates == []


def test_enum_violation_returns_fallback():
    payload = analysis_payload(projectUniquenessVerification={
        "status": "ORIGINAL", "originalityScore": 90, "reasoning": "new",
    })
    result = run(AnalysisClient(StubModel(payload)).run_analysis(make_request()))
    assert result.overall_authenticity_score == 0
    assert result.project_uniqueness_verification.status == "GENERIC"


def test_run_analysis_is_idempotent():
    client = AnalysisClient(StubModel(identity_echo))
    first = run(client.run_analysis(make_request()))
    second = run(client.run_analysis(make_request()))
    assert first == second


def test_identity_match_scenario():
    result = run(AnalysisClient(StubModel(identity_echo)).run_analysis(
        make_request("Jane Doe\nExperienced in Rust and Haskell")
    ))
    assert result.candidate_name == "Jane Doe"
    assert result.identity_verification.match_status == "MATCH"


def test_identity_mismatch_scenario():
    result = run(AnalysisClient(StubModel(identity_echo)).run_analysis(
        make_request("John Smith\nExperienced in Rust")
    ))
    assert result.identity_verification.match_status == "MISMATCH"


def test_evaluate_project_accepts_real_improvement():
    model = StubModel({"newConfidenceScore": 75, "reasoning": "Solid Rust CLI.", "skillImproved": True})
    result = run(AnalysisClient(model).evaluate_project("Rust", 60, PROJECT))

    assert result.skill_improved is True
    assert result.new_confidence_score == 75
    assert model.calls[0]["schema"] is PROJECT_EVALUATION_SCHEMA
    assert model.calls[0]["system_instruction"] == PROJECT_SYSTEM_INSTRUCTION


def test_evaluate_project_rejects_false_improvement():
    model = StubModel({"newConfidenceScore": 50, "reasoning": "Looks good.", "skillImproved": True})
    result = run(AnalysisClient(model).evaluate_project("Rust", 60, PROJECT))

    assert result.skill_improved is False
    assert result.new_confidence_score == 60
    assert "Improvement not applied" in result.reasoning


def test_evaluate_project_sets_flag_when_score_rises():
    model = StubModel({"newConfidenceScore": 70, "reasoning": "Relevant.", "skillImproved": False})
    result = run(AnalysisClient(model).evaluate_project("Rust", 60, PROJECT))
    assert result.skill_improved is True


def test_evaluate_project_keeps_unchanged_score():
    model = StubModel({"newConfidenceScore": 60, "reasoning": "Irrelevant project.", "skillImproved": False})
    result = run(AnalysisClient(model).evaluate_project("Rust", 60, PROJECT))
    assert result.new_confidence_score == 60
    assert result.skill_improved is False
    assert result.reasoning == "Irrelevant project."


@pytest.mark.parametrize("response", [
    TransportError("timeout"),
    "{broken",
    {"newConfidenceScore": "eighty", "reasoning": "x", "skillImproved": True},
])
def test_evaluate_project_fallback(response):
    result = run(AnalysisClient(StubModel(response)).evaluate_project("Rust", 60, PROJECT))
    assert result.new_confidence_score == 60
    assert result.skill_improved is False
    assert "unavailable" in result.reasoning


def test_coach_reply():
    model = StubModel("  Add benchmarks to your Haskell project.  ")
    context = AnalysisResult.model_validate(analysis_payload())
    history = [ChatMessage(role="user", text="How can I improve?")]

    reply = run(AnalysisClient(model).coach_reply(history, context))

    assert reply == "Add benchmarks to your Haskell project."
    assert model.calls[0]["schema"] is None
    assert model.calls[0]["system_instruction"] == COACH_SYSTEM_INSTRUCTION


def test_coach_reply_failures():
    context = AnalysisResult.model_validate(analysis_payload())
    assert run(AnalysisClient(StubModel(TransportError("down"))).coach_reply([], context)) == COACH_APOLOGY
    assert run(AnalysisClient(StubModel("   ")).coach_reply([], context)) == COACH_EMPTY
    assert run(AnalysisClient(StubModel("hi"), has_credential=False).coach_reply([], context)) == COACH_NO_CREDENTIAL


def test_default_client_without_key_falls_back():
    client = build_default_client(Settings(gemini_api_key=None))
    assert client.has_credential is False
    result = run(client.run_analysis(make_request()))
    assert "credential missing" in result.identity_verification.reasoning


def test_non_finite_scores_return_fallback():
    payload = analysis_payload(
        overallAuthenticityScore=float("nan"),
        projectUniquenessVerification={"status": "UNIQUE", "originalityScore": float("inf"), "reasoning": "x"},
    )
    text = json.dumps(payload)
    assert "NaN" in text

    result = run(AnalysisClient(StubModel(text)).run_analysis(make_request()))

    assert result.candidate_name == "Unknown Candidate"
    assert result.overall_authenticity_score == 0
    assert result.project_uniqueness_verification.originality_score == 50
    assert "service unavailable" in result.identity_verification.reasoning.lower()


def test_evaluate_project_non_finite_new_score():
    text = '{"newConfidenceScore": NaN, "reasoning": "x", "skillImproved": true}'
    result = run(AnalysisClient(StubModel(text)).evaluate_project("Rust", 60, PROJECT))
    assert result.new_confidence_score == 60
    assert result.skill_improved is False


def test_evaluate_project_non_finite_current_score():
    model = StubModel({"newConfidenceScore": 20, "reasoning": "Decent.", "skillImproved": True})
    result = run(AnalysisClient(model).evaluate_project("Rust", float("nan"), PROJECT))
    assert "Current Confidence Score: 0/100." in model.calls[0]["parts"][0]["text"]
    assert result.new_confidence_score == 20
    assert result.skill_improved is True


def test_coach_reply_non_text_answer():
    context = AnalysisResult.model_validate(analysis_payload())
    assert run(AnalysisClient(StubModel(42)).coach_reply([], context)) == COACH_APOLOGY
