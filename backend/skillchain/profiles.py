import uuid
from datetime import date
from typing import Optional

from .models import (
    AnalysisResult,
    CandidateProfile,
    Project,
    ProjectEvaluationResult,
    ProjectSubmission,
    Skill,
    SkillHistoryEntry,
)

RANKS = [(90, "Diamond"), (80, "Platinum"), (70, "Gold"), (60, "Silver")]


def new_profile_id() -> str:
    return f"did:skillchain:{uuid.uuid4().hex[:12]}"


def skill_rank(score: int) -> str:
    for threshold, rank in RANKS:
        if score >= threshold:
            return rank
    return "Bronze"


def build_profile(result: AnalysisResult, profile_id: str, name: Optional[str] = None) -> CandidateProfile:
    """Turn an analysis into the candidate's stored skill profile."""
    skills = [
        Skill(
            name=s.skill_name,
            confidence_score=s.confidence_level,
            verified=s.verification_status == "Verified",
            source="AI Analysis",
        )
        for s in result.technical_skills
    ]
    return CandidateProfile(
        id=profile_id,
        name=name or result.candidate_name,
        role=result.identified_role,
        skills=skills,
        certificates=list(result.certificates),
        summary=result.professional_summary,
        overall_score=result.overall_authenticity_score,
    )


def overall_score(profile: CandidateProfile) -> int:
    # a stored 0 comes from a failed analysis, so it falls back to the skill mean
    if profile.overall_score:
        return profile.overall_score
    if not profile.skills:
        return 0
    return round(sum(s.confidence_score for s in profile.skills) / len(profile.skills))


def apply_project_evaluation(
    profile: CandidateProfile,
    skill_name: str,
    evaluation: ProjectEvaluationResult,
    project: ProjectSubmission,
    when: Optional[date] = None,
) -> CandidateProfile:
    """Return a copy of ``profile`` with an improved skill score recorded.

    Evaluations that did not improve the skill leave the profile unchanged.
    """
    if not any(s.name == skill_name for s in profile.skills):
        raise KeyError(skill_name)
    if not evaluation.skill_improved:
        return profile

    day = (when or date.today()).isoformat()
    skills = []
    for skill in profile.skills:
        if skill.name == skill_name:
            entry = SkillHistoryEntry(date=day, score=evaluation.new_confidence_score, reason=evaluation.reasoning)
            skill = skill.model_copy(update={
                "confidence_score": evaluation.new_confidence_score,
                "history": skill.history + [entry],
            })
        skills.append(skill)

    added = Project(name=project.name, link=project.link, description=project.description, date_added=day)
    return profile.model_copy(update={"skills": skills, "projects": profile.projects + [added]})


def identity_card_text(profile: CandidateProfile) -> str:
    """Plain-text summary an employer gets from the profile's QR code."""
    score = overall_score(profile)
    skills = "\n".join(f"- {s.name}: {s.confidence_score}%" for s in profile.skills) or "No skills"
    return (
        "VERIFIED SKILL IDENTITY\n"
        f"Name: {profile.name}\n"
        f"Role: {profile.role}\n"
        f"Rank: {skill_rank(score)}\n"
        f"Overall Skill Percentage: {score}%\n"
        "\n"
        "SKILL BREAKDOWN:\n"
        f"{skills}\n"
        "\n"
        f"Profile ID: {profile.id}"
    )
