import math
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNKNOWN_CANDIDATE = "Unknown Candidate"

MatchStatus = Literal["MATCH", "MISMATCH", "PARTIAL"]
UniquenessStatus = Literal["UNIQUE", "GENERIC", "COPIED"]
CertificateStatus = Literal["Likely Authentic", "Suspicious", "Likely Original"]
SkillStatus = Literal["Verified", "Unverified"]


def clamp_score(value) -> int:
    """Clamp a 0-100 score and round it to an int."""
    if not math.isfinite(float(value)):
        raise ValueError(f"score must be a finite number, got {value!r}")
    return int(round(max(0.0, min(100.0, float(value)))))


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True)


class DocumentPayload(BaseModel):
    mime_type: str
    data: bytes


class AnalysisRequest(BaseModel):
    resume_text: Optional[str] = None
    resume_document: Optional[DocumentPayload] = None
    certificate: Optional[DocumentPayload] = None
    github_url: str
    linkedin_url: str

    @model_validator(mode="after")
    def check_inputs(self):
        has_text = bool(self.resume_text and self.resume_text.strip())
        if not has_text and self.resume_document is None:
            raise ValueError("either resume text or a resume document is required")
        if not self.github_url.strip() or not self.linkedin_url.strip():
            raise ValueError("both GitHub and LinkedIn profile URLs are required")
        return self


class IdentityVerification(WireModel):
    match_status: MatchStatus = Field(alias="matchStatus")
    reasoning: str


class ProjectUniquenessVerification(WireModel):
    status: UniquenessStatus
    originality_score: int = Field(alias="originalityScore")
    reasoning: str

    @field_validator("originality_score", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)


class CertificateFinding(WireModel):
    name: str
    issuer: str
    issue_date: str = Field(default="", alias="issueDate")
    authenticity_score: int = Field(alias="authenticityScore")
    verification_status: CertificateStatus = Field(alias="verificationStatus")
    reasoning: str

    @field_validator("authenticity_score", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)

    @field_validator("issue_date", mode="before")
    @classmethod
    def blank_date(cls, v):
        return v or ""


class SkillFinding(WireModel):
    skill_name: str = Field(alias="skillName")
    confidence_level: int = Field(alias="confidenceLevel")
    reasoning: str
    verification_status: SkillStatus = Field(alias="verificationStatus")

    @field_validator("confidence_level", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)


class AnalysisResult(WireModel):
    candidate_name: str = Field(default=UNKNOWN_CANDIDATE, alias="candidateName")
    identified_role: str = Field(alias="identifiedRole")
    identity_verification: IdentityVerification = Field(alias="identityVerification")
    project_uniqueness_verification: ProjectUniquenessVerification = Field(
        alias="projectUniquenessVerification"
    )
    certificates: List[CertificateFinding] = []
    professional_summary: str = Field(alias="professionalSummary")
    overall_authenticity_score: int = Field(alias="overallAuthenticityScore")
    technical_skills: List[SkillFinding] = Field(default=[], alias="technicalSkills")

    @field_validator("overall_authenticity_score", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)

    @field_validator("candidate_name", mode="before")
    @classmethod
    def default_name(cls, v):
        if v is None or not str(v).strip():
            return UNKNOWN_CANDIDATE
        return v


class ProjectSubmission(BaseModel):
    name: str
    link: str = ""
    description: str = ""


class ProjectEvaluationResult(WireModel):
    new_confidence_score: int = Field(alias="newConfidenceScore")
    reasoning: str
    skill_improved: bool = Field(alias="skillImproved")

    @field_validator("new_confidence_score", mode="before")
    @classmethod
    def clamp(cls, v):
        return clamp_score(v)


class ChatMessage(BaseModel):
    role: Literal["user", "ai"]
    text: str
    timestamp: int = 0


# Profile records kept by the store

class SkillHistoryEntry(WireModel):
    date: str
    score: int
    reason: str


class Skill(WireModel):
    name: str
    confidence_score: int = Field(alias="confidenceScore")
    source: str = "AI Analysis"
    verified: bool = False
    history: List[SkillHistoryEntry] = []


class Project(WireModel):
    name: str
    link: str = ""
    description: str = ""
    date_added: str = Field(default="", alias="dateAdded")


class CandidateProfile(WireModel):
    id: str
    name: str
    role: str = "Unverified Candidate"
    skills: List[Skill] = []
    projects: List[Project] = []
    certificates: List[CertificateFinding] = []
    summary: str = ""
    overall_score: Optional[int] = Field(default=None, alias="overallScore")


class User(WireModel):
    email: str
    name: str
    profile: CandidateProfile
