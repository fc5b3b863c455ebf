import logging
import mimetypes
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from .analysis import AnalysisClient, build_default_client
from .config import load_settings
from .db import ProfileStore, UserExistsError, get_database
from .models import (
    AnalysisRequest,
    AnalysisResult,
    CandidateProfile,
    ChatMessage,
    DocumentPayload,
    ProjectEvaluationResult,
    ProjectSubmission,
    User,
    WireModel,
)
from .profiles import (
    apply_project_evaluation,
    build_profile,
    identity_card_text,
    new_profile_id,
    overall_score,
    skill_rank,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
log = logging.getLogger(__name__)

DOCUMENT_TYPES = {"application/pdf", "image/png", "image/jpeg", "image/webp"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    app.state.analysis_client = build_default_client(settings)
    app.state.profile_store = ProfileStore(get_database(settings))
    yield


app = FastAPI(title="SkillChain", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_analysis_client(request: Request) -> AnalysisClient:
    return request.app.state.analysis_client


def get_profile_store(request: Request) -> ProfileStore:
    return request.app.state.profile_store


class EvaluateProjectBody(WireModel):
    skill_name: str = Field(alias="skillName")
    current_score: float = Field(alias="currentScore", allow_inf_nan=False)
    project: ProjectSubmission
    email: Optional[str] = None


class CoachBody(BaseModel):
    history: List[ChatMessage] = []
    analysis: AnalysisResult


class RegisterBody(BaseModel):
    name: str
    email: str
    password: str
    profile: Optional[CandidateProfile] = None


class LoginBody(BaseModel):
    email: str
    password: str


class ProfileFromAnalysisBody(BaseModel):
    analysis: AnalysisResult
    name: Optional[str] = None


def _media_type(upload: UploadFile) -> str:
    content_type = upload.content_type
    if not content_type or content_type == "application/octet-stream":
        content_type, _ = mimetypes.guess_type(upload.filename or "")
    if not content_type:
        raise HTTPException(status_code=415, detail=f"Unknown file type: {upload.filename}")
    return content_type


async def _read_document(upload: UploadFile) -> DocumentPayload:
    media_type = _media_type(upload)
    if media_type not in DOCUMENT_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported file type: {media_type}")
    return DocumentPayload(mime_type=media_type, data=await upload.read())


def _score_fields(profile: CandidateProfile) -> dict:
    score = overall_score(profile)
    return {"overallScore": score, "rank": skill_rank(score), "identityCard": identity_card_text(profile)}


def _profile_response(user: User) -> dict:
    return {"user": user, **_score_fields(user.profile)}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/analyze", response_model=AnalysisResult)
async def analyze(
    github_url: str = Form(...),
    linkedin_url: str = Form(...),
    resume_text: Optional[str] = Form(None),
    resume: Optional[UploadFile] = File(None),
    certificate: Optional[UploadFile] = File(None),
    client: AnalysisClient = Depends(get_analysis_client),
):
    """Analyze a resume (text or document) with an optional certificate."""
    resume_document = None
    if resume is not None:
        if _media_type(resume) == "text/plain":
            resume_text = (await resume.read()).decode("utf-8", errors="replace")
        else:
            resume_document = await _read_document(resume)
    certificate_document = await _read_document(certificate) if certificate is not None else None

    try:
        request = AnalysisRequest(
            resume_text=resume_text,
            resume_document=resume_document,
            certificate=certificate_document,
            github_url=github_url,
            linkedin_url=linkedin_url,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])

    log.info(f"Analyzing resume ({'document' if resume_document else 'text'}, "
             f"certificate={'yes' if certificate_document else 'no'})")
    return await client.run_analysis(request)


@app.post("/evaluate-project", response_model=ProjectEvaluationResult)
async def evaluate_project(
    body: EvaluateProjectBody,
    client: AnalysisClient = Depends(get_analysis_client),
    store: ProfileStore = Depends(get_profile_store),
):
    user = None
    current_score = body.current_score
    if body.email:
        user = await store.get_user(body.email)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        stored = next((s for s in user.profile.skills if s.name == body.skill_name), None)
        if stored is None:
            raise HTTPException(status_code=404, detail="Skill not found in profile")
        # the stored score is authoritative for saved profiles
        current_score = stored.confidence_score

    result = await client.evaluate_project(body.skill_name, current_score, body.project)

    if user is not None and result.skill_improved:
        profile = apply_project_evaluation(user.profile, body.skill_name, result, body.project)
        await store.save_profile(user.email, profile)
    return result


@app.post("/coach")
async def coach(body: CoachBody, client: AnalysisClient = Depends(get_analysis_client)):
    reply = await client.coach_reply(body.history, body.analysis)
    return {"reply": reply}


@app.post("/auth/register", status_code=201)
async def register(body: RegisterBody, store: ProfileStore = Depends(get_profile_store)):
    if not body.name or not body.email or not body.password:
        raise HTTPException(status_code=400, detail="All fields are required.")
    try:
        user = await store.create_user(body.name, body.email, body.password, body.profile)
    except UserExistsError:
        raise HTTPException(status_code=409, detail="User already exists with this email.")
    return user


@app.post("/auth/login")
async def login(body: LoginBody, store: ProfileStore = Depends(get_profile_store)):
    user = await store.authenticate(body.email, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return user


@app.get("/profile/{email}")
async def get_profile(email: str, store: ProfileStore = Depends(get_profile_store)):
    user = await store.get_user(email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile_response(user)


@app.put("/profile/{email}")
async def save_profile_from_analysis(
    email: str,
    body: ProfileFromAnalysisBody,
    store: ProfileStore = Depends(get_profile_store),
):
    """Replace the user's profile with one built from an analysis result."""
    user = await store.get_user(email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    profile_id = user.profile.id or new_profile_id()
    profile = build_profile(body.analysis, profile_id, name=body.name)
    await store.save_profile(email, profile)
    return _profile_response(user.model_copy(update={"profile": profile}))


@app.get("/verify/{profile_id}")
async def verify_profile(profile_id: str, store: ProfileStore = Depends(get_profile_store)):
    """Public lookup of a verified profile by its id, for employers."""
    profile = await store.find_by_profile_id(profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"profile": profile, **_score_fields(profile)}
