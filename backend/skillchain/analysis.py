"""
Fail-closed client for the three Gemini-backed operations.

Every public coroutine returns a usable value: transport failures, a missing
credential, or a response that breaks the schema contract are logged and
replaced with a deterministic fallback.
"""
import json
import logging
from typing import Dict, List, Optional, Protocol

from .config import Settings
from .errors import ConfigurationError, ContractViolation
from .gemini_client import GeminiModel, strip_code_fences
from .models import (
    UNKNOWN_CANDIDATE,
    AnalysisRequest,
    AnalysisResult,
    ChatMessage,
    IdentityVerification,
    ProjectEvaluationResult,
    ProjectSubmission,
    ProjectUniquenessVerification,
    clamp_score,
)
from .prompts import (
    ANALYSIS_SYSTEM_INSTRUCTION,
    COACH_SYSTEM_INSTRUCTION,
    PROJECT_SYSTEM_INSTRUCTION,
    build_analysis_parts,
    build_coach_prompt,
    build_project_evaluation_prompt,
)
from .schemas import ANALYSIS_SCHEMA, PROJECT_EVALUATION_SCHEMA, validate

log = logging.getLogger(__name__)

CREDENTIAL_MISSING = "credential missing"
SERVICE_UNAVAILABLE = "service unavailable"

COACH_NO_CREDENTIAL = "Chat unavailable. Please check API Key."
COACH_APOLOGY = "I'm having trouble connecting to the coaching server right now."
COACH_EMPTY = "I couldn't generate a suggestion right now."


class ModelCaller(Protocol):
    async def generate(
        self,
        parts: List[Dict],
        schema: Optional[Dict] = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        ...


def fallback_analysis(cause: str) -> AnalysisResult:
    if cause == CREDENTIAL_MISSING:
        reasoning = "Analysis unavailable: credential missing. Set GEMINI_API_KEY in your .env file."
    else:
        reasoning = "Analysis service unavailable. Please try again later."
    return AnalysisResult(
        candidate_name=UNKNOWN_CANDIDATE,
        identified_role="Developer",
        identity_verification=IdentityVerification(match_status="PARTIAL", reasoning=reasoning),
        project_uniqueness_verification=ProjectUniquenessVerification(
            status="GENERIC", originality_score=50, reasoning=f"Project check skipped: {cause}."
        ),
        professional_summary=f"Analysis failed ({cause}). Please try again.",
        overall_authenticity_score=0,
        technical_skills=[],
        certificates=[],
    )


def fallback_evaluation(current_score: int, cause: str) -> ProjectEvaluationResult:
    if cause == CREDENTIAL_MISSING:
        reasoning = "API Key missing (credential missing). Cannot evaluate. Score unchanged."
    else:
        reasoning = "AI service temporarily unavailable (service unavailable). Score unchanged."
    return ProjectEvaluationResult(
        new_confidence_score=current_score, reasoning=reasoning, skill_improved=False
    )


def parse_structured(text: str, schema: Dict) -> Dict:
    """Decode the model's JSON answer and check it against ``schema``."""
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise ContractViolation(f"invalid JSON ({e.msg})") from e
    validate(schema, data)
    return data


def enforce_improvement(result: ProjectEvaluationResult, current_score: int) -> ProjectEvaluationResult:
    """Make ``skill_improved`` agree with the scores.

    An improvement claim without a higher score is rejected and the score
    is kept at ``current_score``.
    """
    if result.new_confidence_score > current_score:
        if not result.skill_improved:
            return result.model_copy(update={"skill_improved": True})
        return result
    if result.skill_improved:
        log.warning(
            f"Rejected improvement claim: {result.new_confidence_score} is not above {current_score}"
        )
        return ProjectEvaluationResult(
            new_confidence_score=current_score,
            reasoning=f"{result.reasoning} (Improvement not applied: the new score did not exceed {current_score}.)",
            skill_improved=False,
        )
    return result


class AnalysisClient:
    def __init__(self, model: ModelCaller, has_credential: bool = True):
        self.model = model
        self.has_credential = has_credential

    async def run_analysis(self, request: AnalysisRequest) -> AnalysisResult:
        if not self.has_credential:
            log.error("Gemini API key is missing, returning fallback analysis")
            return fallback_analysis(CREDENTIAL_MISSING)

        try:
            text = await self.model.generate(
                build_analysis_parts(request),
                schema=ANALYSIS_SCHEMA,
                system_instruction=ANALYSIS_SYSTEM_INSTRUCTION,
            )
            data = parse_structured(text, ANALYSIS_SCHEMA)
            result = AnalysisResult.model_validate(data)
            log.info(
                f"Analysis complete: {len(result.technical_skills)} skills, "
                f"identity {result.identity_verification.match_status}"
            )
            return result
        except ConfigurationError:
            log.error("Gemini API key is missing, returning fallback analysis")
            return fallback_analysis(CREDENTIAL_MISSING)
        except (ContractViolation, ValueError) as e:
            log.error(f"Gemini analysis broke the response contract: {e}")
            return fallback_analysis(SERVICE_UNAVAILABLE)
        except Exception as e:
            log.error(f"Gemini analysis error: {e}")
            return fallback_analysis(SERVICE_UNAVAILABLE)

    async def evaluate_project(
        self, skill_name: str, current_score: float, project: ProjectSubmission
    ) -> ProjectEvaluationResult:
        try:
            current = clamp_score(current_score)
        except (TypeError, ValueError):
            log.error(f"Invalid current score {current_score!r}, using 0")
            current = 0
        if not self.has_credential:
            log.error("Gemini API key is missing, project score unchanged")
            return fallback_evaluation(current, CREDENTIAL_MISSING)

        try:
            prompt = build_project_evaluation_prompt(skill_name, current, project)
            text = await self.model.generate(
                [{"text": prompt}],
                schema=PROJECT_EVALUATION_SCHEMA,
                system_instruction=PROJECT_SYSTEM_INSTRUCTION,
            )
            data = parse_structured(text, PROJECT_EVALUATION_SCHEMA)
            result = ProjectEvaluationResult.model_validate(data)
        except ConfigurationError:
            log.error("Gemini API key is missing, project score unchanged")
            return fallback_evaluation(current, CREDENTIAL_MISSING)
        except (ContractViolation, ValueError) as e:
            log.error(f"Project evaluation broke the response contract: {e}")
            return fallback_evaluation(current, SERVICE_UNAVAILABLE)
        except Exception as e:
            log.error(f"Project evaluation error: {e}")
            return fallback_evaluation(current, SERVICE_UNAVAILABLE)

        return enforce_improvement(result, current)

    async def coach_reply(self, history: List[ChatMessage], context: AnalysisResult) -> str:
        if not self.has_credential:
            return COACH_NO_CREDENTIAL
        try:
            text = await self.model.generate(
                [{"text": build_coach_prompt(history, context)}],
                system_instruction=COACH_SYSTEM_INSTRUCTION,
            )
            reply = text.strip()
        except ConfigurationError:
            return COACH_NO_CREDENTIAL
        except Exception as e:
            log.error(f"Coach chat error: {e}")
            return COACH_APOLOGY
        return reply or COACH_EMPTY


def build_default_client(settings: Settings) -> AnalysisClient:
    """Create the process-wide client. Called once at startup."""
    if not settings.has_api_key:
        log.warning("GEMINI_API_KEY is not set; analysis calls will return fallback results")
    return AnalysisClient(GeminiModel(settings), has_credential=settings.has_api_key)
