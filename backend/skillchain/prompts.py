import base64
from typing import Dict, List

from .models import AnalysisRequest, AnalysisResult, ChatMessage, DocumentPayload, ProjectSubmission

ANALYSIS_SYSTEM_INSTRUCTION = (
    "You are a forensic document examiner. Use QR code context and Serial Number patterns "
    "to determine authenticity. Do not default to 'unknown' if evidence exists."
)
PROJECT_SYSTEM_INSTRUCTION = "You are a strict technical auditor evaluating project evidence."
COACH_SYSTEM_INSTRUCTION = "You are a helpful, expert career coach and plagiarism detector."

CERTIFICATE_LABEL = "Certificate Document for Forensic Analysis:"

ANALYSIS_PROMPT_TEMPLATE = """
You are a strict Audit AI for 'SkillChain'.
Input Data:
- GitHub Profile: {github_url}
- LinkedIn Profile: {linkedin_url}

Tasks:
1. **Identity Check**: Compare the name found on the Resume with the GitHub and LinkedIn URLs/profiles.
   - **LinkedIn Rule**: The Resume Name MUST match the **COMPLETE Full Name** found in the LinkedIn URL or profile context. If the full name doesn't match, this is a fatal error (set matchStatus: 'MISMATCH').
   - **GitHub Rule**: The Resume Name only needs to match the **First Name** found in the GitHub username or profile. Partial match is acceptable here.
   - Logic:
     - If LinkedIn Full Name match fails -> 'MISMATCH'.
     - If LinkedIn matches but GitHub First Name match fails -> 'PARTIAL'.
     - If both pass (LinkedIn Full + GitHub First) -> 'MATCH'.

2. **Project Uniqueness & Originality Check**:
   - Analyze the projects listed in the Resume/Input.
   - Compare them with typical projects found on the internet (e.g., "To-Do List", "Weather App", "Calculator").
   - If the projects are generic tutorials without custom features, mark projectUniquenessVerification.status as 'GENERIC'.
   - If the projects appear to be direct copies of popular repositories without attribution, mark as 'COPIED'.
   - If the projects show unique problem solving or are consistent across the provided GitHub/LinkedIn (i.e., same project listed on both), mark as 'UNIQUE'.
   - Give an originalityScore from 0 to 100.

3. **Certificate Forensic Analysis**: {certificate_note}
   **Rules for Verification Status**:
   - **"Likely Authentic"**: seals, watermarks and signatures are crisp, aligned and professional, AND either
      a) a **QR Code** is present and its implied URL/data is plausible for the candidate name or certificate context, or
      b) a **Serial Number** (e.g., NPTEL ID like 'NPTEL23CS...', University Reg No) follows the known pattern for that issuer.
   - **"Suspicious"**: any of
      a) fonts are inconsistent (e.g., name is in a different font than the body text),
      b) alignment is off (text floating above lines),
      c) the QR code looks pixelated/pasted while text is sharp,
      d) spelling errors in the issuer name (e.g., "Universty").
   - **"Likely Original"**: the certificate is visually consistent (fonts, layout, professional design) but has no independently verifiable feature such as a QR code or a verifiable serial number.
   **Specific Checks to Perform**:
   - **QR Check**: Does the QR code exist? Does it look like part of the original print? Does it point to a valid domain (nptel.ac.in, coursera.org, udemy.com)?
   - **Serial Number Check**: Extract the Certificate ID. Does it match the format for the issuer?
   - **Name Match**: Does the name on the certificate EXACTLY match the resume candidate name?

4. **Skill Verification**: Extract skills.
   - Mark a skill 'Verified' ONLY if it is backed by concrete project descriptions, repo links, or clear experience that would appear on GitHub/LinkedIn.
   - Otherwise (e.g., listing "Advanced AI" with no AI projects) mark it 'Unverified'.

5. **Scoring** (applies to every 0-100 score you return):
   - High Confidence (80-100): Validated by project context.
   - Low Confidence (0-40): Unsupported claim.
"""

PROJECT_PROMPT_TEMPLATE = """
The user wants to improve the confidence score for the skill: "{skill_name}".
Current Confidence Score: {current_score}/100.

New Project Submitted:
- Name: {project_name}
- Link: {project_link}
- Description: {project_description}

Analyze if this new project demonstrates competency in "{skill_name}".
If the project is relevant and substantial, increase the score.
If the link is a GitHub link, treat it as credible code evidence and assume the code quality is good.
If the project is irrelevant, keep the score the same or change it only minimally.
Return the new score (0-100), reasoning, and skillImproved = true only if the new score is higher than {current_score}.
"""

COACH_PROMPT_TEMPLATE = """
You are an AI Resume Coach for SkillChain.

Current Resume Analysis Context:
- Candidate Role: {role}
- Overall Score: {overall_score}
- Project Verification Status: {project_status}
- Skills identified: {skills}

User's Chat History:
{history}

Your Goal:
1. Suggest specific text changes to improve the resume based on the low-confidence skills.
2. If the user asks about projects, clearly state if they look "Unique", "Generic", or "Copied" (Plagiarized) based on the analysis context, and suggest how to make them look more unique (e.g., adding metrics, unique features).
3. Be encouraging but professional. Keep answers under 100 words unless detailed advice is requested.
"""


def inline_part(document: DocumentPayload) -> Dict:
    return {
        "inlineData": {
            "mimeType": document.mime_type,
            "data": base64.b64encode(document.data).decode("ascii"),
        }
    }


def build_analysis_instructions(github_url: str, linkedin_url: str, has_certificate: bool = False) -> str:
    if has_certificate:
        certificate_note = "A certificate document is attached. Report one entry per certificate."
    else:
        certificate_note = "No certificate document is attached. Only report certificates shown in the resume itself; otherwise return an empty list."
    return ANALYSIS_PROMPT_TEMPLATE.format(
        github_url=github_url.strip(),
        linkedin_url=linkedin_url.strip(),
        certificate_note=certificate_note,
    )


def build_analysis_parts(request: AnalysisRequest) -> List[Dict]:
    """Content parts for a resume analysis.

    Order is fixed: resume first, certificate second (if any), instructions last.
    """
    parts = []
    if request.resume_document is not None:
        parts.append(inline_part(request.resume_document))
    else:
        parts.append({"text": f"Resume Text:\n{request.resume_text}"})

    if request.certificate is not None:
        parts.append({"text": CERTIFICATE_LABEL})
        parts.append(inline_part(request.certificate))

    parts.append({"text": build_analysis_instructions(
        request.github_url, request.linkedin_url, has_certificate=request.certificate is not None
    )})
    return parts


def build_project_evaluation_prompt(skill_name: str, current_score: int, project: ProjectSubmission) -> str:
    return PROJECT_PROMPT_TEMPLATE.format(
        skill_name=skill_name,
        current_score=current_score,
        project_name=project.name,
        project_link=project.link or "(none)",
        project_description=project.description or "(none)",
    )


def build_coach_prompt(history: List[ChatMessage], context: AnalysisResult) -> str:
    skills = ", ".join(
        f"{s.skill_name} ({s.confidence_level}%)" for s in context.technical_skills
    ) or "none"
    lines = "\n".join(f"{m.role.upper()}: {m.text}" for m in history)
    return COACH_PROMPT_TEMPLATE.format(
        role=context.identified_role,
        overall_score=context.overall_authenticity_score,
        project_status=context.project_uniqueness_verification.status,
        skills=skills,
        history=lines or "(no messages yet)",
    )
