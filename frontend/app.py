import os
import time
import urllib.parse

import requests
import streamlit as st

# FastAPI backend URL
BACKEND_URL = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

STATUS_ICONS = {
    "MATCH": "✅", "PARTIAL": "⚠️", "MISMATCH": "❌",
    "UNIQUE": "✅", "GENERIC": "⚠️", "COPIED": "❌",
    "Likely Authentic": "✅", "Likely Original": "🟡", "Suspicious": "❌",
}

st.set_page_config(page_title="SkillChain", layout="wide")

st.title("🔗 SkillChain")
st.markdown("### Verify your skills from your resume, GitHub and LinkedIn")

if "analysis" not in st.session_state:
    st.session_state.analysis = None
    st.session_state.chat = []
    st.session_state.user = None


def call(method, path, **kwargs):
    try:
        response = requests.request(method, f"{BACKEND_URL}{path}", timeout=120, **kwargs)
    except requests.RequestException as e:
        st.error(f"Error: {e}")
        return None
    if response.status_code >= 400:
        st.error(f"❌ Backend error: {response.text}")
        return None
    return response.json()


def post(path, **kwargs):
    return call("POST", path, **kwargs)


def render_analysis(analysis):
    st.subheader(f"👤 {analysis['candidateName']} · {analysis['identifiedRole']}")
    st.write(analysis["professionalSummary"])
    st.metric("Overall authenticity", f"{analysis['overallAuthenticityScore']} / 100")

    col1, col2 = st.columns(2)
    identity = analysis["identityVerification"]
    col1.write(f"**Identity:** {STATUS_ICONS[identity['matchStatus']]} {identity['matchStatus']}")
    col1.caption(identity["reasoning"])
    projects = analysis["projectUniquenessVerification"]
    col2.write(f"**Projects:** {STATUS_ICONS[projects['status']]} {projects['status']} "
               f"(originality {projects['originalityScore']}/100)")
    col2.caption(projects["reasoning"])

    if analysis["certificates"]:
        st.subheader("📜 Certificates")
        for cert in analysis["certificates"]:
            st.write(f"- {STATUS_ICONS[cert['verificationStatus']]} **{cert['name']}** "
                     f"({cert['issuer']}) · {cert['verificationStatus']} · {cert['authenticityScore']}/100")
            st.caption(cert["reasoning"])

    st.subheader("🛠️ Skills")
    for skill in analysis["technicalSkills"]:
        badge = "✅" if skill["verificationStatus"] == "Verified" else "❔"
        st.write(f"{badge} **{skill['skillName']}**")
        st.progress(skill["confidenceLevel"] / 100)
        st.caption(skill["reasoning"])


def render_profile(profile, overall, rank, identity_card):
    col1, col2 = st.columns(2)
    col1.metric("Overall skill", f"{overall}%")
    col2.metric("Rank", rank)
    if profile["skills"]:
        st.bar_chart({"score": {s["name"]: s["confidenceScore"] for s in profile["skills"]}})
    qr_url = "https://api.qrserver.com/v1/create-qr-code/?size=250x250&data=" + urllib.parse.quote(identity_card)
    col1, col2 = st.columns([1, 2])
    col1.image(qr_url, caption="Scan to verify")
    col2.code(identity_card, language=None)


with st.sidebar:
    user = st.session_state.user
    if user:
        st.write(f"Signed in as **{user['name']}**")
        if st.button("Log out"):
            st.session_state.user = None
            st.rerun()
    else:
        mode = st.radio("Account", ["Login", "Register"], horizontal=True)
        with st.form("auth"):
            name = st.text_input("Name") if mode == "Register" else None
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button(mode):
                if mode == "Register":
                    result = post("/auth/register", json={"name": name, "email": email, "password": password})
                else:
                    result = post("/auth/login", json={"email": email, "password": password})
                if result:
                    st.session_state.user = result
                    st.rerun()

    st.divider()
    st.subheader("🏢 Employer view")
    lookup_id = st.text_input("Profile ID (did:skillchain:...)")
    if st.button("Verify profile") and lookup_id:
        st.session_state.verified = call("GET", f"/verify/{urllib.parse.quote(lookup_id, safe='')}")

verified = st.session_state.get("verified")
if verified:
    st.subheader(f"🔍 Verified profile: {verified['profile']['name']}")
    render_profile(verified["profile"], verified["overallScore"], verified["rank"], verified["identityCard"])
    st.divider()

if st.session_state.user:
    email = st.session_state.user["email"]
    dashboard = call("GET", f"/profile/{urllib.parse.quote(email, safe='')}")
    if dashboard:
        st.subheader("🪪 My verified skill profile")
        render_profile(dashboard["user"]["profile"], dashboard["overallScore"], dashboard["rank"],
                       dashboard["identityCard"])
        st.divider()


with st.form("analyze"):
    github_url = st.text_input("GitHub profile URL")
    linkedin_url = st.text_input("LinkedIn profile URL")
    resume_text = st.text_area("Paste your resume text (or upload a file below)")
    resume_file = st.file_uploader("Resume", type=["pdf", "png", "jpg", "jpeg", "txt"])
    cert_file = st.file_uploader("Certificate (optional)", type=["pdf", "png", "jpg", "jpeg"])
    submitted = st.form_submit_button("Analyze Resume")

if submitted:
    if not github_url or not linkedin_url or not (resume_text or resume_file):
        st.warning("Please provide both profile URLs and a resume.")
    else:
        files = {}
        if resume_file:
            files["resume"] = (resume_file.name, resume_file.getvalue(), resume_file.type)
        if cert_file:
            files["certificate"] = (cert_file.name, cert_file.getvalue(), cert_file.type)
        data = {"github_url": github_url, "linkedin_url": linkedin_url, "resume_text": resume_text}
        with st.spinner("Analyzing your resume... Please wait ⏳"):
            result = post("/analyze", data=data, files=files or None)
        if result:
            st.session_state.analysis = result
            st.session_state.chat = []

analysis = st.session_state.analysis
if analysis:
    render_analysis(analysis)

    if st.session_state.user and st.button("Save analysis to my profile"):
        email = st.session_state.user["email"]
        saved = call("PUT", f"/profile/{urllib.parse.quote(email, safe='')}",
                     json={"analysis": analysis, "name": st.session_state.user["name"]})
        if saved:
            st.session_state.user = saved["user"]
            st.success("Profile updated.")
            st.rerun()

    st.subheader("💬 Resume coach")
    for message in st.session_state.chat:
        with st.chat_message("user" if message["role"] == "user" else "assistant"):
            st.write(message["text"])
    question = st.chat_input("Ask how to improve your resume")
    if question:
        st.session_state.chat.append({"role": "user", "text": question, "timestamp": int(time.time() * 1000)})
        reply = post("/coach", json={"history": st.session_state.chat, "analysis": analysis})
        if reply:
            st.session_state.chat.append({"role": "ai", "text": reply["reply"], "timestamp": int(time.time() * 1000)})
        st.rerun()

    st.subheader("🚀 Boost a skill with a new project")
    skills = {s["skillName"]: s["confidenceLevel"] for s in analysis["technicalSkills"]}
    if skills:
        with st.form("project"):
            skill_name = st.selectbox("Skill", list(skills))
            project_name = st.text_input("Project name")
            project_link = st.text_input("Project link")
            project_desc = st.text_area("Description")
            signed_in = st.session_state.user["email"] if st.session_state.user else ""
            email = st.text_input("Account email (optional, saves the new score)", value=signed_in)
            if st.form_submit_button("Evaluate project"):
                body = {
                    "skillName": skill_name,
                    "currentScore": skills[skill_name],
                    "project": {"name": project_name, "link": project_link, "description": project_desc},
                    "email": email or None,
                }
                result = post("/evaluate-project", json=body)
                if result and result["skillImproved"]:
                    st.success(f"Success! {skill_name} score increased to {result['newConfidenceScore']}%. "
                               f"{result['reasoning']}")
                elif result:
                    st.info(f"Score unchanged. {result['reasoning']}")
else:
    st.info("Please enter your profile URLs and a resume to begin.")
