import streamlit as st
import requests
from typing import Optional, Tuple

import os
API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8080")

# --- PAGE CONFIG ---
st.set_page_config(
    page_title="File Intake",
    layout="centered",
    initial_sidebar_state="expanded",
)

# --- GLOBAL STYLE OVERRIDES ---
st.markdown(
    """
    <style>
    .stApp {
        background-color: #f7f9fc;
        font-family: -apple-system, BlinkMacSystemFont, 'Inter', 'Segoe UI', Roboto, sans-serif;
    }
    h1, h2, h3 {
        color: #1f2937;
        font-weight: 600;
        letter-spacing: -0.03em;
    }
    .file-link {
        font-family: ui-monospace, SFMono-Regular, Menlo, monospace;
        font-size: 0.85rem;
        word-break: break-all;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# --- SESSION STATE ---
def init_session():
    if "uploaded" not in st.session_state:
        # stored names uploaded from this browser session, newest first
        st.session_state.uploaded = []
    if "health" not in st.session_state:
        st.session_state.health = None

init_session()


# --- API HELPERS ---
def _message(resp: requests.Response) -> str:
    try:
        return resp.json().get("message", resp.text)
    except ValueError:
        return resp.text

def fetch_health() -> dict:
    try:
        resp = requests.get(f"{API_BASE}/health/", timeout=10)
        if resp.status_code == 200:
            return resp.json()
        return {"error": f"{resp.status_code} {resp.text}"}
    except requests.RequestException as e:
        return {"error": str(e)}

def upload_file(uploaded_file) -> Tuple[bool, str]:
    files = {
        "file": (
            uploaded_file.name,
            uploaded_file.getvalue(),
            uploaded_file.type or "application/octet-stream",
        )
    }
    try:
        resp = requests.post(f"{API_BASE}/upload", files=files, timeout=300)
    except requests.RequestException as e:
        return False, f"Upload error: {e}"

    if resp.status_code == 200:
        return True, resp.json()["fileUrl"]
    return False, f"Upload failed ({resp.status_code}): {_message(resp)}"

def delete_file(stored_name: str) -> Tuple[bool, str]:
    try:
        resp = requests.delete(
            f"{API_BASE}/delete",
            json={"fileName": stored_name},
            timeout=30,
        )
    except requests.RequestException as e:
        return False, f"Delete error: {e}"

    if resp.status_code == 200:
        return True, _message(resp)
    return False, f"Delete failed ({resp.status_code}): {_message(resp)}"

def stored_name_from_url(file_url: str) -> Optional[str]:
    return file_url.rsplit("/", 1)[-1] or None


# SIDEBAR
with st.sidebar:
    st.markdown(f"**Backend:** `{API_BASE}`")
    if st.button("Refresh health"):
        st.session_state.health = fetch_health()
    if st.session_state.health:
        st.caption("Backend health snapshot:")
        st.json(st.session_state.health, expanded=False)

st.title("File Intake")

tab_upload, tab_delete = st.tabs(["Upload", "Delete"])

# --- TAB: UPLOAD ---
with tab_upload:
    uploaded_file = st.file_uploader(
        "Choose a file to upload (PNG, JPEG, PDF, Word, Excel)",
        type=["png", "jpg", "jpeg", "pdf", "doc", "docx", "xls", "xlsx"],
    )

    if st.button("Upload file"):
        if uploaded_file is None:
            st.warning("Please choose a file first.")
        else:
            with st.spinner("Uploading..."):
                ok, result = upload_file(uploaded_file)
            if ok:
                st.success("Uploaded")
                st.markdown(
                    f'<div class="file-link"><a href="{API_BASE}{result}" target="_blank">{result}</a></div>',
                    unsafe_allow_html=True,
                )
                name = stored_name_from_url(result)
                if name:
                    st.session_state.uploaded.insert(0, name)
            else:
                st.error(result)

# --- TAB: DELETE ---
with tab_delete:
    known = st.session_state.uploaded
    choice = st.selectbox("Uploaded in this session", options=[""] + known)
    typed = st.text_input("Or enter a stored file name", value="")
    target = typed.strip() or choice

    if st.button("Delete file"):
        if not target:
            st.warning("Enter or pick a file name first.")
        else:
            ok, msg = delete_file(target)
            if ok:
                st.success(msg)
                st.session_state.uploaded = [n for n in known if n != target]
            else:
                st.error(msg)
