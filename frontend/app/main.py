"""Streamlit chat UI for asking production data questions."""
from __future__ import annotations

import os

import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

DEFAULT_API = "http://localhost:8000"
API_BASE = os.getenv("BACKEND_URL") or os.getenv("AGENT_API_BASE")
if not API_BASE:
    try:
        API_BASE = st.secrets["api_base"]
    except Exception:  # secrets file optional
        API_BASE = DEFAULT_API

st.set_page_config(page_title="Production Data Assistant", layout="wide")
st.title("🏭 Production Data Assistant")

with st.sidebar:
    st.header("Agent status")
    try:
        health = requests.get(f"{API_BASE}/api/health", timeout=10).json()
    except requests.RequestException as exc:
        st.error(f"Backend unreachable: {exc}")
    else:
        if health.get("agent_initialized"):
            st.success("Agent ready")
        else:
            st.warning(health.get("error") or "Agent is initializing")
    st.markdown(
        "Examples:\n"
        "- Which batches had the most NG parts?\n"
        "- What components do we have data for?\n"
        "- Show production for batch 24_02_2025\n"
        "- Inspect 'ABC_1'"
    )
    if st.button("Clear conversation", use_container_width=True):
        st.session_state.messages = []

# Kept in the browser session only; the backend is stateless.
if "messages" not in st.session_state:
    st.session_state.messages = []

for message in st.session_state.messages:
    with st.chat_message(message["role"]):
        st.markdown(message["content"])

question = st.chat_input("Ask about production, batches, components or defects")
if question:
    st.session_state.messages.append({"role": "user", "content": question})
    with st.chat_message("user"):
        st.markdown(question)
    with st.chat_message("assistant"):
        with st.spinner("Querying production data…"):
            try:
                resp = requests.post(f"{API_BASE}/api/query", json={"question": question}, timeout=180)
            except requests.RequestException as exc:
                reply = f"Query failed: {exc}"
            else:
                if resp.ok:
                    reply = resp.json().get("response", "")
                else:
                    reply = f"Query failed: {resp.status_code} – {resp.text}"
        st.markdown(reply)
    st.session_state.messages.append({"role": "assistant", "content": reply})

st.caption("API base: %s" % API_BASE)
