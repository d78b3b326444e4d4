"""Streamlit chat client for the expense assistant backend.

Run with `streamlit run ui/app.py`; the backend URL comes from `CHAT_API_URL`
(default http://localhost:8000).
"""

import logging
import os
import uuid

import requests
import streamlit as st

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_URL = os.getenv("CHAT_API_URL", "http://localhost:8000").rstrip("/")
REQUEST_TIMEOUT_SECONDS = 120

st.set_page_config(page_title="Corporate Expenses AI", page_icon="💼")
st.title("Corporate Expenses AI")


def _reset_session() -> None:
    st.session_state["session_id"] = str(uuid.uuid4())
    st.session_state["chat_history"] = []


if "session_id" not in st.session_state:
    _reset_session()

st.sidebar.write(f"Session ID: `{st.session_state['session_id']}`")
if st.sidebar.button("New chat"):
    _reset_session()
    st.rerun()

for msg in st.session_state["chat_history"]:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])


if user_input := st.chat_input("Ask about the expense policy or submit a claim..."):
    st.session_state["chat_history"].append({"role": "user", "content": user_input})
    with st.chat_message("user"):
        st.markdown(user_input)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            try:
                resp = requests.post(
                    f"{API_URL}/chat",
                    json={"message": user_input, "sessionId": st.session_state["session_id"]},
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
                resp.raise_for_status()
                answer = resp.json()["response"]
            except (requests.RequestException, KeyError, ValueError) as exc:
                logger.error("Chat request failed: %s", exc)
                st.error("Failed to get a response. Please check the backend logs.")
                answer = None

        if answer is not None:
            st.markdown(answer)
            st.session_state["chat_history"].append({"role": "assistant", "content": answer})
