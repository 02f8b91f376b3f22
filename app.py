"""
CRC Dashboard: Streamlit UI entry point.

Every browser tab is a Streamlit session: `st.session_state` is its session
slot, and its notifier endpoint queues broadcasts until the next rerun.
"""

import streamlit as st

# Load .env first so CRC_* settings are visible to the accessors below
from crc_dashboard.utils.config import load_config, data_dir, log_file, log_level
load_config()

from crc_dashboard.domains.models import Role
from crc_dashboard.domains.rules import project_commission, stage_progress
from crc_dashboard.infrastructure.storage.backends import FileBackend
from crc_dashboard.infrastructure.sync.notifier import BroadcastHub
from crc_dashboard.services.workspace import open_workspace
from crc_dashboard.utils.logger import setup_logger, get_logger

setup_logger("crc_dashboard", level=log_level(), log_file=log_file())
log = get_logger()

st.set_page_config(page_title="CRC Dashboard", layout="wide")


# Shared by every tab in this server process
@st.cache_resource
def get_hub() -> BroadcastHub:
    return BroadcastHub()


@st.cache_resource
def get_backend() -> FileBackend:
    return FileBackend(data_dir())


if "workspace" not in st.session_state:
    st.session_state.workspace = open_workspace(get_hub(), get_backend(), st.session_state, deferred=True)
    st.session_state.workspace.repository.seed_demo()

ws = st.session_state.workspace
repo = ws.repository
received = ws.notifier.pump()

user = repo.current_user()

with st.sidebar:
    st.header("Session")
    st.caption(f"Sync: {received} update(s) since last render")
    if user:
        st.markdown(f"**{user.name}** · `{user.role.value}`")
        col1, col2 = st.columns(2)
        if col1.button("Switch user", use_container_width=True):
            picked = repo.switch_user()
            if picked:
                st.toast(f"Switched to {picked.name}")
            st.rerun()
        if col2.button("Log out", use_container_width=True):
            repo.logout()
            st.rerun()
    if st.button("Refresh", use_container_width=True):
        st.rerun()
    with st.expander("Activity"):
        for msg in ws.feed.items(limit=10):
            st.code(str(msg), language="text")

if not user:
    st.title("CRC Dashboard")
    login_tab, register_tab = st.tabs(["Log in", "Register"])
    with login_tab:
        email = st.text_input("Email", key="login_email")
        if st.button("Log in"):
            res = repo.login_user(email)
            if res.ok:
                st.rerun()
            st.error(res.message)
    with register_tab:
        r_email = st.text_input("Email", key="reg_email")
        r_name = st.text_input("Name", key="reg_name")
        r_role = st.selectbox("Role", [r.value for r in Role], key="reg_role")
        if st.button("Register"):
            res = repo.register_user(r_email, r_name, r_role)
            if res.ok:
                repo.login_user(r_email)
                st.rerun()
            st.error(res.message)
    st.stop()

query = st.text_input("Search", key="global_search").strip().lower()
overview, projects_tab, leads_tab, settings_tab = st.tabs(["Overview", "Projects", "Leads", "Settings"])

with overview:
    stats = repo.overview_stats()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Users", stats.users)
    c2.metric("Projects", stats.projects)
    c3.metric("Open projects", stats.open_projects)
    c4.metric("Pending leads", stats.pending_leads)

with projects_tab:
    for p in repo.visible_projects(user, query):
        done, total = stage_progress(p)
        with st.expander(f"{p.location} · {p.status.value} · {done}/{total} stages"):
            st.caption(f"{p.id} · Budget {p.budget:,.0f} · Comm {project_commission(p):,} ({p.commission_percent:g}%)")
            for s in p.stages:
                # Widget state follows the stored record; only a click toggles.
                stage_key = f"{p.id}:{s.key}"
                st.session_state[stage_key] = s.done
                st.checkbox(s.label, key=stage_key, on_change=repo.toggle_stage, args=(p.id, s.key))
            if user.role is Role.ADMIN:
                contractor = st.text_input("Contractor", value=p.assigned_contractor or "", key=f"{p.id}:c")
                a1, a2 = st.columns(2)
                if a1.button("Assign", key=f"{p.id}:assign") and repo.assign_contractor(p.id, contractor):
                    st.rerun()
                if a2.button("Approve", key=f"{p.id}:approve", disabled=p.verified):
                    repo.approve_project(p.id)
                    st.rerun()

with leads_tab:
    if user.role is Role.REFERRER:
        with st.form("new_lead", clear_on_submit=True):
            l_email = st.text_input("Lead email")
            l_notes = st.text_area("Notes")
            if st.form_submit_button("Add lead") and l_email.strip():
                repo.add_lead(user.id, l_email, l_notes)
                st.rerun()
    for lead in repo.visible_leads(user, query):
        st.markdown(f"**{lead.email}** · {lead.status.value} · {lead.notes}")
        if user.role is Role.ADMIN and not lead.is_converted:
            n = st.text_input("Customer name", key=f"{lead.id}:name")
            b = st.number_input("Budget", min_value=0, step=1000, key=f"{lead.id}:budget")
            if st.button("Convert", key=f"{lead.id}:convert"):
                res = repo.convert_lead_to_project(lead.id, n, b)
                if res.ok:
                    st.rerun()
                st.error(res.message)

with settings_tab:
    defaults = repo.read_defaults()
    pct = st.number_input("Default commission %", min_value=0.0, max_value=100.0, value=float(defaults.default_commission))
    if st.button("Save defaults"):
        repo.write_defaults({"defaultCommission": pct})
        st.toast("Defaults saved")
    if user.role is Role.ADMIN and st.button("Reset all data"):
        repo.clear_all()
        log.warning("Store reset from the dashboard")
        st.rerun()
