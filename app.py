from __future__ import annotations
import json
import streamlit as st
import pandas as pd
from datetime import date, timedelta
from typing import Callable, Optional, Tuple, TypeVar

import agenda
from calendar_export import sessions_to_ics
from calendar_import import parse_ics_bytes
from commands import execute, parse_command
from config import configure_logging
from errors import PlannerError
from intervals import CATALOGS, label_for, offsets_for
from models import AppState, Settings
from pdf_export import week_plan_to_pdf
from planner import RebalanceResult, busy_hours_by_day
from profiles import (
    apply_edit,
    create_profile,
    delete_profile,
    list_profiles,
    load_profile,
)
from transfer import export_payload, import_payload


DAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

T = TypeVar("T")

configure_logging()
st.set_page_config(page_title="Study Planner", page_icon="📚", layout="wide")


def _ensure_session_state() -> list[str]:
    profiles = list_profiles()
    if not profiles:
        create_profile("default")
        profiles = list_profiles()

    if "profile_name" not in st.session_state:
        st.session_state.profile_name = profiles[0]

    if st.session_state.profile_name not in profiles:
        st.session_state.profile_name = profiles[0]

    if "state" not in st.session_state:
        st.session_state.state = load_profile(st.session_state.profile_name)

    if "week_offset" not in st.session_state:
        st.session_state.week_offset = 0

    if "chat" not in st.session_state:
        st.session_state.chat = []

    return profiles


def _switch_profile(name: str) -> None:
    st.session_state.profile_name = name
    st.session_state.state = load_profile(name)
    st.session_state.chat = []


def _queue_toast(message: str) -> None:
    st.session_state.toast_message = message


def _flush_toast() -> None:
    message = st.session_state.pop("toast_message", None)
    if message:
        st.toast(message)


def _commit(action: Callable[[AppState], T]) -> Tuple[bool, Optional[T]]:
    """
    Run a mutation against the stored profile under its lock. The profile is
    written back only if the action succeeds; the flag reports whether it did.
    """
    result = apply_edit(current_profile, action)
    if not result.ok:
        st.error(result.error)
        return False, None
    st.session_state.state = result.state
    return True, result.outcome


def _commit_and_rerun(action: Callable[[AppState], object], message: str) -> None:
    ok, result = _commit(action)
    if ok:
        _report(result)
        _queue_toast(message)
        st.rerun()


def _report(result) -> None:
    if isinstance(result, RebalanceResult) and result.unresolved:
        st.warning(
            f"{len(result.unresolved)} session(s) could not be placed within "
            f"{state.settings.max_search_days} days and need manual review."
        )


def _hours_label(start_hour: int, end_hour: int) -> str:
    if start_hour == 0 and end_hour == 24:
        return "All day"
    return f"{start_hour}:00 - {end_hour}:00"


def render_courses(state: AppState) -> None:
    st.header("Courses")
    today = date.today()

    st.subheader("Add course")
    with st.form("add_course_form", clear_on_submit=True):
        col1, col2, col3 = st.columns([2, 1, 1])
        with col1:
            name = st.text_input("Name", placeholder="Anatomy")
        with col2:
            hours = st.number_input(
                "Hours per session", min_value=0.5, max_value=12.0, value=2.0, step=0.5
            )
        with col3:
            start_date = st.date_input("Start date (J0)", value=today)
        submitted = st.form_submit_button("Add course", type="primary")
        if submitted:
            if not name.strip():
                st.warning("Name is required.")
            else:
                ok, outcome = _commit(
                    lambda s: agenda.create_course(s, name.strip(), float(hours), start_date, today)
                )
                if ok:
                    course, result = outcome
                    _report(result)
                    st.toast(f"Course added with {len(course.sessions)} sessions.")

    st.divider()
    st.subheader("Course manager")
    if not state.courses:
        st.info("No courses yet.")
        return

    catalog = offsets_for(state.settings.catalog)
    for course in state.courses:
        done = sum(1 for s in course.sessions if s.completed)
        with st.expander(f"{course.name} - {course.hours_per_day:g}h per session - {done}/{len(course.sessions)} done"):
            rows = [
                {
                    "Interval": label_for(catalog, s.interval_key),
                    "Date": s.day,
                    "Original": s.original_day,
                    "Status": ("✅" if s.success else "❌") if s.completed else "⏳",
                    "Rescheduled": s.rescheduled,
                    "Needs review": s.needs_review,
                }
                for s in course.sessions
            ]
            st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)

            pending = [s for s in course.sessions if not s.completed]
            if pending:
                options = {f"{s.interval_key} ({s.day.isoformat()})": s.id for s in pending}
                choice = st.selectbox("Session", list(options.keys()), key=f"session_pick_{course.id}")
                session_id = options[choice]
                c1, c2, c3 = st.columns(3)
                if c1.button("Mark success", key=f"ok_{course.id}"):
                    if _commit(lambda s: agenda.mark_session_complete(s, course.id, session_id, True))[0]:
                        st.rerun()
                if c2.button("Mark failed", key=f"ko_{course.id}"):
                    if _commit(lambda s: agenda.mark_session_complete(s, course.id, session_id, False))[0]:
                        st.rerun()
                if c3.button("Delete session", key=f"del_session_{course.id}"):
                    _commit_and_rerun(
                        lambda s: agenda.delete_session(s, course.id, session_id, today),
                        "Session deleted.",
                    )

            d1, d2 = st.columns(2)
            if pending and d1.button("Delete pending sessions", key=f"del_pending_{course.id}"):
                _commit_and_rerun(
                    lambda s: agenda.delete_pending_sessions(s, course.id, today),
                    "Pending sessions deleted.",
                )
            if d2.button("Delete course", key=f"del_course_{course.id}"):

                @st.dialog("Delete course?")
                def _confirm_course_delete() -> None:
                    st.write(f"Delete '{course.name}' and all its sessions?")
                    if st.button("Delete", type="primary"):
                        _commit_and_rerun(
                            lambda s: agenda.delete_course(s, course.id, today),
                            "Course deleted.",
                        )

                _confirm_course_delete()

    st.divider()
    if st.button("Delete all courses"):

        @st.dialog("Delete all courses?")
        def _confirm_delete_all() -> None:
            st.write(f"This removes {len(state.courses)} course(s) and all their sessions.")
            if st.button("Delete all", type="primary"):
                _commit_and_rerun(agenda.delete_all_courses, "All courses deleted.")

        _confirm_delete_all()


def render_constraints(state: AppState) -> None:
    st.header("Constraints")
    today = date.today()

    st.subheader("Add constraint")
    with st.form("add_constraint_form", clear_on_submit=True):
        col1, col2, col3 = st.columns([1, 1, 2])
        with col1:
            day = st.date_input("Date", value=today)
        with col2:
            full_day = st.checkbox("All day", value=True)
        with col3:
            start_hour, end_hour = st.slider("Busy hours", 0, 24, (9, 12))
        description = st.text_input("Description", value="Personal constraint")
        if st.form_submit_button("Add constraint", type="primary"):
            if full_day:
                start_hour, end_hour = 0, 24
            ok, outcome = _commit(
                lambda s: agenda.add_constraint(s, day, start_hour, end_hour, description, today)
            )
            if ok:
                _, result = outcome
                _report(result)
                st.toast(f"Constraint added. {len(result.moved)} session(s) rescheduled.")

    st.subheader("Import busy times (.ics)")
    uploaded = st.file_uploader("Upload .ics file", type=["ics"], key="ics_upload")
    if uploaded:
        try:
            parsed = parse_ics_bytes(uploaded.read())
        except ValueError as e:
            st.error(f"Could not read ICS file: {e}")
        else:
            if not parsed:
                st.warning("No events found in this file.")
            else:
                preview = [
                    {"Date": c.day, "Hours": _hours_label(c.start_hour, c.end_hour), "Title": c.description}
                    for c in parsed
                ]
                st.dataframe(preview, use_container_width=True, height=250)
                if st.button("Import as constraints", type="primary"):
                    def _merge(s: AppState):
                        existing = {(c.day, c.start_hour, c.end_hour, c.description) for c in s.constraints}
                        for c in parsed:
                            if (c.day, c.start_hour, c.end_hour, c.description) not in existing:
                                s.constraints.append(c)
                        return agenda.rebalance_state(s, today)

                    ok, result = _commit(_merge)
                    if ok:
                        _report(result)
                        st.toast("Busy times imported.")

    st.divider()
    st.subheader("Saved constraints")
    if not state.constraints:
        st.info("No constraints recorded.")
        return

    rows = [
        {
            "Select": False,
            "id": c.id,
            "Date": c.day,
            "Day": DAY_LABELS[c.day.weekday()],
            "Hours": _hours_label(c.start_hour, c.end_hour),
            "Description": c.description,
            "Source": c.kind,
        }
        for c in sorted(state.constraints, key=lambda x: (x.day, x.start_hour))
    ]
    edited = st.data_editor(
        pd.DataFrame(rows).set_index("id"),
        hide_index=True,
        use_container_width=True,
        column_config={
            "Select": st.column_config.CheckboxColumn("Select"),
            "Date": st.column_config.DateColumn("Date"),
        },
        disabled=["Date", "Day", "Hours", "Description", "Source"],
        key=f"constraints_editor_{current_profile}",
    )
    selected_ids = [row["id"] for row in edited.reset_index().to_dict("records") if row.get("Select")]
    if st.button("Delete selected"):
        if not selected_ids:
            st.warning("Select at least one constraint to delete.")
        else:
            def _delete(s: AppState):
                results = [agenda.delete_constraint(s, cid, today) for cid in selected_ids]
                return results[-1]

            _commit_and_rerun(_delete, "Constraints deleted.")


def render_plan(state: AppState) -> None:
    st.header("Plan")
    today = date.today()

    col_left, col_right = st.columns([1, 2])

    with col_left:
        st.subheader("Today")
        stats = agenda.plan_stats(state, today)
        m1, m2 = st.columns(2)
        m1.metric("Hours today", f"{stats['today_hours']:g}")
        m2.metric("Completion", f"{stats['completion_rate']}%")
        if today.weekday() == 6:
            st.info("Sunday is a rest day.")
        todays = agenda.today_sessions(state, today)
        if not todays:
            st.info("No sessions scheduled for today.")
        for entry in todays:
            marker = " 🔄" if entry.rescheduled else ""
            st.write(f"• {entry.course_name} ({entry.label}) - {entry.hours:g}h{marker}")

        if st.button("Rebalance now"):
            ok, result = _commit(lambda s: agenda.rebalance_state(s, today))
            if ok:
                _report(result)
                st.toast(f"{len(result.moved)} session(s) moved.")

    with col_right:
        nav_prev, nav_label, nav_next = st.columns([1, 2, 1])
        if nav_prev.button("◀ Previous week"):
            st.session_state.week_offset -= 1
            st.rerun()
        if nav_next.button("Next week ▶"):
            st.session_state.week_offset += 1
            st.rerun()
        week_offset = st.session_state.week_offset
        plan = agenda.weekly_plan(state, week_offset, today, with_times=True)
        week_start, week_end = plan[0].day, plan[-1].day
        nav_label.caption(f"Week: {week_start.isoformat()} - {week_end.isoformat()}")

        rows = []
        for day in plan:
            for entry in day.sessions:
                rows.append({
                    "Date": day.day,
                    "Day": DAY_LABELS[day.day.weekday()],
                    "Course": entry.course_name,
                    "Interval": entry.label,
                    "Time": f"{entry.start:%H:%M}-{entry.end:%H:%M}" if entry.start else "",
                    "Hours": entry.hours,
                    "Status": ("✅" if entry.success else "❌") if entry.completed else "⏳",
                    "Rescheduled": entry.rescheduled,
                })
        if not rows:
            st.info("No sessions this week.")
        else:
            st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)

        busy = busy_hours_by_day(state.constraints, week_start, num_days=7)
        day_totals = [
            {
                "Date": d.day.strftime("%a %m/%d"),
                "Planned (h)": d.total_hours,
                "Busy (h)": busy.get(d.day, 0),
                "Overloaded": "⚠️" if d.overloaded else "",
            }
            for d in plan
        ]
        with st.expander("Per-day totals", expanded=False):
            st.table(day_totals)

        st.subheader("Move a session")
        movable = [
            (f"{c.name} {s.interval_key} ({s.day.isoformat()})", c.id, s.id)
            for c in state.courses for s in c.sessions if not s.completed
        ]
        if movable:
            with st.form("move_session_form"):
                labels = [m[0] for m in movable]
                picked = st.selectbox("Session", labels)
                target = st.date_input("New date", value=today + timedelta(days=1))
                if st.form_submit_button("Move"):
                    _, course_id, session_id = movable[labels.index(picked)]
                    if _commit(lambda s: agenda.move_session(s, course_id, session_id, target))[0]:
                        st.toast("Session moved.")

    st.divider()
    st.subheader("Exports")
    ics_bytes, ics_warnings = sessions_to_ics(state, week_start, week_end)
    st.download_button(
        "Download ICS",
        data=ics_bytes,
        file_name=f"study_plan_{week_start.isoformat()}.ics",
        mime="text/calendar",
    )
    if ics_warnings:
        st.warning(" | ".join(ics_warnings))

    st.download_button(
        "Download PDF",
        data=week_plan_to_pdf(plan, state.settings),
        file_name=f"study_plan_{week_start.isoformat()}.pdf",
        mime="application/pdf",
    )


def render_assistant(state: AppState) -> None:
    st.header("Assistant")
    st.caption("Type 'help' to list commands.")

    for role, text in st.session_state.chat:
        with st.chat_message(role):
            st.text(text)

    message = st.chat_input("e.g. Add Anatomy with 2 hours per day")
    if message:
        today = date.today()
        command = parse_command(message, today)
        _, reply = _commit(lambda s: execute(s, command, today))
        st.session_state.chat.append(("user", message))
        st.session_state.chat.append(("assistant", reply or ""))
        st.rerun()


def render_settings(state: AppState) -> None:
    st.header("Settings")
    current = state.settings

    st.subheader("Working hours")
    day_start, day_end = st.slider(
        "Working day", 0, 24, (current.day_start_hour, current.day_end_hour)
    )
    lunch_start, lunch_end = st.slider(
        "Lunch break", 0.0, 24.0, (float(current.lunch_break_start), float(current.lunch_break_end)), 0.5
    )
    max_hours = st.slider("Max hours per day", 1.0, 16.0, float(current.max_hours_per_day), 0.5)
    distribute = st.checkbox("Distribute sessions evenly across the day", value=current.distribute_evenly)

    with st.expander("Advanced settings", expanded=False):
        catalog_ids = list(CATALOGS.keys())
        catalog = st.selectbox(
            "Interval catalog",
            catalog_ids,
            index=catalog_ids.index(current.catalog),
            format_func=lambda c: f"{c}: " + ", ".join(i.key for i in CATALOGS[c]),
        )
        rebalance_on_delete = st.checkbox(
            "Rebalance remaining sessions after deletions", value=current.rebalance_on_delete
        )
        max_search_days = st.number_input(
            "Search limit (days)", min_value=30, max_value=36500, value=current.max_search_days, step=30
        )

    if st.button("Save settings", type="primary"):
        def _apply(s: AppState) -> None:
            s.settings = Settings(
                day_start_hour=day_start,
                day_end_hour=day_end,
                lunch_break_start=lunch_start,
                lunch_break_end=lunch_end,
                max_hours_per_day=max_hours,
                distribute_evenly=distribute,
                catalog=catalog,
                rebalance_on_delete=rebalance_on_delete,
                max_search_days=int(max_search_days),
            )

        if _commit(_apply)[0]:
            st.toast("Settings saved.")


def render_data(state: AppState) -> None:
    st.header("Data")

    st.subheader("Export")
    payload = export_payload(state)
    st.download_button(
        "Download JSON",
        data=json.dumps(payload, ensure_ascii=False, indent=2),
        file_name=f"study_planner_{date.today().isoformat()}.json",
        mime="application/json",
    )

    st.subheader("Import")
    uploaded = st.file_uploader("Upload export (.json)", type=["json"], key="json_upload")
    if uploaded and st.button("Replace current data", type="primary"):
        try:
            incoming = import_payload(json.loads(uploaded.read()), profile=current_profile)
        except (PlannerError, ValueError) as e:
            st.error(str(e))
        else:
            def _replace(s: AppState) -> None:
                s.courses = incoming.courses
                s.constraints = incoming.constraints
                s.settings = incoming.settings

            _commit_and_rerun(
                _replace,
                f"Imported {len(incoming.courses)} courses and {len(incoming.constraints)} constraints.",
            )


profiles = _ensure_session_state()
state: AppState = st.session_state.state
current_profile = st.session_state.profile_name

st.title("Study Planner")
st.caption("Spaced repetition planner: J-interval sessions, constraints, weekly views.")
_flush_toast()

if "nav_page" not in st.session_state:
    st.session_state.nav_page = "Courses"

with st.sidebar:
    st.header("Profile")
    profiles = list_profiles()
    selected_profile = st.selectbox(
        "Active profile",
        options=profiles,
        index=profiles.index(current_profile) if current_profile in profiles else 0,
    )
    if selected_profile != current_profile:
        _switch_profile(selected_profile)
        st.rerun()

    with st.form("create_profile_form"):
        new_profile_name = st.text_input("New profile name", placeholder="e.g. Semester A")
        if st.form_submit_button("Create profile"):
            try:
                new_state = create_profile(new_profile_name)
            except ValueError as e:
                st.error(str(e))
            else:
                _queue_toast(f"Profile '{new_profile_name.strip()}' created.")
                st.session_state.profile_name = new_profile_name.strip()
                st.session_state.state = new_state
                st.rerun()

    if st.button("Delete profile", disabled=len(profiles) <= 1):

        @st.dialog("Delete profile?")
        def _confirm_delete_profile() -> None:
            st.write(f"Delete profile '{current_profile}' and its data?")
            if st.button("Delete", type="primary"):
                delete_profile(current_profile)
                remaining = list_profiles()
                _switch_profile(remaining[0])
                _queue_toast("Profile deleted.")
                st.rerun()

        _confirm_delete_profile()

    st.divider()
    st.header("Navigate")
    pages = ["Courses", "Constraints", "Plan", "Assistant", "Settings", "Data"]
    page = st.radio("Page", pages, key="nav_page", label_visibility="collapsed")

    st.caption("Workflow: Courses -> Constraints -> Plan")

if page == "Courses":
    render_courses(state)
elif page == "Constraints":
    render_constraints(state)
elif page == "Plan":
    render_plan(state)
elif page == "Assistant":
    render_assistant(state)
elif page == "Settings":
    render_settings(state)
elif page == "Data":
    render_data(state)
