"""
Streamlit Frontend for Jaap Ledger

The daily screen the user opens to log their count.

DESIGN PRINCIPLES:
1. Today's count is one field and one button away
2. Totals shown are exactly what the reflection engine returned
3. A failed save shows a notice and leaves the last good view in place
4. Old entries are read-only; only the last week can be corrected

Layout:
- Today card: date, count, notes, save
- Reflection card: year total, lifetime total, next milestone, progress, milestones
- Ledger: years (current one open) > days > edit form or read-only notes
- Seeding dialog: baseline plus any number of historical milestone rows
"""

import asyncio
from datetime import date

import streamlit as st

from jaap_ledger.audit import create_correlation_id
from jaap_ledger.models import ActionResult, Reflection
from jaap_ledger.orchestrator import LedgerService, create_app_components
from jaap_ledger.views import (
    format_entry_summary,
    format_milestone,
    progress_fraction,
    reflection_lines,
)


# Page configuration
st.set_page_config(
    page_title="Jaap Ledger",
    page_icon="📿",
    layout="centered",
    initial_sidebar_state="collapsed",
)

st.markdown("""
<style>
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #7a3e00;
    }
    .card-label {
        color: #6c757d;
        font-size: 0.9em;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def apply_result(result: ActionResult, show_success: bool = True) -> None:
    """
    Keep the reflection from a successful action; on failure show the
    notice and leave the previously rendered reflection untouched.
    """
    if result.success:
        if result.reflection is not None:
            st.session_state.reflection = result.reflection
        if show_success and result.message:
            st.session_state.flash = result.message
    else:
        st.error(result.message)


def main():
    """Main application entry point."""
    service, store = get_components()

    if "reflection" not in st.session_state:
        st.session_state.reflection = None
    if "flash" not in st.session_state:
        st.session_state.flash = None
    if "milestone_rows" not in st.session_state:
        st.session_state.milestone_rows = 1

    st.title("📿 Jaap Ledger")

    if st.session_state.flash:
        st.success(st.session_state.flash)
        st.session_state.flash = None

    # Recompute on every render; failures keep the last good reflection
    apply_result(run_async(service.refresh()), show_success=False)

    render_today_card(service)
    render_reflection_card(st.session_state.reflection)
    render_ledger(service)

    if st.button("🌱 Seed baseline & milestones"):
        seed_dialog(service)

    with st.sidebar:
        render_settings_status(store.backend_name)
        with st.expander("Recent activity"):
            for event in run_async(service.recent_activity(limit=10)):
                st.caption(f"{event.timestamp:%d-%m-%Y %H:%M} · {event.description}")


def render_settings_status(backend_name: str):
    """Configuration check for the sidebar."""
    from jaap_ledger.config import validate_all_settings

    st.markdown("### Configuration")
    st.caption(f"Storage in use: {backend_name}")

    status = validate_all_settings()
    sections = [
        ("Storage", "storage"),
        ("Google Sheets", "google_sheets"),
        ("Application", "app"),
    ]
    for name, key in sections:
        if key not in status:
            continue
        if status[key]:
            st.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.caption("See `.env.example` for the available settings.")


def render_today_card(service: LedgerService):
    """Today's date with its count and notes, prefilled if already saved."""
    today = date.today()
    existing = run_async(service.get_entry(today))

    with st.container(border=True):
        st.subheader("Today")
        st.markdown(f"**{today.isoformat()}**")

        with st.form("today-form"):
            count = st.number_input(
                "Jaap count",
                value=existing.jaap_count if existing else 0,
                step=1,
                format="%d",
            )
            notes = st.text_area(
                "Notes",
                value=existing.notes if existing else "",
                placeholder="How did today's practice go?",
            )
            if st.form_submit_button("💾 Save", type="primary"):
                result = run_async(service.save_today(
                    count=int(count),
                    notes=notes,
                    correlation_id=create_correlation_id(),
                ))
                apply_result(result)
                if result.success:
                    st.rerun()


def render_reflection_card(reflection: Reflection | None):
    """Totals, progress and milestones exactly as the engine returned them."""
    with st.container(border=True):
        st.subheader("Reflection")
        if reflection is None:
            st.info("Reflection is not available yet.")
            return

        lines = reflection_lines(reflection)
        col1, col2 = st.columns(2)
        with col1:
            st.markdown('<div class="card-label">This year</div>', unsafe_allow_html=True)
            st.markdown(f'<div class="big-number">{lines["year_total"]}</div>', unsafe_allow_html=True)
        with col2:
            st.markdown('<div class="card-label">Lifetime</div>', unsafe_allow_html=True)
            st.markdown(f'<div class="big-number">{lines["lifetime_total"]}</div>', unsafe_allow_html=True)

        st.markdown(f"**Next milestone:** {lines['next_milestone']}")
        st.progress(progress_fraction(reflection), text=lines["progress"])

        if reflection.newly_crossed:
            st.balloons()

        st.markdown("**Milestones**")
        if not reflection.milestones:
            st.caption("No crore reached yet.")
        for record in reflection.milestones:
            st.markdown(format_milestone(record))


def render_ledger(service: LedgerService):
    """Entries by year, newest first; the last week stays editable."""
    st.subheader("Ledger")
    result = run_async(service.ledger_view())
    if not result.success:
        st.error(result.message)
        return
    if not result.ledger:
        st.caption("No entries yet. Save today's count to start your ledger.")
        return

    # Streamlit can't nest expanders: years expand, days are bordered rows
    for group in result.ledger:
        with st.expander(f"{group.year} · {group.total}", expanded=group.expanded):
            for row in group.rows:
                entry = row.entry
                with st.container(border=True):
                    st.markdown(f"**{format_entry_summary(entry)}**")
                    if not row.editable:
                        st.caption(f"Jaap Count: {entry.jaap_count}")
                        st.caption(f"Notes: {entry.notes}")
                        continue

                    with st.form(f"edit-{entry.key}"):
                        count = st.number_input(
                            "Jaap count",
                            value=entry.jaap_count,
                            step=1,
                            format="%d",
                            key=f"count-{entry.key}",
                        )
                        notes = st.text_area(
                            "Notes",
                            value=entry.notes,
                            key=f"notes-{entry.key}",
                        )
                        if st.form_submit_button("Update"):
                            update = run_async(service.edit_recent_entry(
                                entry.entry_date,
                                int(count),
                                notes,
                                correlation_id=create_correlation_id(),
                            ))
                            apply_result(update)
                            if update.success:
                                st.rerun()


@st.dialog("Seed baseline & milestones")
def seed_dialog(service: LedgerService):
    """Baseline plus historical milestones; add as many rows as needed."""
    baseline = st.number_input(
        "Lifetime count before this ledger",
        min_value=0,
        value=0,
        step=1,
        format="%d",
    )

    st.markdown("**Milestones already reached**")
    rows = []
    for i in range(st.session_state.milestone_rows):
        col1, col2 = st.columns(2)
        with col1:
            crore = st.text_input(
                "Crore number",
                key=f"seed-crore-{i}",
                placeholder="Crore number (e.g. 2)",
            )
        with col2:
            reached = st.text_input(
                "Date",
                key=f"seed-date-{i}",
                placeholder="DD-MM-YYYY",
            )
        rows.append((crore, reached))

    if st.button("➕ Add milestone"):
        st.session_state.milestone_rows += 1
        st.rerun(scope="fragment")

    if st.button("💾 Save", type="primary"):
        result = run_async(service.save_seed(
            baseline=int(baseline),
            rows=rows,
            correlation_id=create_correlation_id(),
        ))
        if result.success:
            apply_result(result)
            st.session_state.milestone_rows = 1
            st.rerun()
        else:
            st.error(result.message)


if __name__ == "__main__":
    main()
