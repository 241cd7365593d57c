"""Streamlit app for tracking a Bible reading plan."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List

import plotly.graph_objects as go
import streamlit as st

from reading_plan import congregation, stats_engine, storage
from reading_plan.book_catalog import load_books, search_books, testament_groups
from reading_plan.config import default_user_id, log_level
from reading_plan.errors import StoreUnavailable
from reading_plan.ledger import book_progress, completed_count, first_book_with_progress, is_completed, ledger_size
from reading_plan.session import ReadingSession
from reading_plan.types import ChapterRef, CurriculumBook, SyncResult, WeeklyDay


logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Reading Plan", page_icon="📖", layout="wide")


@st.cache_resource
def _load_books() -> List[CurriculumBook]:
    """Load the curriculum once per server process."""

    return load_books()


def _session(user_id: str) -> ReadingSession:
    """Return the reader's session, creating and loading it on first use."""

    key = f"reading_session_{user_id}"
    if key not in st.session_state:
        session = ReadingSession(user_id, books=_load_books())
        if not session.refresh():
            st.error("Could not load your reading progress. Try again shortly.")
        st.session_state[key] = session
    return st.session_state[key]


def _report_sync(result: SyncResult, success_message: str) -> None:
    if result.success:
        st.success(f"{success_message} ({result.inserted} added, {result.updated} changed)")
    else:
        st.error(f"Saving failed: {result.error}. Your progress has been reloaded.")


def _on_toggle(session: ReadingSession, ref: ChapterRef, widget_key: str) -> None:
    """Checkbox callback: save the new value and report the outcome."""

    checked = bool(st.session_state[widget_key])
    result = session.toggle(ref.book, ref.chapter, checked)
    if not result.success:
        st.session_state[widget_key] = not checked
        st.session_state["flash_error"] = f"Failed to save {ref.label}: {result.error}"
        return
    if checked:
        st.session_state["flash_toast"] = f"Great job completing {ref.label}!"
    if result.day_just_completed:
        st.session_state["flash_day_complete"] = True


def _chapter_checkbox(session: ReadingSession, ref: ChapterRef, label: str, key_prefix: str) -> None:
    widget_key = f"{key_prefix}_{ref.book}_{ref.chapter}"
    st.session_state[widget_key] = is_completed(session.ledger, ref)
    st.checkbox(
        label,
        key=widget_key,
        on_change=_on_toggle,
        args=(session, ref, widget_key),
        disabled=session.busy,
    )


def _show_flash_messages() -> None:
    if st.session_state.pop("flash_day_complete", False):
        st.balloons()
        st.success("Daily reading complete! You've finished today's chapters.")
    message = st.session_state.pop("flash_toast", None)
    if message:
        st.toast(message)
    error = st.session_state.pop("flash_error", None)
    if error:
        st.error(error)


def _render_metrics(session: ReadingSession) -> None:
    try:
        stats = session.stats()
    except StoreUnavailable:
        st.warning("Statistics are unavailable right now.")
        return

    col_streak, col_total, col_rate, col_pace = st.columns(4)
    col_streak.metric("Current streak", f"{stats.streak_days} days")
    col_total.metric("Chapters read", stats.total_chapters_read)
    col_rate.metric("Bible completed", f"{stats.completion_rate}%")
    pace = stats.schedule_status
    col_pace.metric("Plan pace", "On track" if pace == 0 else f"{abs(pace)} {'ahead' if pace > 0 else 'behind'}")
    st.caption(f"Last read: {stats.last_read_date or 'Never'}")


def _render_today(session: ReadingSession) -> None:
    """Render today's assignment and any read-ahead chapters."""

    st.subheader("Today's Reading")
    st.caption(date.today().strftime("%A, %B %d, %Y"))
    if not session.loaded:
        st.error("Your reading progress could not be loaded. Use Reload progress to try again.")
        return
    _render_metrics(session)

    if completed_count(session.ledger) == ledger_size(session.ledger):
        st.success("You've read the whole Bible. Well done!")

    assignment = session.todays_assignment()
    if not assignment:
        return

    done = sum(1 for ref in assignment if is_completed(session.ledger, ref))
    st.markdown(f"**Daily progress:** {done}/{len(assignment)}")
    st.progress(done / len(assignment))

    for ref in assignment:
        _chapter_checkbox(session, ref, ref.label, "today")

    read_ahead = session.read_ahead_chapters()
    if read_ahead:
        st.markdown("### Read ahead")
        for ref in read_ahead:
            _chapter_checkbox(session, ref, ref.label, "ahead")


def _render_checklist(session: ReadingSession, books: List[CurriculumBook]) -> None:
    """Render the per-book chapter checklist."""

    st.subheader("Bible Reading Checklist")
    total = sum(book.chapters for book in books)
    completed = completed_count(session.ledger)
    st.markdown(f"**{completed}/{total}** chapters · **{stats_engine.completion_rate(session.ledger)}%**")

    query = st.text_input("Search books...", key="book_search")
    visible = {book.name for book in search_books(query, books)}
    expanded_book = first_book_with_progress(session.ledger, books)
    progress_by_book = {item.book: item for item in book_progress(session.ledger, books)}

    for testament, group in testament_groups(books).items():
        group = [book for book in group if book.name in visible]
        if not group:
            continue
        st.markdown(f"### {testament}")
        for book in group:
            progress = progress_by_book[book.name]
            badge = " ✅" if progress.is_finished else ""
            title = f"{book.name}{badge} · {progress.completed}/{progress.total}"
            with st.expander(title, expanded=book.name == expanded_book):
                st.progress(progress.percentage / 100)
                cols = st.columns(10)
                for chapter in range(1, book.chapters + 1):
                    with cols[(chapter - 1) % 10]:
                        _chapter_checkbox(session, ChapterRef(book.name, chapter), str(chapter), "check")

                mark_col, clear_col = st.columns(2)
                if mark_col.button("Mark book read", key=f"mark_{book.name}", disabled=session.busy):
                    _report_sync(session.bulk_mark_book(book.name, book.chapters, True), f"{book.name} marked read")
                if clear_col.button("Clear book", key=f"clear_{book.name}", disabled=session.busy):
                    _report_sync(session.bulk_mark_book(book.name, book.chapters, False), f"{book.name} cleared")


def _render_catch_up(session: ReadingSession, books: List[CurriculumBook]) -> None:
    """Render the advance-sync form."""

    st.subheader("Catch up")
    st.markdown(
        "Pick the last chapter you have read. Everything up to it is marked read and "
        "everything after it is cleared."
    )
    book_lookup: Dict[str, CurriculumBook] = {book.name: book for book in books}
    with st.form(key="advance_sync_form"):
        book_name = st.selectbox("Book", options=[book.name for book in books])
        chapter = st.number_input("Chapter", min_value=1, max_value=max(book.chapters for book in books), value=1, step=1)
        submitted = st.form_submit_button("Sync my progress", disabled=session.busy)

    if submitted:
        if int(chapter) > book_lookup[book_name].chapters:
            st.error(f"{book_name} only has {book_lookup[book_name].chapters} chapters.")
            return
        with st.spinner("Syncing your progress..."):
            result = session.advance_sync(book_name, int(chapter))
        _report_sync(result, f"Progress synced through {book_name} {int(chapter)}")

    st.caption("Today's reading keeps its place until you reload. Use the button to move it now.")
    if st.button("Start today's reading at my next unread chapter", disabled=session.busy):
        session.reset_schedule()
        st.success("Today's reading now starts at your next unread chapter.")


def _build_weekly_figure(grid: List[WeeklyDay]) -> go.Figure:
    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=[day.day.strftime("%a") for day in grid],
            y=[1 for _ in grid],
            marker_color=["#6E59A5" if day.complete else "#E5DEFF" for day in grid],
            hovertext=[f"Day {day.day_number + 1}" for day in grid],
        )
    )
    fig.update_layout(
        title="This week's plan",
        yaxis={"visible": False},
        showlegend=False,
        margin=dict(l=20, r=20, t=30, b=10),
        height=180,
    )
    return fig


def _render_history(session: ReadingSession) -> None:
    """Render the monthly calendar counts and the weekly plan grid."""

    st.subheader("Reading History")
    try:
        records = storage.fetch_records(session.user_id, completed_only=True)
        plan = storage.load_reading_plan(session.user_id)
    except StoreUnavailable:
        st.warning("History is unavailable right now.")
        return

    grid = stats_engine.weekly_grid(records, plan.start_date, chapters_per_day=plan.chapters_per_day, books=session.books)
    st.plotly_chart(_build_weekly_figure(grid), use_container_width=True)

    today = date.today()
    col_year, col_month = st.columns(2)
    year = int(col_year.number_input("Year", min_value=2000, max_value=2100, value=today.year))
    month = int(col_month.selectbox("Month", options=list(range(1, 13)), index=today.month - 1))
    readings = stats_engine.month_readings(records, year, month)

    fig = go.Figure()
    fig.add_trace(go.Bar(x=list(readings.keys()), y=list(readings.values()), name="Chapters"))
    fig.update_layout(
        title="Chapters per day",
        xaxis_title="Date",
        yaxis_title="Chapters",
        margin=dict(l=20, r=20, t=30, b=20),
    )
    st.plotly_chart(fig, use_container_width=True)


def _render_statistics(session: ReadingSession) -> None:
    st.subheader("Your Statistics")
    try:
        records = storage.fetch_records(session.user_id, completed_only=True)
    except StoreUnavailable:
        st.warning("Statistics are unavailable right now.")
        return

    last_week = stats_engine.chapters_by_day(records, days=7)
    fig = go.Figure()
    fig.add_trace(go.Bar(x=[day.strftime("%a") for day, _ in last_week], y=[count for _, count in last_week]))
    fig.update_layout(title="Chapters read this week", margin=dict(l=20, r=20, t=30, b=20))
    st.plotly_chart(fig, use_container_width=True)

    data = {item.book: [item.percentage] for item in book_progress(session.ledger, session.books) if item.completed}
    if data:
        st.markdown("### Progress by book")
        st.bar_chart(data)


def _render_admin(books: List[CurriculumBook]) -> None:
    """Render congregation-wide aggregates."""

    st.subheader("Admin Dashboard")
    try:
        records = storage.fetch_all_records()
    except StoreUnavailable:
        st.warning("Congregation data is unavailable right now.")
        return
    if not records:
        st.info("No reading activity yet.")
        return

    overview = congregation.congregation_stats(records, books=books)
    col_users, col_total, col_avg = st.columns(3)
    col_users.metric("Active members", overview.total_users)
    col_total.metric("Total chapters read", overview.total_chapters_read)
    col_avg.metric("Average completion", f"{overview.average_completion}%")

    pie = go.Figure()
    pie.add_trace(
        go.Pie(labels=[book for book, _ in overview.top_books], values=[count for _, count in overview.top_books])
    )
    pie.update_layout(title="Top books", margin=dict(l=20, r=20, t=30, b=10))
    st.plotly_chart(pie, use_container_width=True)

    weekdays = congregation.weekday_distribution(records)
    fig = go.Figure()
    fig.add_trace(go.Bar(x=list(weekdays.keys()), y=list(weekdays.values())))
    fig.update_layout(title="Readings by weekday (30 days)", margin=dict(l=20, r=20, t=30, b=20))
    st.plotly_chart(fig, use_container_width=True)

    histogram = congregation.completion_histogram(records)
    st.markdown("### Members by chapters read")
    st.bar_chart({label: [count] for label, count in histogram.items()})

    query = st.text_input("Search members", key="member_search").strip().lower()
    rows = [
        member.to_dict()
        for member in congregation.member_summaries(records, books)
        if not query or query in member.user_id.lower()
    ]
    st.dataframe(rows, use_container_width=True)


def main() -> None:
    """Render the main reading plan interface."""

    st.title("Bible Reading Plan")
    books = _load_books()
    user_id = st.sidebar.text_input("Reader", value=default_user_id()).strip() or default_user_id()
    session = _session(user_id)
    if st.sidebar.button("Reload progress"):
        session.refresh()

    _show_flash_messages()

    tabs = st.tabs(["Today", "Checklist", "Catch up", "History", "Statistics", "Admin"])

    with tabs[0]:
        _render_today(session)

    with tabs[1]:
        _render_checklist(session, books)

    with tabs[2]:
        _render_catch_up(session, books)

    with tabs[3]:
        _render_history(session)

    with tabs[4]:
        _render_statistics(session)

    with tabs[5]:
        _render_admin(books)


if __name__ == "__main__":
    main()
