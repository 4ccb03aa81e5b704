"""
Streamlit Frontend for SubTrack

A calendar of recurring payments with search, category breakdown,
smart add and AI insights.

DESIGN PRINCIPLES:
1. The month grid is the home screen
2. Explicit confirmation before anything is deleted
3. Smart add only pre-fills the form; the user saves
4. Clear error messages for every rejected input
5. No business rules here: everything goes through the orchestrator
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from src.analytics import DAY_NAMES, grid_weeks, shift_month
from src.audit import create_correlation_id
from src.config import get_settings, validate_all_settings
from src.models.subscription import BillingCycle, ParseFailure, Subscription
from src.orchestrator import AppComponents, create_app_components
from src.services.storage import NotFoundError, StorageError
from src.validation import CATEGORY_ICONS, DEFAULT_COLOR, NormalizationError


# Page configuration
st.set_page_config(
    page_title="SubTrack",
    page_icon="📅",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #ff7f50;
    }
    .sub-chip {
        padding: 6px 10px;
        border-radius: 8px;
        border-left: 5px solid var(--chip-color);
        background-color: #1f1f1f;
        margin: 4px 0;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_event_loop():
    """One loop for the whole session so async clients stay bound to it."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = get_event_loop()
    asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def init_state():
    today = date.today()
    defaults = {
        "view_year": today.year,
        "view_month": today.month,
        "selected_day": today.day,
        "selected_category": None,
        "search": "",
        "editing_id": None,
        "form_values": {},
        "confirm_delete_id": None,
        "insights": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def currency(amount) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{Decimal(amount):,.2f}"


def main():
    """Main application entry point."""
    init_state()
    components = get_components()

    # Widgets cannot be written to once drawn; page switches are queued
    if st.session_state.get("next_page"):
        st.session_state.page = st.session_state.pop("next_page")

    st.sidebar.title("📅 SubTrack")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📅 Calendar", "➕ Add / Edit", "💡 Insights", "⚙️ Settings"],
        key="page",
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **Smart add examples:**
        - "Netflix 15.99 on the 5th"
        - "Dropbox 120 yearly on the 10th"
        """
    )

    if page == "📅 Calendar":
        render_calendar_page(components)
    elif page == "➕ Add / Edit":
        render_form_page(components)
    elif page == "💡 Insights":
        render_insights_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


# =============================================================================
# CALENDAR
# =============================================================================

def render_calendar_page(components: AppComponents):
    """Month grid, totals, categories and the selected day."""
    state = st.session_state

    search = st.text_input(
        "🔍 Search subscriptions",
        value=state.search,
        placeholder="Name or category",
    )
    if search != state.search:
        state.search = search
        state.selected_category = None

    view = run_async(components.subscriptions.month_view(
        state.view_year,
        state.view_month,
        query=state.search or None,
        selected_day=state.selected_day,
        selected_category=state.selected_category,
    ))

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("Monthly total")
        st.markdown(f'<div class="big-number">{currency(view.monthly_total)}</div>', unsafe_allow_html=True)
    with col2:
        st.markdown("Yearly projection")
        st.markdown(f'<div class="big-number">{currency(view.yearly_projection)}</div>', unsafe_allow_html=True)

    st.markdown("---")

    grid_col, side_col = st.columns([3, 1])

    with grid_col:
        render_month_navigation(view.month_name, view.year)
        render_grid(view)

    with side_col:
        render_categories(view)

    st.markdown("---")
    render_selection(components, view)


def render_month_navigation(month_name: str, year: int):
    state = st.session_state
    prev_col, title_col, today_col, next_col = st.columns([1, 3, 1, 1])

    with prev_col:
        if st.button("◀ Prev"):
            state.view_year, state.view_month = shift_month(state.view_year, state.view_month, -1)
            st.rerun()
    with title_col:
        st.subheader(f"{month_name} {year}")
    with today_col:
        if st.button("Today"):
            today = date.today()
            state.view_year, state.view_month = today.year, today.month
            state.selected_day = today.day
            st.rerun()
    with next_col:
        if st.button("Next ▶"):
            state.view_year, state.view_month = shift_month(state.view_year, state.view_month, 1)
            st.rerun()


def render_grid(view):
    state = st.session_state

    header = st.columns(7)
    for col, name in zip(header, DAY_NAMES):
        col.markdown(f"**{name}**")

    for week_idx, week in enumerate(grid_weeks(view.cells)):
        cols = st.columns(7)
        for col, cell in zip(cols, week):
            label = str(cell.day)
            if cell.subscriptions:
                label += " • " + str(len(cell.subscriptions))
            if not cell.is_current_month:
                label = f"·{label}·"
            with col:
                if st.button(label, key=f"cell-{week_idx}-{cell.date.isoformat()}"):
                    state.selected_day = cell.day
                    state.selected_category = None
                    if not cell.is_current_month:
                        state.view_year, state.view_month = cell.date.year, cell.date.month
                    st.rerun()


def render_categories(view):
    state = st.session_state
    st.markdown("### Categories")

    if not view.category_stats:
        st.info("No subscriptions match.")
        return

    for stat in view.category_stats:
        selected = stat.category == state.selected_category
        label = f"{'✅ ' if selected else ''}{stat.category} ({stat.count}) · {currency(stat.total_monthly_equivalent)}"
        if st.button(label, key=f"cat-{stat.category}"):
            state.selected_category = None if selected else stat.category
            st.rerun()


def render_selection(components: AppComponents, view):
    """Subscriptions for the selected category, or else the selected day."""
    if view.selected_category:
        st.markdown(f"### {view.selected_category} Subscriptions")
        subs = view.category_subscriptions
    else:
        st.markdown(f"### Due on day {view.selected_day}")
        subs = view.day_subscriptions

    if not subs:
        st.info("Nothing due here.")
        return

    for sub in subs:
        render_subscription_row(components, sub)


def render_subscription_row(components: AppComponents, sub: Subscription):
    state = st.session_state
    info_col, edit_col, delete_col = st.columns([4, 1, 1])

    with info_col:
        st.markdown(
            f'<div class="sub-chip" style="--chip-color: {sub.color}">'
            f"<b>{sub.name}</b> · {currency(sub.amount)}/{sub.cycle.value.lower()} "
            f"· day {sub.billing_date} · {sub.category}</div>",
            unsafe_allow_html=True,
        )
    with edit_col:
        if st.button("✏️ Edit", key=f"edit-{sub.id}"):
            state.editing_id = sub.id
            state.form_values = sub.model_dump()
            state.next_page = "➕ Add / Edit"
            st.rerun()
    with delete_col:
        if st.button("🗑️ Delete", key=f"delete-{sub.id}"):
            state.confirm_delete_id = sub.id
            st.rerun()

    if state.confirm_delete_id == sub.id:
        st.warning(f"Delete **{sub.name}**? This cannot be undone.")
        yes_col, no_col = st.columns(2)
        with yes_col:
            if st.button("Yes, delete", key=f"confirm-{sub.id}", type="primary"):
                try:
                    run_async(components.subscriptions.delete(
                        sub.id,
                        correlation_id=create_correlation_id(),
                    ))
                    state.insights = None
                    st.success(f"Deleted {sub.name}")
                except NotFoundError:
                    st.error("That subscription no longer exists.")
                except StorageError as e:
                    st.error(f"Failed to delete: {e}")
                state.confirm_delete_id = None
                st.rerun()
        with no_col:
            if st.button("Cancel", key=f"cancel-{sub.id}"):
                state.confirm_delete_id = None
                st.rerun()


# =============================================================================
# ADD / EDIT
# =============================================================================

def render_form_page(components: AppComponents):
    """Manual form, pre-filled by smart add or by the subscription being edited."""
    state = st.session_state
    editing = state.editing_id is not None

    st.title("✏️ Edit Subscription" if editing else "➕ Add Subscription")

    if not editing:
        render_smart_add(components)

    values = state.form_values
    categories = list(CATEGORY_ICONS)
    current_category = values.get("category") or "General"
    if current_category not in categories:
        categories.append(current_category)

    with st.form("subscription_form"):
        name = st.text_input("Name", value=values.get("name") or "")

        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input(
                "Amount",
                min_value=0.0,
                value=float(values.get("amount") or 0.0),
                step=0.01,
                format="%.2f",
            )
        with col2:
            cycle = st.selectbox(
                "Billing cycle",
                options=list(BillingCycle),
                index=1 if values.get("cycle") == BillingCycle.YEARLY else 0,
                format_func=lambda c: c.value.title(),
            )

        col3, col4 = st.columns(2)
        with col3:
            billing_date = st.number_input(
                "Billing day of month",
                min_value=1,
                max_value=31,
                value=int(values.get("billing_date") or 1),
            )
        with col4:
            category = st.selectbox(
                "Category",
                options=categories,
                index=categories.index(current_category),
            )

        color = st.color_picker("Color", value=values.get("color") or DEFAULT_COLOR)

        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        raw = {
            "name": name,
            "amount": amount,
            "cycle": cycle.value,
            "billing_date": billing_date,
            "category": category,
            "color": color,
        }
        if editing and category != values.get("category"):
            raw["icon"] = None
        elif editing:
            raw["icon"] = values.get("icon")

        try:
            if editing:
                sub = run_async(components.subscriptions.update(
                    state.editing_id,
                    raw,
                    correlation_id=create_correlation_id(),
                ))
            else:
                sub = run_async(components.subscriptions.create(
                    raw,
                    correlation_id=create_correlation_id(),
                ))
        except NormalizationError as e:
            for issue in e.issues:
                st.error(f"❌ {issue.message}")
                if issue.suggested_fix:
                    st.caption(f"💡 {issue.suggested_fix}")
        except NotFoundError:
            st.error("That subscription no longer exists.")
            state.editing_id = None
        except StorageError as e:
            st.error(f"Failed to save: {e}")
        else:
            st.success(f"✅ Saved {sub.name}")
            state.editing_id = None
            state.form_values = {}
            state.insights = None
            state.selected_day = sub.billing_date

    if editing and st.button("Cancel editing"):
        state.editing_id = None
        state.form_values = {}
        st.rerun()


def render_smart_add(components: AppComponents):
    state = st.session_state

    with st.expander("✨ Smart Add", expanded=True):
        text = st.text_input(
            "Describe the subscription",
            placeholder="Netflix 15.99 on the 5th",
        )
        if st.button("Fill the form") and text.strip():
            with st.spinner("Parsing..."):
                result = run_async(components.smart_add.parse(
                    text,
                    correlation_id=create_correlation_id(),
                ))
            if isinstance(result, ParseFailure):
                st.error(result.reason)
            else:
                state.form_values = result.model_dump()
                st.rerun()


# =============================================================================
# INSIGHTS
# =============================================================================

def render_insights_page(components: AppComponents):
    state = st.session_state
    st.title("💡 Insights")

    if not components.insights.ai_enabled:
        st.info("GEMINI_API_KEY is not set. Showing local insights.")

    if st.button("🔍 Analyze my subscriptions", type="primary"):
        with st.spinner("Analyzing..."):
            subs = run_async(components.subscriptions.list_all())
            state.insights = run_async(components.insights.generate(
                subs,
                correlation_id=create_correlation_id(),
            ))

    report = state.insights
    if report is None:
        return

    st.markdown(f"### {report.summary}")
    for tip in report.savings_opportunities:
        st.markdown(f"- {tip}")

    st.markdown("Projected yearly spend")
    st.markdown(f'<div class="big-number">{currency(report.total_projected)}</div>', unsafe_allow_html=True)

    if report.is_fallback:
        st.caption("Generated locally because the AI service was unavailable.")


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    sections = [
        ("Gemini (AI)", "gemini"),
        ("Storage", "storage"),
        ("HTTP API", "api"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(f"**Storage backend:** `{type(components.subscriptions.storage).__name__}`")

    st.markdown("---")
    st.markdown("### Recent Activity")

    events = components.audit_logger.recent_events[:10]
    if not events:
        st.caption("No activity yet.")
    for event in events:
        st.markdown(f"`{event.timestamp:%H:%M:%S}` {event.description}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
