"""
Streamlit Frontend for Lumena

This is the user interface for the bucket ledger: onboarding, the
dashboard, and the forms that record income, expenses and transfers.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every money operation is validated before anything changes
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The UI never edits balances directly:
- Forms collect input and call the ledger engine
- A rejected operation changes nothing and says why
- The ledger is saved after every accepted change
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from lumena.audit import create_correlation_id
from lumena.config import get_settings, validate_all_settings
from lumena.ledger import (
    AllocationMismatchError,
    CoverageMismatchError,
    LedgerError,
    build_strategy_buckets,
    compute_shortfall,
    propose_allocations,
)
from lumena.models import BucketCategory, IncomeType, Strategy, TransactionType
from lumena.orchestrator import LedgerSession, create_app_components
from lumena.queries import summarize, transactions_by_date
from lumena.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Lumena",
    page_icon="💡",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


# Friendly messages for rejected operations
ERROR_MESSAGES = {
    "InvalidAmount": "Please enter an amount greater than zero.",
    "InvalidDate": "Please pick a valid date.",
    "UnknownBucket": "One of the selected buckets no longer exists.",
    "SameBucket": "Pick two different buckets.",
    "AllocationMismatch": "The split must add up to the full income.",
    "CoverageMismatch": "The cover must add up to exactly the shortfall.",
    "NotFound": "That item no longer exists.",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def money(value: Decimal) -> str:
    return f"-${abs(value):,.2f}" if value < 0 else f"${value:,.2f}"


@st.cache_resource
def get_session() -> LedgerSession:
    """Get or create the ledger session (cached)."""
    try:
        session = create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage: {e}")
        session = create_app_components(use_storage=False)
    run_async(session.open())
    return session


def perform(session: LedgerSession, action, success_message: str) -> bool:
    """
    Run one engine operation, then persist.

    Returns True if the operation was accepted and saved.
    """
    try:
        action()
    except LedgerError as e:
        st.error(ERROR_MESSAGES.get(e.kind, e.message))
        if isinstance(e, (AllocationMismatchError, CoverageMismatchError)):
            st.caption(f"Expected {money(e.expected)}, got {money(e.actual)}")
        return False
    except ValueError as e:
        st.error(f"Invalid input: {e}")
        return False

    try:
        run_async(session.save())
    except StorageError as e:
        st.error(f"Saved in this session only. Could not write to disk: {e}")
        return False

    st.success(success_message)
    return True


def main():
    """Main application entry point."""
    try:
        session = get_session()
    except StorageError as e:
        st.error(
            f"Your saved data could not be read: {e}. "
            "Restore a backup into the data directory, or remove the file to start over."
        )
        st.stop()

    engine = session.engine

    if not engine.ledger.is_onboarding_complete:
        render_onboarding_page(session)
        return

    # Sidebar navigation
    st.sidebar.title("💡 Lumena")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "🪣 Buckets",
            "💵 Add Income",
            "🧾 Add Expense",
            "🔁 Transfer",
            "📜 Transactions",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.metric("Total balance", money(engine.total_balance()))

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(session)
    elif page == "🪣 Buckets":
        render_buckets_page(session)
    elif page == "💵 Add Income":
        render_income_page(session)
    elif page == "🧾 Add Expense":
        render_expense_page(session)
    elif page == "🔁 Transfer":
        render_transfer_page(session)
    elif page == "📜 Transactions":
        render_transactions_page(session)
    elif page == "⚙️ Settings":
        render_settings_page(session)


def render_onboarding_page(session: LedgerSession):
    """First-run wizard: income type, safety margin, starter buckets."""
    ledger_settings = get_settings().ledger

    st.title("👋 Welcome to Lumena")
    st.markdown("Answer three questions and we'll set up your buckets.")

    income_type = st.radio(
        "How regular is your income?",
        options=list(IncomeType),
        format_func=lambda x: x.value,
        horizontal=True,
    )

    safety_margin = st.number_input(
        "Monthly minimum need ($) *",
        min_value=0.0,
        step=50.0,
        format="%.2f",
        help="What you need each month to get by. Used to calculate your runway.",
    )

    strategies = list(Strategy)
    strategy = st.selectbox(
        "Starting strategy",
        options=strategies,
        index=strategies.index(ledger_settings.default_strategy),
        format_func=lambda x: x.value,
    )
    tax_enabled = st.checkbox(
        "Set money aside for tax",
        value=ledger_settings.default_tax_enabled,
        disabled=strategy == Strategy.SURVIVAL,
    )

    buckets = build_strategy_buckets(strategy, tax_enabled)
    st.markdown("### Your buckets")
    for bucket in buckets:
        st.markdown(f"- **{bucket.name}**: {bucket.allocation_percentage}% of each income")

    if st.button("✅ Finish setup", type="primary"):
        perform(
            session,
            lambda: session.engine.complete_onboarding(
                income_type=income_type,
                safety_margin=Decimal(str(safety_margin)),
                buckets=buckets,
            ),
            "All set!",
        ) and st.rerun()


def render_dashboard_page(session: LedgerSession):
    """Balances, runway and recent activity."""
    engine = session.engine
    summary = summarize(engine.snapshot())

    st.title("📊 Dashboard")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total balance", money(summary.total_balance))
    with col2:
        runway = summary.runway_months
        st.metric("Runway", f"{runway} months" if runway is not None else "Not set")
    with col3:
        st.metric("Transactions", summary.transaction_count)

    if summary.overdrawn_bucket_ids:
        names = [
            bucket.name for bucket in engine.list_buckets()
            if bucket.id in summary.overdrawn_bucket_ids
        ]
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ Overdrawn</h4>
            <p>{", ".join(names)}</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("### By category")
    cols = st.columns(max(1, len(summary.balance_by_category)))
    for col, (category, balance) in zip(cols, summary.balance_by_category.items()):
        with col:
            st.metric(category.value, money(balance))

    st.markdown("### Recent activity")
    recent = transactions_by_date(engine.list_transactions())[:5]
    if not recent:
        st.info("No transactions yet. Add your first income to get started.")
    for transaction in recent:
        st.markdown(
            f"{transaction.date.isoformat()} · **{transaction.description or transaction.type}** · "
            f"{money(transaction.amount)}"
        )


def render_buckets_page(session: LedgerSession):
    """List, add, edit and delete buckets."""
    engine = session.engine
    summary = summarize(engine.snapshot())
    progress = {p.bucket_id: p for p in summary.progress}

    st.title("🪣 Buckets")

    if summary.unallocated_percentage != 0:
        st.caption(
            f"Weights add up to {summary.allocated_percentage}%. "
            "Income proposals will need adjusting."
        )

    for bucket in engine.list_buckets():
        with st.expander(f"{bucket.name} · {money(bucket.balance)}"):
            item = progress.get(bucket.id)
            if item and item.percent is not None:
                st.progress(float(item.percent) / 100, text=f"{item.percent}% of {money(item.target)}")

            name = st.text_input("Name", value=bucket.name, key=f"name-{bucket.id}")
            categories = list(BucketCategory)
            category = st.selectbox(
                "Category",
                options=categories,
                index=categories.index(bucket.category),
                format_func=lambda x: x.value,
                key=f"category-{bucket.id}",
            )
            weight = st.number_input(
                "Share of income (%)",
                min_value=0.0,
                max_value=100.0,
                value=float(bucket.allocation_percentage),
                key=f"weight-{bucket.id}",
            )
            target = st.number_input(
                "Target ($, 0 for none)",
                min_value=0.0,
                value=float(bucket.target or 0),
                key=f"target-{bucket.id}",
            )

            col1, col2 = st.columns(2)
            with col1:
                if st.button("💾 Save", key=f"save-{bucket.id}"):
                    perform(
                        session,
                        lambda: engine.update_bucket(
                            bucket.id,
                            name=name,
                            category=category,
                            allocation_percentage=Decimal(str(weight)),
                            target=Decimal(str(target)) if target else None,
                        ),
                        "Bucket updated",
                    ) and st.rerun()
            with col2:
                if st.button("🗑️ Delete", key=f"delete-{bucket.id}"):
                    if bucket.balance != 0:
                        st.warning(f"{money(bucket.balance)} in this bucket will be discarded.")
                    perform(
                        session,
                        lambda: engine.delete_bucket(bucket.id),
                        "Bucket deleted",
                    ) and st.rerun()

    st.markdown("---")
    st.markdown("### Add a bucket")
    with st.form("add-bucket", clear_on_submit=True):
        name = st.text_input("Name *")
        category = st.selectbox(
            "Category",
            options=list(BucketCategory),
            format_func=lambda x: x.value,
        )
        weight = st.number_input("Share of income (%)", min_value=0.0, max_value=100.0)
        if st.form_submit_button("➕ Add bucket") and name:
            perform(
                session,
                lambda: engine.add_bucket(
                    name=name,
                    category=category,
                    allocation_percentage=Decimal(str(weight)),
                ),
                f"Added {name}",
            )


def render_income_page(session: LedgerSession):
    """Record income, split across buckets."""
    engine = session.engine
    buckets = engine.list_buckets()

    st.title("💵 Add Income")
    if not buckets:
        st.info("Create a bucket first.")
        return

    col1, col2 = st.columns(2)
    with col1:
        amount = st.number_input("Amount ($) *", min_value=0.0, step=10.0, format="%.2f")
        source = st.text_input("Source", placeholder="e.g. Salary")
    with col2:
        when = st.date_input("Date", value=date.today())

    income = Decimal(str(amount))
    proposal = propose_allocations(income, buckets)

    st.markdown("### Split")
    allocations = {}
    for bucket in buckets:
        allocations[bucket.id] = Decimal(str(st.number_input(
            f"{bucket.name} ({bucket.allocation_percentage}%)",
            min_value=0.0,
            value=float(proposal[bucket.id]),
            step=1.0,
            format="%.2f",
            key=f"alloc-{bucket.id}-{amount}",
        )))

    remaining = income - sum(allocations.values(), Decimal("0"))
    st.metric("Unallocated", money(remaining))

    if st.button("✅ Record income", type="primary"):
        perform(
            session,
            lambda: engine.record_income(
                amount=income,
                source=source,
                date=when,
                allocations=allocations,
                correlation_id=create_correlation_id(),
            ),
            f"Recorded {money(income)} from {source or 'income'}",
        )


def render_expense_page(session: LedgerSession):
    """Record an expense, covering any shortfall from other buckets."""
    engine = session.engine
    buckets = engine.list_buckets()

    st.title("🧾 Add Expense")
    if not buckets:
        st.info("Create a bucket first.")
        return

    col1, col2 = st.columns(2)
    with col1:
        amount = st.number_input("Amount ($) *", min_value=0.0, step=1.0, format="%.2f")
        description = st.text_input("Description *", placeholder="e.g. Groceries")
    with col2:
        when = st.date_input("Date", value=date.today())
        bucket = st.selectbox(
            "Pay from",
            options=buckets,
            format_func=lambda b: f"{b.name} ({money(b.balance)})",
        )

    expense = Decimal(str(amount))
    shortfall = compute_shortfall(expense, bucket.balance)

    cover = {}
    if shortfall > 0:
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ {bucket.name} is short by {money(shortfall)}</h4>
            <p>Choose which buckets cover the difference.</p>
        </div>
        """, unsafe_allow_html=True)
        for other in buckets:
            if other.id == bucket.id:
                continue
            value = st.number_input(
                f"From {other.name} ({money(other.balance)})",
                min_value=0.0,
                step=1.0,
                format="%.2f",
                key=f"cover-{bucket.id}-{other.id}",
            )
            cover[other.id] = Decimal(str(value))
        covered = sum(cover.values(), Decimal("0"))
        st.metric("Still to cover", money(shortfall - covered))

    if st.button("✅ Record expense", type="primary"):
        perform(
            session,
            lambda: engine.record_expense(
                amount=expense,
                description=description,
                date=when,
                bucket_id=bucket.id,
                cover=cover or None,
                correlation_id=create_correlation_id(),
            ),
            f"Recorded {money(expense)} from {bucket.name}",
        )


def render_transfer_page(session: LedgerSession):
    """Move money between two buckets."""
    engine = session.engine
    buckets = engine.list_buckets()

    st.title("🔁 Transfer")
    if len(buckets) < 2:
        st.info("You need at least two buckets to transfer money.")
        return

    col1, col2 = st.columns(2)
    with col1:
        source = st.selectbox(
            "From", options=buckets,
            format_func=lambda b: f"{b.name} ({money(b.balance)})",
        )
        amount = st.number_input("Amount ($) *", min_value=0.0, step=1.0, format="%.2f")
    with col2:
        destination = st.selectbox(
            "To", options=buckets, index=1,
            format_func=lambda b: f"{b.name} ({money(b.balance)})",
        )
        when = st.date_input("Date", value=date.today())
    description = st.text_input("Note (optional)")

    if st.button("✅ Transfer", type="primary"):
        perform(
            session,
            lambda: engine.record_transfer(
                from_bucket_id=source.id,
                to_bucket_id=destination.id,
                amount=Decimal(str(amount)),
                date=when,
                description=description or None,
            ),
            f"Moved {money(Decimal(str(amount)))} to {destination.name}",
        )


def render_transactions_page(session: LedgerSession):
    """History, filterable by type and bucket, with delete."""
    engine = session.engine
    names = {b.id: b.name for b in engine.list_buckets()}

    st.title("📜 Transactions")

    col1, col2 = st.columns(2)
    with col1:
        type_filter = st.selectbox(
            "Filter by type",
            options=[None] + list(TransactionType),
            format_func=lambda x: "All types" if x is None else x.value.title(),
        )
    with col2:
        bucket_filter = st.selectbox(
            "Filter by bucket",
            options=[None] + list(names),
            format_func=lambda x: "All buckets" if x is None else names[x],
        )

    transactions = transactions_by_date(
        engine.list_transactions(transaction_type=type_filter, bucket_id=bucket_filter)
    )
    if not transactions:
        st.info("No transactions match.")
        return

    for transaction in transactions:
        col1, col2 = st.columns([5, 1])
        with col1:
            if transaction.type == TransactionType.TRANSFER.value:
                route = (
                    f"{names.get(transaction.from_bucket_id, 'Deleted bucket')} → "
                    f"{names.get(transaction.to_bucket_id, 'Deleted bucket')}"
                )
            elif transaction.type == TransactionType.EXPENSE.value:
                route = names.get(transaction.bucket_id, "Deleted bucket")
            else:
                route = ", ".join(names.get(b, "Deleted bucket") for b in transaction.allocations)
            st.markdown(
                f"{transaction.date.isoformat()} · **{transaction.description or transaction.type}** · "
                f"{money(transaction.amount)} · {route}"
            )
        with col2:
            if st.button("🗑️", key=f"del-{transaction.id}", help="Delete and reverse"):
                perform(
                    session,
                    lambda: engine.delete_transaction(transaction.id),
                    "Transaction reversed",
                ) and st.rerun()


def render_settings_page(session: LedgerSession):
    """Render the settings page."""
    engine = session.engine

    st.title("⚙️ Settings")

    st.markdown("### Monthly minimum need")
    st.markdown("Used to calculate your runway duration.")
    margin = st.number_input(
        "Amount ($)",
        min_value=0.0,
        value=float(engine.ledger.safety_margin),
        step=50.0,
        format="%.2f",
    )
    if st.button("💾 Save"):
        perform(
            session,
            lambda: engine.set_safety_margin(Decimal(str(margin))),
            "Saved",
        )

    st.markdown("---")
    st.markdown("### Backup")
    filename, contents = session.backup()
    st.download_button(
        "⬇️ Download backup",
        data=contents,
        file_name=filename,
        mime="application/json",
    )

    st.markdown("---")
    st.markdown("### Reset")
    st.markdown("Deletes all buckets, transactions and your profile.")
    confirm = st.checkbox("I understand this cannot be undone")
    if st.button("🧨 Reset everything", disabled=not confirm):
        try:
            run_async(session.reset())
        except StorageError as e:
            st.error(f"Could not save the reset: {e}")
        else:
            st.rerun()

    st.markdown("---")
    st.markdown("### Configuration")
    status = validate_all_settings()
    for name in ("storage", "ledger", "app"):
        if status.get(name, False):
            st.success(f"✅ {name.title()} settings loaded")
        else:
            st.error(f"❌ {name.title()} - {status.get(f'{name}_error', 'invalid')}")


if __name__ == "__main__":
    main()
