import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging
from datetime import date, datetime

import pandas as pd
import streamlit as st

from finflow.aggregation import (
    DANGER,
    WARNING,
    average_transaction,
    budget_status,
    category_breakdown,
    compute_stats,
    daily_breakdown,
    daily_spending,
    distinct_categories,
    filter_transactions,
    income_sources,
    monthly_series,
    payment_method_counts,
    recent_transactions,
    savings_rate,
    savings_rate_series,
    summary_stats,
)
from finflow.charts import (
    category_doughnut,
    daily_spending_bars,
    daily_trend_lines,
    income_expense_bars,
    income_sources_bars,
    payment_methods_doughnut,
    savings_rate_line,
    template_for,
)
from finflow.config import configure_logging, load_settings
from finflow.domain import EXPENSE, INCOME
from finflow.events import EventBus, register_default_handlers
from finflow.formatting import format_currency, format_signed, period_label
from finflow.functional import find_by_id
from finflow.importer import (
    ImportFormatError,
    UnsupportedFileError,
    export_filename,
    export_json,
    import_json,
    import_rows,
    read_table,
    template_bytes,
)
from finflow.store import FileBlobStore, LedgerStore

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("finflow.app")

st.set_page_config(page_title="Finance Flow", layout="wide")

EXPENSE_CATEGORIES = [
    "Food & Dining", "Shopping", "Transportation", "Bills & Utilities", "Entertainment",
    "Healthcare", "Education", "Travel", "Rent", "Other Expense",
]
INCOME_CATEGORIES = ["Salary", "Freelance", "Business", "Investments", "Gifts", "Other Income"]
PAYMENT_METHODS = ["Cash", "Credit Card", "Debit Card", "Bank Transfer", "Digital Wallet"]
PERIOD_OPTIONS = [7, 30, 90, 365, "all"]
DASHBOARD_CATEGORIES = 8


def _push_toast(result: dict) -> None:
    st.session_state.toasts.append(result)


if "toasts" not in st.session_state:
    st.session_state.toasts = []

if "bus" not in st.session_state:
    st.session_state.bus = register_default_handlers(EventBus(), _push_toast)

if "store" not in st.session_state:
    st.session_state.store = LedgerStore(FileBlobStore(settings.data_dir), st.session_state.bus)

if "period" not in st.session_state:
    st.session_state.period = settings.default_period

store: LedgerStore = st.session_state.store

if "theme" not in st.session_state:
    st.session_state.theme = store.get_setting("theme", settings.theme)

template = template_for(st.session_state.theme)


def show_toasts():
    while st.session_state.toasts:
        result = st.session_state.toasts.pop(0)
        if "alert" in result:
            st.toast(f"⚠️ {result['alert']}")
        elif result.get("level") == "error":
            st.toast(f"❌ {result['toast']}")
        else:
            st.toast(result["toast"])


show_toasts()

st.sidebar.markdown("## 💸 Finance Flow")
theme_dark = st.sidebar.toggle("Dark charts", value=st.session_state.theme == "dark")
new_theme = "dark" if theme_dark else "light"
if new_theme != st.session_state.theme:
    st.session_state.theme = new_theme
    store.set_setting("theme", new_theme)
    st.rerun()

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "➕ Add Transaction", "🧾 Transactions", "💰 Budgets", "📊 Analytics", "📥 Import", "⚙️ Settings"]
)

# every view reads a fresh snapshot; nothing is cached between reruns
transactions = store.list_transactions()
budgets = store.list_budgets()


def render_budget_rows(statuses, with_delete=False):
    for s in statuses:
        cols = st.columns([4, 1]) if with_delete else [st.container()]
        with cols[0]:
            icon = "🔴" if s.status == DANGER else "🟡" if s.status == WARNING else "🟢"
            st.write(f"{icon} **{s.budget.category}**: {format_currency(s.spent)} spent of {format_currency(s.budget.amount)}")
            st.progress(s.display_percentage / 100)
            st.caption(f"{s.percentage:.0f}% used · {format_currency(s.remaining)} remaining")
        if with_delete:
            with cols[1]:
                if st.button("Delete", key=f"del_budget_{s.budget.id}"):
                    store.delete_budget(s.budget.id)
                    st.rerun()


if menu == "🏠 Dashboard":
    st.title("🏠 Dashboard")
    stats = compute_stats(transactions, "month")
    totals = compute_stats(transactions, "all")
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Total Balance", format_currency(totals.balance))
    with k2:
        st.metric("Income (this month)", format_currency(stats.income))
    with k3:
        st.metric("Expenses (this month)", format_currency(stats.expenses))
    with k4:
        st.metric("Balance (this month)", format_currency(stats.balance))

    q1, q2, q3, q4 = st.columns(4)
    q1.metric("Total Transactions", totals.count)
    q2.metric("This Month", stats.count)
    q3.metric("Avg Transaction", format_currency(average_transaction(stats)))
    q4.metric("Savings Rate", f"{savings_rate(stats.income, stats.expenses):.1f}%")

    col_left, col_right = st.columns(2)
    with col_left:
        breakdown = category_breakdown(transactions, "month", EXPENSE, limit=DASHBOARD_CATEGORIES)
        if breakdown:
            st.plotly_chart(category_doughnut(breakdown, template=template), use_container_width=True)
        else:
            st.info("No expenses this month")
    with col_right:
        series = monthly_series(transactions, settings.months_back)
        st.plotly_chart(income_expense_bars(series, template=template), use_container_width=True)

    st.subheader("Recent Transactions")
    recent = recent_transactions(transactions, 5)
    if recent:
        st.table(pd.DataFrame([
            {
                "Date": t.date.isoformat(),
                "Category": t.category,
                "Description": t.description,
                "Amount": format_signed(t.amount, t.type),
            }
            for t in recent
        ]))
    else:
        st.info("No transactions yet. Add one to get started.")

    if budgets:
        st.subheader("Budget Status")
        render_budget_rows(budget_status(budgets, transactions))

elif menu == "➕ Add Transaction":
    st.title("➕ Add Transaction")
    tx_type = st.radio("Type", [EXPENSE, INCOME], horizontal=True, format_func=str.title)
    with st.form("transaction_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            tx_date = st.date_input("Date", value=date.today())
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        with col2:
            category = st.selectbox("Category", EXPENSE_CATEGORIES if tx_type == EXPENSE else INCOME_CATEGORIES)
            payment = st.selectbox("Payment Method", PAYMENT_METHODS)
        description = st.text_input("Description (optional)")
        notes = st.text_area("Notes (optional)")
        submitted = st.form_submit_button("Add Transaction")

    if submitted:
        result = store.add_transaction({
            "type": tx_type,
            "date": tx_date,
            "amount": amount,
            "category": category,
            "payment_method": payment,
            "description": description,
            "notes": notes,
        })
        if result.is_right():
            st.rerun()
        else:
            st.error(result.get_error()["message"])

elif menu == "🧾 Transactions":
    st.title("🧾 All Transactions")
    col1, col2, col3 = st.columns(3)
    with col1:
        filter_type = st.selectbox("Type", ["all", INCOME, EXPENSE], format_func=str.title)
    with col2:
        filter_category = st.selectbox("Category", ["all"] + distinct_categories(transactions),
                                       format_func=lambda c: "All" if c == "all" else c)
    with col3:
        filter_period = st.selectbox("Period", ["all", 7, 30, 90, 365], format_func=period_label)

    filtered = filter_transactions(transactions, filter_type, filter_category, filter_period)
    if not filtered:
        st.info("No Transactions Found. Try adjusting your filters.")
    else:
        for t in filtered:
            c1, c2, c3 = st.columns([5, 2, 1])
            with c1:
                details = " • ".join(p for p in (t.date.strftime("%m/%d/%Y"), t.description, t.payment_method) if p)
                st.write(f"**{t.category}**")
                st.caption(details)
            with c2:
                st.write(format_signed(t.amount, t.type))
            with c3:
                if st.button("×", key=f"del_tx_{t.id}"):
                    st.session_state.pending_delete = t.id

        pending = st.session_state.get("pending_delete")
        if pending is not None:
            target = find_by_id(transactions, pending)
            if target.is_some():
                t = target.get_or_else(None)
                st.warning(f"Delete {t.category} {format_signed(t.amount, t.type)} on {t.date.isoformat()}?")
                yes, no = st.columns(2)
                if yes.button("Delete", key="confirm_delete"):
                    store.delete_transaction(pending)
                    st.session_state.pending_delete = None
                    st.rerun()
                if no.button("Cancel", key="cancel_delete"):
                    st.session_state.pending_delete = None
                    st.rerun()
            else:
                st.session_state.pending_delete = None

        csv = pd.DataFrame([t.to_dict() for t in filtered]).to_csv(index=False)
        st.download_button("⬇️ Download Filtered Data", csv, file_name="transactions_filtered.csv", mime="text/csv")

elif menu == "💰 Budgets":
    st.title("💰 Budgets")
    with st.expander("➕ Add Budget"):
        with st.form("budget_form", clear_on_submit=True):
            b_category = st.selectbox("Category", EXPENSE_CATEGORIES)
            b_amount = st.number_input("Monthly limit", min_value=0.0, step=10.0, format="%.2f")
            if st.form_submit_button("Create Budget"):
                result = store.add_budget({"category": b_category, "amount": b_amount})
                if result.is_right():
                    st.rerun()
                else:
                    st.error(result.get_error()["message"])

    if budgets:
        render_budget_rows(budget_status(budgets, transactions), with_delete=True)
    else:
        st.info("No Budgets Set. Create your first budget to start tracking.")

elif menu == "📊 Analytics":
    st.title("📊 Analytics")
    period = st.radio(
        "Period",
        PERIOD_OPTIONS,
        index=PERIOD_OPTIONS.index(st.session_state.period) if st.session_state.period in PERIOD_OPTIONS else 1,
        horizontal=True,
        format_func=period_label,
    )
    st.session_state.period = period

    if not transactions:
        st.info("No Data Yet. Add transactions to see analytics.")
    else:
        row1 = st.columns(2)
        with row1[0]:
            st.plotly_chart(daily_trend_lines(daily_breakdown(transactions, period), template=template),
                            use_container_width=True)
        with row1[1]:
            st.plotly_chart(category_doughnut(category_breakdown(transactions, period, EXPENSE),
                                              title="Category Breakdown", template=template),
                            use_container_width=True)
        row2 = st.columns(2)
        with row2[0]:
            st.plotly_chart(daily_spending_bars(daily_spending(transactions, period), template=template),
                            use_container_width=True)
        with row2[1]:
            st.plotly_chart(payment_methods_doughnut(payment_method_counts(transactions, period), template=template),
                            use_container_width=True)
        row3 = st.columns(2)
        with row3[0]:
            st.plotly_chart(income_sources_bars(income_sources(transactions, period), template=template),
                            use_container_width=True)
        with row3[1]:
            st.plotly_chart(savings_rate_line(savings_rate_series(transactions, settings.months_back), template=template),
                            use_container_width=True)

        summary = summary_stats(transactions, period)
        st.subheader(f"Summary Statistics ({period_label(period)})")
        rows = [
            ("Total Income", format_currency(summary.stats.income)),
            ("Total Expenses", format_currency(summary.stats.expenses)),
            ("Net Balance", format_currency(summary.stats.balance)),
            ("Total Transactions", str(summary.stats.count)),
            ("Average Transaction", format_currency(summary.average_transaction)),
            ("Highest Expense", format_currency(summary.highest_expense)),
        ]
        if summary.top_category:
            rows.append(("Top Category", summary.top_category))
        st.table(pd.DataFrame(rows, columns=["Metric", "Value"]))

elif menu == "📥 Import":
    st.title("📥 Import Transactions")
    st.download_button(
        "⬇ Download Template",
        template_bytes("xlsx"),
        file_name="finance-tracker-template.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    uploaded = st.file_uploader("Upload a spreadsheet", type=["xlsx", "xls", "csv"])
    if uploaded is not None:
        try:
            rows = read_table(uploaded.name, uploaded.getvalue())
        except (ImportFormatError, UnsupportedFileError) as e:
            logger.error("Error processing file: %s", e)
            st.error("Error processing file. Please check the format.")
            rows = []

        if rows:
            st.caption(f"{uploaded.name} · {uploaded.size / 1024:.2f} KB · {len(rows)} rows")
            st.subheader("Preview (first 10 rows)")
            st.dataframe(pd.DataFrame(rows[:10]), use_container_width=True)
            col_ok, col_cancel = st.columns(2)
            if col_ok.button("Import Transactions"):
                import_rows(store, rows)
                st.rerun()
            if col_cancel.button("Cancel"):
                st.rerun()
        else:
            st.info("No rows found in file")

elif menu == "⚙️ Settings":
    st.title("⚙️ Settings")
    k1, k2, k3 = st.columns(3)
    k1.metric("Total Transactions", len(transactions))
    k2.metric("Active Budgets", len(budgets))
    k3.metric("Data Size", f"{store.data_size() / 1024:.2f} KB")

    st.subheader("Export / Import")
    st.download_button(
        "⬇ Export Data",
        export_json(store, datetime.now()),
        file_name=export_filename(),
        mime="application/json",
    )
    backup = st.file_uploader("Import JSON backup", type=["json"], key="json_import")
    if backup is not None and st.button("Replace data with backup"):
        try:
            import_json(store, backup.getvalue().decode("utf-8"))
            st.rerun()
        except (ImportFormatError, UnicodeDecodeError) as e:
            logger.error("JSON import failed: %s", e)
            st.error("Error importing data. Please check the file format.")

    st.subheader("Danger Zone")
    confirm = st.checkbox("I understand this deletes ALL data and cannot be undone")
    if st.button("Clear All Data", disabled=not confirm):
        store.clear()
        st.session_state.theme = settings.theme
        st.session_state.toasts.append({"toast": "All data cleared"})
        st.rerun()
