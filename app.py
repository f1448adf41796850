"""
app.py
Streamlit ISP back office (clients, payments, dashboard, reports, settings).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date

import streamlit as st

import auth
import clients
import config
import db
import payments
import preferences
import reports
import utils
from errors import AuthenticationError, NotFoundError, ValidationError
from models import CLIENT_STATUSES, EXTEND_MONTHS, PAYMENT_METHODS, PLAN_DETAILS, get_plan

st.set_page_config(page_title="IncConnect ISP Back Office", layout="wide")

logger = logging.getLogger(__name__)

DARK_CSS = """
<style>
.stApp { background-color: #0a0b14; color: #f3f4f6; }
section[data-testid="stSidebar"] { background-color: #0f1018; }
div[data-testid="stMetric"] { background-color: #0f1018; border: 1px solid #1f2937; border-radius: 8px; padding: 8px; }
</style>
"""


def init_once():
    config.configure_logging()
    db.init_db()
    auth.ensure_default_admin()


def require_login():
    if "user" not in st.session_state:
        st.session_state.user = None


def logout():
    st.session_state.user = None
    flash("Logged out.")


def flash(message: str, icon: str = "✅"):
    # Toasts queued here survive the st.rerun() that usually follows a mutation
    st.session_state.setdefault("flashes", []).append((message, icon))


def show_flashes():
    for message, icon in st.session_state.pop("flashes", []):
        st.toast(message, icon=icon)


def fail(message: str, exc: Exception | None = None):
    if exc is not None:
        logger.exception(message)
    st.toast(message, icon="⚠️")
    st.error(message)


def apply_theme():
    if preferences.get_system_settings()["dark_mode"]:
        st.markdown(DARK_CSS, unsafe_allow_html=True)


def pager(state_key: str, total_pages: int, compact: bool = False):
    """Previous / page numbers / Next buttons writing the page into session state."""
    if total_pages <= 1:
        return
    current = st.session_state.get(state_key, 1)
    numbers = utils.page_window(current, total_pages) if compact else list(range(1, total_pages + 1))

    cols = st.columns(len(numbers) + 2)
    if cols[0].button("‹ Prev", key=f"{state_key}_prev", disabled=current <= 1):
        st.session_state[state_key] = current - 1
        st.rerun()
    for col, n in zip(cols[1:-1], numbers):
        if col.button(str(n), key=f"{state_key}_{n}", type="primary" if n == current else "secondary"):
            st.session_state[state_key] = n
            st.rerun()
    if cols[-1].button("Next ›", key=f"{state_key}_next", disabled=current >= total_pages):
        st.session_state[state_key] = current + 1
        st.rerun()


def login_screen():
    st.title("🔐 IncConnect Back Office")
    st.caption("Enter your credentials to access your account")

    col1, col2 = st.columns([1, 1])
    with col1:
        with st.form("login"):
            email = st.text_input("Email", value=config.ADMIN_EMAIL)
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login", type="primary")
        if submitted:
            try:
                st.session_state.user = auth.login(email, password)
                st.session_state.page = "Dashboard"
                st.rerun()
            except AuthenticationError as e:
                st.error(str(e))

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            f"- email: **{config.ADMIN_EMAIL}**\n"
            "- password: set by ISP_ADMIN_PASSWORD (default **admin123**)\n\n"
            "You will be forced to change it on first login."
        )


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        if new1 != new2:
            st.error("Passwords do not match.")
            return
        try:
            auth.change_password(st.session_state.user["id"], new1)
        except AuthenticationError as e:
            st.error(str(e))
            return
        flash("Password updated. You can continue.")
        st.rerun()


# ---------- Dashboard ----------

def dashboard_page():
    st.header("📊 Dashboard")

    try:
        stats = reports.dashboard_stats()
        all_payments = payments.fetch_payments()
    except sqlite3.Error as e:
        fail("Failed to load dashboard data.", e)
        return

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total clients", stats["total_clients"])
    c2.metric("Active (connected)", stats["active_clients"])
    c3.metric("Total payments", utils.format_currency(stats["total_payments"]))
    c4.metric("Payments recorded", stats["payment_count"])

    st.divider()

    st.subheader("Recent payments")
    page_items, page, total_pages = utils.paginate(
        all_payments, st.session_state.get("dashboard_page", 1), config.DASHBOARD_PAYMENTS_PER_PAGE
    )
    st.session_state.dashboard_page = page
    if page_items:
        df = payments.payments_to_frame(page_items)
        df["Amount"] = df["Amount"].map(utils.format_currency)
        st.dataframe(df[["Client Name", "Amount", "Date", "Status"]], use_container_width=True, hide_index=True)
        pager("dashboard_page", total_pages, compact=True)
    else:
        st.caption("No recent payments")

    if preferences.get_system_settings()["payment_reminders"]:
        st.divider()
        st.subheader(f"Due in the next {config.REMINDER_DAYS} days")
        upcoming = reports.due_soon(db.get_documents("clients"))
        if upcoming:
            st.dataframe(clients.clients_to_frame(upcoming), use_container_width=True, hide_index=True)
        else:
            st.caption("No clients due soon.")


# ---------- Clients ----------

def client_form(existing=None):
    editing = existing is not None
    values = existing or clients.new_client_defaults()
    st.subheader(f"✏️ Edit Client: {clients.full_name(existing)}" if editing else "➕ Add Client")

    plan_keys = list(PLAN_DETAILS)
    with st.form("client_edit" if editing else "client_add"):
        col1, col2, col3 = st.columns(3)
        with col1:
            first_name = st.text_input("First name", value=values.get("first_name") or "")
            last_name = st.text_input("Last name", value=values.get("last_name") or "")
            email = st.text_input("Email", value=values.get("email") or "")
        with col2:
            phone = st.text_input("Phone", value=values.get("phone") or "", max_chars=11, placeholder="09XXXXXXXXX")
            address = st.text_input("Address", value=values.get("address") or "")
            plan = st.selectbox(
                "Plan",
                options=plan_keys,
                index=plan_keys.index(values["plan"]) if values.get("plan") in plan_keys else 0,
                format_func=lambda k: PLAN_DETAILS[k].label,
            )
        with col3:
            plan_start_date = st.date_input(
                "Plan start date", value=utils.coerce_date(values.get("plan_start_date")) or date.today()
            )
            due_date = st.date_input("Due date", value=utils.coerce_date(values.get("due_date")) or date.today())
            connection = st.selectbox(
                "Connection",
                options=["connected", "disconnected"],
                index=0 if values.get("is_connected") else 1,
            )
            status = st.selectbox(
                "Payment status",
                options=list(CLIENT_STATUSES),
                index=list(CLIENT_STATUSES).index(values.get("status")) if values.get("status") in CLIENT_STATUSES else 0,
                format_func=str.capitalize,
            )
        submitted = st.form_submit_button("Update Client" if editing else "Add Client", type="primary")

    if not submitted:
        return

    data = {
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "phone": phone,
        "address": address,
        "plan": plan,
        "is_connected": connection == "connected",
        "status": status,
        "plan_start_date": plan_start_date.isoformat(),
        "due_date": due_date.isoformat(),
    }
    name = f"{first_name.strip()} {last_name.strip()}"
    try:
        if editing:
            clients.update_client(existing["id"], data)
            flash(f"{name}'s information has been updated.")
            st.session_state.edit_client_id = None
        else:
            clients.create_client(data)
            flash(f"{name} has been added successfully.")
    except ValidationError as e:
        for message in e.errors:
            st.error(message)
        return
    except (NotFoundError, sqlite3.Error) as e:
        fail(f"Failed to {'update' if editing else 'add'} client. Please try again.", e)
        return
    st.rerun()


def payment_form(client: dict):
    plan = get_plan(client.get("plan"))
    st.subheader(f"💳 Record Payment for {clients.full_name(client)}")
    st.caption(f"Plan: {plan.name} - {clients.plan_display(client.get('plan'))} | Due: {utils.format_date(client.get('due_date'))}")

    extend = st.selectbox(
        "Extend due date by",
        options=list(EXTEND_MONTHS),
        format_func=lambda m: f"{m} Month" + ("s" if m > 1 else ""),
        key=f"extend_{client['id']}",
    )
    preview = payments.compute_new_due_date(client.get("due_date"), extend)
    st.caption(f"New due date: {utils.format_date(preview)}")

    with st.form(f"payment_{client['id']}"):
        c1, c2 = st.columns(2)
        with c1:
            amount = st.number_input("Amount", min_value=1.0, value=payments.default_amount(client), step=50.0)
        with c2:
            method = st.selectbox(
                "Payment method",
                options=["cash", "gcash", "bank_transfer", "other"],
                format_func=payments.method_label,
            )
        notes = st.text_input("Notes")
        submitted = st.form_submit_button("Record Payment", type="primary")

    if not submitted:
        return
    try:
        payments.record_payment(client, amount, method, notes, extend)
    except ValidationError as e:
        for message in e.errors:
            st.error(message)
        return
    except (NotFoundError, sqlite3.Error) as e:
        fail("Failed to record payment. Please try again.", e)
        return
    flash(f"Payment of {utils.format_currency(amount)} for {clients.full_name(client)} has been recorded.")
    st.session_state.pay_client_id = None
    st.rerun()


def _client_picker(client_list: list[dict], key: str) -> dict | None:
    options = {"(none)": None}
    options.update({f"{clients.full_name(c)} ({c.get('phone') or 'no phone'})": c for c in client_list})
    label = st.selectbox("Select client", list(options), key=key)
    return options[label]


def clients_page():
    st.header("👥 Clients")

    sort_by = st.session_state.get("client_sort", "due_date")
    try:
        active, archived = clients.fetch_clients(sort_by=sort_by)
    except (NotFoundError, sqlite3.Error) as e:
        fail("Failed to load clients. Please try again.", e)
        return

    stats = clients.client_stats(active)
    c1, c2, c3 = st.columns(3)
    c1.metric("Total clients", stats["total"])
    c2.metric("Connected", stats["connected"])
    c3.metric("Overdue", stats["overdue"])

    tab_active, tab_archived = st.tabs(["Active Clients", "Archived Clients"])

    with tab_active:
        chosen = st.radio(
            "Sort by",
            options=list(clients.SORT_OPTIONS),
            index=list(clients.SORT_OPTIONS).index(sort_by),
            format_func=clients.SORT_OPTIONS.get,
            horizontal=True,
        )
        if chosen != sort_by:
            st.session_state.client_sort = chosen
            st.rerun()

        if active:
            page_items, page, total_pages = utils.paginate(
                active, st.session_state.get("clients_page", 1), config.CLIENTS_PER_PAGE
            )
            st.session_state.clients_page = page
            st.dataframe(clients.clients_to_frame(page_items), use_container_width=True, hide_index=True)
            pager("clients_page", total_pages)
        else:
            st.caption("No active clients yet. Add one below.")

        st.divider()

        selected = _client_picker(active, key="active_pick")
        if selected:
            a1, a2, a3 = st.columns(3)
            with a1:
                if st.button("Edit"):
                    st.session_state.edit_client_id = selected["id"]
                    st.session_state.pay_client_id = None
                    st.rerun()
            with a2:
                if st.button("Record payment"):
                    st.session_state.pay_client_id = selected["id"]
                    st.session_state.edit_client_id = None
                    st.rerun()
            with a3:
                confirm = st.checkbox("Confirm archive", value=False, key="archive_confirm")
                if st.button("Archive", disabled=not confirm):
                    try:
                        clients.archive_client(selected["id"])
                    except (NotFoundError, sqlite3.Error) as e:
                        fail("Failed to archive client. Please try again.", e)
                    else:
                        flash(f"{clients.full_name(selected)} has been moved to the archive.")
                        st.rerun()

        st.divider()

        by_id = {c["id"]: c for c in active}
        if st.session_state.get("pay_client_id") in by_id:
            payment_form(by_id[st.session_state.pay_client_id])
            if st.button("Cancel payment"):
                st.session_state.pay_client_id = None
                st.rerun()
        elif st.session_state.get("edit_client_id") in by_id:
            client_form(existing=by_id[st.session_state.edit_client_id])
            if st.button("Cancel edit"):
                st.session_state.edit_client_id = None
                st.rerun()
        else:
            client_form(existing=None)

    with tab_archived:
        if not archived:
            st.caption("No archived clients.")
        else:
            st.dataframe(clients.clients_to_frame(archived), use_container_width=True, hide_index=True)
            restore = _client_picker(archived, key="archived_pick")
            if restore and st.button("Restore"):
                try:
                    clients.restore_client(restore["id"])
                except (NotFoundError, sqlite3.Error) as e:
                    fail("Failed to restore client. Please try again.", e)
                else:
                    flash(f"{clients.full_name(restore)} has been restored from the archive.")
                    st.rerun()


# ---------- Payments ----------

def payments_page():
    st.header("💳 Payments")

    try:
        all_payments = payments.fetch_payments()
    except sqlite3.Error as e:
        fail("Failed to load payments. Please try again.", e)
        return

    if not all_payments:
        st.caption("No payments recorded yet.")
        return

    page_items, page, total_pages = utils.paginate(
        all_payments, st.session_state.get("payments_page", 1), config.PAYMENTS_PER_PAGE
    )
    st.session_state.payments_page = page

    st.dataframe(payments.payment_table_rows(page_items), use_container_width=True, hide_index=True)
    pager("payments_page", total_pages)


def payment_history_page():
    st.header("🧾 Payment History")

    try:
        all_payments = payments.fetch_payments()
    except sqlite3.Error as e:
        fail("Failed to fetch payment history", e)
        return

    f1, f2, f3 = st.columns([2, 1, 1])
    with f1:
        search = st.text_input("Search payments...")
    with f2:
        status = st.selectbox("Status", ["all", "completed", "pending", "failed"], format_func=str.capitalize)
    with f3:
        method = st.selectbox(
            "Method", ["all", *PAYMENT_METHODS], format_func=lambda m: "All Methods" if m == "all" else payments.method_label(m)
        )

    filtered = payments.filter_payments(all_payments, search=search, status=status, method=method)
    filters = (search, status, method)
    if st.session_state.get("history_filters") != filters:
        st.session_state.history_filters = filters
        st.session_state.history_page = 1

    summary = payments.payment_summary(filtered)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total amount", utils.format_currency(summary["total_amount"]))
    c2.metric("Payments", summary["count"])
    c3.metric("Completed", summary["completed"])
    c4.metric("Pending", summary["pending"])

    if st.download_button(
        "Export CSV",
        data=payments.payments_to_csv_bytes(filtered),
        file_name=f"payment-history-{utils.today_iso()}.csv",
        mime="text/csv",
    ):
        st.toast("Payment history exported successfully")

    if not filtered:
        st.caption(
            "No payments found matching your filters."
            if search or status != "all" or method != "all"
            else "No payment records found."
        )
        return

    page_items, page, total_pages = utils.paginate(
        filtered, st.session_state.get("history_page", 1), config.PAYMENTS_PER_PAGE
    )
    st.session_state.history_page = page
    df = payments.payments_to_frame(page_items)
    df["Amount"] = df["Amount"].map(utils.format_currency)
    st.dataframe(df, use_container_width=True, hide_index=True)
    start = (page - 1) * config.PAYMENTS_PER_PAGE
    st.caption(f"Showing {start + 1} to {start + len(page_items)} of {len(filtered)} payments")
    pager("history_page", total_pages)


# ---------- Reports ----------

def reports_page():
    st.header("📈 Reports")

    try:
        stats = reports.dashboard_stats()
        all_payments = payments.fetch_payments()
        all_clients = db.get_documents("clients")
    except sqlite3.Error as e:
        fail("Failed to load reports data", e)
        return

    time_range = st.selectbox(
        "Time range",
        options=list(reports.TIME_RANGES),
        format_func=lambda k: f"Last {reports.TIME_RANGES[k]} Months",
    )
    revenue = reports.revenue_by_month(all_payments, months=reports.TIME_RANGES[time_range])

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total revenue", utils.format_currency(stats["total_payments"]))
    c2.metric("Total clients", stats["total_clients"])
    c3.metric("Active clients", stats["active_clients"])
    c4.metric("Revenue in range", utils.format_currency(revenue["revenue"].sum()))

    st.subheader("Revenue trend")
    st.altair_chart(reports.revenue_chart(revenue), use_container_width=True)

    left, right = st.columns(2)
    with left:
        st.subheader("Client status")
        status_df = reports.client_status_distribution(all_clients)
        if status_df.empty:
            st.caption("No clients yet.")
        else:
            st.altair_chart(reports.status_chart(status_df), use_container_width=True)
    with right:
        st.subheader("Plan distribution")
        plan_df = reports.plan_distribution(all_clients)
        if plan_df.empty:
            st.caption("No clients yet.")
        else:
            st.altair_chart(reports.plan_chart(plan_df), use_container_width=True)

    st.divider()

    e1, e2 = st.columns(2)
    with e1:
        st.download_button(
            "Export revenue report",
            data=reports.revenue_report_csv_bytes(revenue),
            file_name=f"revenue-report-{utils.today_iso()}.csv",
            mime="text/csv",
        )
    with e2:
        st.download_button(
            "Export clients",
            data=clients.clients_to_csv_bytes(all_clients),
            file_name=f"clients-{utils.today_iso()}.csv",
            mime="text/csv",
        )


# ---------- Settings ----------

def settings_page():
    st.header("⚙️ Settings")

    user = st.session_state.user
    tab_account, tab_company, tab_system = st.tabs(["Account", "Company", "System"])

    with tab_account:
        profile = db.get_user_profile(user["id"])
        with st.form("account"):
            display_name = st.text_input("Display name", value=user.get("display_name") or "")
            st.text_input("Email", value=user["email"], disabled=True)
            p1, p2 = st.columns(2)
            with p1:
                first_name = st.text_input("First name", value=profile.get("first_name") or "")
                phone = st.text_input("Phone", value=profile.get("phone") or "")
            with p2:
                last_name = st.text_input("Last name", value=profile.get("last_name") or "")
                position = st.text_input("Position", value=profile.get("position") or "")
            current = st.text_input("Current password", type="password")
            new1 = st.text_input("New password", type="password")
            new2 = st.text_input("Confirm new password", type="password")
            saved = st.form_submit_button("Save account", type="primary")
        if saved:
            try:
                auth.update_account(user["id"], display_name, current, new1, new2)
                db.update_user_profile(
                    user["id"],
                    {"first_name": first_name.strip(), "last_name": last_name.strip(),
                     "phone": phone.strip(), "position": position.strip(), "email": user["email"]},
                )
            except AuthenticationError as e:
                st.error(str(e))
            except sqlite3.Error as e:
                fail("Failed to update account.", e)
            else:
                st.session_state.user = {**user, "display_name": display_name.strip()}
                flash("Your account information has been updated successfully.")
                st.rerun()

    with tab_company:
        company = preferences.get_company_info()
        with st.form("company"):
            info = {
                "company_name": st.text_input("Company name", value=company["company_name"]),
                "address": st.text_input("Address", value=company["address"]),
                "phone": st.text_input("Phone", value=company["phone"]),
                "email": st.text_input("Email", value=company["email"]),
                "website": st.text_input("Website", value=company["website"]),
            }
            if st.form_submit_button("Save company", type="primary"):
                preferences.save_company_info(info)
                flash("Company information has been updated successfully.")
                st.rerun()

    with tab_system:
        current_settings = preferences.get_system_settings()
        with st.form("system"):
            updated = {
                "auto_disconnect": st.toggle(
                    "Auto-disconnect overdue clients", value=current_settings["auto_disconnect"]
                ),
                "payment_reminders": st.toggle(
                    "Payment reminders on dashboard", value=current_settings["payment_reminders"]
                ),
                "dark_mode": st.toggle("Dark mode", value=current_settings["dark_mode"]),
                "data_backup": st.toggle("Offer database backup download", value=current_settings["data_backup"]),
            }
            if st.form_submit_button("Save settings", type="primary"):
                preferences.save_system_settings(updated)
                flash("System settings have been updated successfully.")
                st.rerun()

        if current_settings["data_backup"]:
            st.download_button(
                "Download database backup",
                data=db.backup_bytes(),
                file_name=f"isp-backup-{utils.today_iso()}.db",
                mime="application/octet-stream",
            )

        st.divider()

        st.subheader("Sample data")
        st.caption("Insert 3 sample clients + a few payments for testing (adds new rows each run).")
        if st.button("Insert sample data"):
            utils.insert_sample_data()
            flash("Sample data inserted.")
            st.rerun()


def main_app():
    user = st.session_state.user
    st.sidebar.title("📡 IncConnect")
    st.sidebar.caption(f"Logged in as: {user.get('display_name') or user['email']}")

    pages = ["Dashboard", "Clients", "Payments", "Payment History", "Reports", "Settings"]
    if st.session_state.get("page") not in pages:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Clients":
        clients_page()
    elif st.session_state.page == "Payments":
        payments_page()
    elif st.session_state.page == "Payment History":
        payment_history_page()
    elif st.session_state.page == "Reports":
        reports_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()
    show_flashes()
    apply_theme()

    if not st.session_state.user:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
