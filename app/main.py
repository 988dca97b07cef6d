"""
Streamlit Frontend for Chit Fund Ledger

The screens a household uses to keep track of its chit funds:
1. Fund list with add / edit / delete
2. Fund detail: summary cards, financial overview, auction history
3. Record / edit / delete auctions

DESIGN PRINCIPLES:
1. Every figure on screen comes from chitfund.ledger
2. Warnings are shown but never block a save
3. Rejections explain exactly what to fix
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import streamlit as st

from chitfund.audit import create_correlation_id
from chitfund.config import get_settings
from chitfund.ledger import available_months
from chitfund.models.fund import AdmissionStatus, AuctionRecord, ChitFund, FundStatus
from chitfund.orchestrator import ChitFundService, create_app_components


# Page configuration
st.set_page_config(
    page_title="Chit Fund Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


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


def money(amount: Decimal) -> str:
    return f"{get_settings().ledger.currency_symbol}{amount:,.2f}"


def flash(level: str, message: str):
    """Queue a message to show after the next st.rerun()."""
    st.session_state.flash = (level, message)


def show_flash():
    if st.session_state.get("flash"):
        level, message = st.session_state.flash
        getattr(st, level)(message)
        st.session_state.flash = None


def main():
    """Main application entry point."""
    service, _ = get_components()

    if "flash" not in st.session_state:
        st.session_state.flash = None

    st.sidebar.title("💰 Chit Fund Ledger")
    st.sidebar.markdown("---")

    funds = run_async(service.list_funds())
    options = [None] + [f.id for f in funds]
    names = {f.id: f.name for f in funds}

    selected = st.sidebar.radio(
        "Chit funds:",
        options,
        format_func=lambda fid: "📋 All funds" if fid is None else f"🪙 {names[fid]}",
        index=0,
    )

    show_flash()

    if selected is None:
        render_fund_list(service, funds)
    else:
        render_fund_detail(service, selected)


# =============================================================================
# FUNDS
# =============================================================================

def render_fund_form(service: ChitFundService, fund: Optional[ChitFund] = None):
    """Add-fund form, or the edit form when `fund` is given."""
    editing = fund is not None
    key = f"edit_fund_{fund.id}" if editing else "add_fund"

    with st.form(key):
        name = st.text_input("Chit Fund Name *", value=fund.name if editing else "")
        col1, col2 = st.columns(2)
        with col1:
            total_amount = st.number_input(
                "Total Amount *", min_value=0.0, step=1000.0,
                value=float(fund.total_amount) if editing else 0.0,
            )
            duration = st.number_input(
                "Duration (Months) *", min_value=1, step=1,
                value=fund.duration_months if editing else 20,
                help="Fixed once the first auction is recorded.",
            )
            start_date = st.date_input(
                "Start Date *", value=fund.start_date if editing else date.today()
            )
        with col2:
            installment = st.number_input(
                "Monthly Installment *", min_value=0.0, step=100.0,
                value=float(fund.monthly_installment) if editing else 0.0,
            )
            commission_pct = st.number_input(
                "Foreman Commission (%)", min_value=0.0, max_value=100.0, step=0.5,
                value=float(fund.foreman_commission_rate * 100) if editing else 5.0,
            )
            statuses = list(FundStatus)
            status = st.selectbox(
                "Status",
                options=statuses,
                index=statuses.index(fund.status) if editing else 0,
                format_func=lambda s: s.value.title(),
            )

        if not st.form_submit_button("Save Chit Fund", type="primary"):
            return

        values = {
            "name": name,
            "total_amount": Decimal(str(total_amount)),
            "monthly_installment": Decimal(str(installment)),
            "duration_months": int(duration),
            "foreman_commission_rate": Decimal(str(commission_pct)) / Decimal("100"),
            "start_date": start_date,
            "status": status,
        }
        try:
            if editing:
                candidate = ChitFund(**{**fund.model_dump(), **values})
            else:
                candidate = ChitFund(**values)
        except ValueError as e:
            st.error(f"Please check the fund details: {e}")
            return

        correlation_id = create_correlation_id()
        if editing:
            saved, result = run_async(service.update_fund(candidate, correlation_id=correlation_id))
        else:
            saved, result = run_async(service.create_fund(candidate, correlation_id=correlation_id))

        if saved is None:
            for issue in result.issues:
                if issue.severity == "error":
                    st.error(f"{issue.message}. {issue.suggested_fix or ''}")
            return

        message = f"Saved {saved.name}"
        if result.warnings:
            flash("warning", message + "\n\n" + "\n\n".join(result.warnings))
        else:
            flash("success", message)
        st.rerun()


def render_fund_delete(service: ChitFundService, fund: ChitFund, months_recorded: int):
    """Delete a fund and its auctions after confirmation."""
    confirm = st.checkbox(
        f"Yes, delete {fund.name} and its {months_recorded} auction record(s). "
        "This action cannot be undone.",
        key=f"confirm_delete_fund_{fund.id}",
    )
    if st.button("Delete Chit Fund", key=f"delete_fund_{fund.id}", disabled=not confirm):
        removed = run_async(service.delete_fund(fund.id))
        flash("success", f"Deleted {fund.name} ({removed} auction record(s) removed)")
        st.rerun()


def render_fund_list(service: ChitFundService, funds: list[ChitFund]):
    """Render every fund as a card with its headline figures."""
    st.title("Chit Fund Manager")
    with st.expander("➕ Add Chit Fund"):
        render_fund_form(service)

    if not funds:
        st.info("No Chit Funds Tracked. Get started by adding your first chit fund.")
        return

    columns = st.columns(3)
    for idx, fund in enumerate(funds):
        detail = run_async(service.get_fund_detail(fund.id))
        with columns[idx % 3]:
            st.subheader(fund.name)
            st.caption(fund.status.value.title())
            st.markdown(
                f"**Total Amount:** {money(fund.total_amount)}  \n"
                f"**Installment:** {money(fund.monthly_installment)} /mo  \n"
                f"**Duration:** {fund.duration_months} Months  \n"
                f"**Start Date:** {fund.start_date.strftime('%d %b %Y')}  \n"
                f"**Months Completed:** {detail.summary.months_recorded} / {fund.duration_months}"
            )
            with st.expander("✏️ Edit"):
                render_fund_form(service, fund)
            with st.expander("🗑️ Delete"):
                render_fund_delete(service, fund, detail.summary.months_recorded)


# =============================================================================
# FUND DETAIL & AUCTIONS
# =============================================================================

def render_fund_detail(service: ChitFundService, fund_id):
    """Summary cards, financial overview and auction history for one fund."""
    detail = run_async(service.get_fund_detail(fund_id))
    fund, summary = detail.fund, detail.summary

    st.title(f"{fund.name} Details")

    col1, col2, col3 = st.columns(3)
    col1.metric("Total Chit Value", money(fund.total_amount))
    col2.metric("Months Completed", f"{summary.months_recorded} / {fund.duration_months}")
    col3.metric("User Status", "✅ Prized" if summary.user_prized else "⏳ Pending")

    st.markdown("### Financial Overview (Your Perspective)")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Paid (Net)", money(summary.total_user_contribution))
    col2.metric("Total Dividend Earned", money(summary.total_user_dividend))
    col3.metric("Total Prize Received", money(summary.total_user_prize))
    col4.metric("Total Commission Paid", money(summary.total_foreman_commission))

    st.markdown(f"### Auction History ({summary.months_recorded} recorded)")
    if not detail.schedule:
        st.info("No auctions recorded yet.")
    else:
        by_id = {a.id: a for a in detail.auctions}
        rows = []
        for metrics in detail.schedule:
            auction = by_id[metrics.auction_id]
            rows.append({
                "Month": metrics.month_number,
                "Date": auction.auction_date.strftime("%d %b %Y"),
                "Discount (Bid)": money(auction.discount_amount),
                "Prize Amount": money(metrics.prize_amount),
                "Dividend / Member": money(metrics.dividend_per_member),
                "Your Net Contribution": money(
                    metrics.cash_out if metrics.is_user_prized else metrics.net_contribution
                ),
                "Winner": auction.prized_subscriber_name + (" (You)" if auction.is_user_prized else ""),
            })
        st.dataframe(rows, hide_index=True, use_container_width=True)

        if any(m.is_abnormal for m in detail.schedule):
            st.warning("Some months have a negative dividend: the commission exceeded the bid.")

    render_auction_form(service, fund, detail.auctions)
    render_auction_edit(service, fund, detail.auctions)
    render_auction_delete(service, detail.auctions)


def report_auction_result(service: ChitFundService, saved, result, verb: str) -> None:
    """Show a rejection in place; queue anything else and rerun."""
    message = service.auction_validator.get_user_friendly_summary(result)
    if result.status == AdmissionStatus.REJECTED:
        st.error(message)
        return
    if result.status == AdmissionStatus.ACCEPTED_WITH_WARNING:
        flash("warning", message)
    else:
        flash("success", f"Auction for Month {saved.month_number} {verb}.")
    st.rerun()


def auction_fields(fund: ChitFund, months: list[int], auction: Optional[AuctionRecord] = None) -> dict:
    """Inputs shared by the record and edit forms."""
    col1, col2 = st.columns(2)
    with col1:
        month_number = st.selectbox(
            "Month Number",
            options=months,
            index=months.index(auction.month_number) if auction else 0,
            format_func=lambda m: f"Month {m}",
        )
        discount = st.number_input(
            "Total Discount/Bid Amount", min_value=0.0, step=100.0,
            value=float(auction.discount_amount) if auction else 0.0,
            help="This is the total amount deducted from the Chit Value.",
        )
    with col2:
        auction_date = st.date_input(
            "Auction Date",
            value=auction.auction_date if auction else fund.expected_auction_date(months[0]),
        )
        winner = st.text_input(
            "Prized Subscriber Name *",
            value=auction.prized_subscriber_name if auction else "",
        )
    is_user_prized = st.checkbox(
        "I was the Prized Subscriber this month",
        value=auction.is_user_prized if auction else False,
    )
    return {
        "month_number": int(month_number),
        "auction_date": auction_date,
        "discount_amount": Decimal(str(discount)),
        "prized_subscriber_name": winner,
        "is_user_prized": is_user_prized,
    }


def render_auction_form(service: ChitFundService, fund: ChitFund, auctions: list[AuctionRecord]):
    """Record a new auction; warnings are shown after the save."""
    summary_full = len(auctions) >= fund.duration_months
    if summary_full:
        st.info("All auction months have been recorded.")
    months = available_months(fund, auctions)

    with st.expander("➕ Record Auction", expanded=False):
        if summary_full or not months:
            st.caption("Edit or delete an existing month instead.")
            return

        with st.form(f"record_auction_{fund.id}"):
            values = auction_fields(fund, months)

            if st.form_submit_button("Record Auction", type="primary"):
                candidate = AuctionRecord(chit_fund_id=fund.id, **values)
                saved, result = run_async(
                    service.record_auction(candidate, correlation_id=create_correlation_id())
                )
                report_auction_result(service, saved, result, "recorded")


def render_auction_edit(service: ChitFundService, fund: ChitFund, auctions: list[AuctionRecord]):
    """Edit one recorded auction; its own month stays selectable."""
    if not auctions:
        return

    with st.expander("✏️ Edit Auction"):
        auction = st.selectbox(
            "Auction to edit",
            options=auctions,
            format_func=lambda a: f"Month {a.month_number} - {a.prized_subscriber_name}",
            key=f"edit_auction_pick_{fund.id}",
        )
        months = available_months(fund, auctions, editing=auction.id)

        with st.form(f"edit_auction_{auction.id}"):
            values = auction_fields(fund, months, auction)

            if st.form_submit_button("Save Changes", type="primary"):
                candidate = auction.model_copy(update=values)
                saved, result = run_async(
                    service.update_auction(candidate, correlation_id=create_correlation_id())
                )
                report_auction_result(service, saved, result, "updated")


def render_auction_delete(service: ChitFundService, auctions: list[AuctionRecord]):
    """Delete one auction record after confirmation."""
    if not auctions:
        return

    with st.expander("🗑️ Delete Auction"):
        target = st.selectbox(
            "Auction to delete",
            options=auctions,
            format_func=lambda a: f"Month {a.month_number} - {a.prized_subscriber_name}",
        )
        confirm = st.checkbox("Yes, delete this record. This action cannot be undone.")
        if st.button("Delete", disabled=not confirm):
            run_async(service.delete_auction(target.id))
            flash("success", f"Deleted the auction for Month {target.month_number}")
            st.rerun()


if __name__ == "__main__":
    main()
