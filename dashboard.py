# dashboard.py
import streamlit as st

from erc20_utils import as_decimal, format_amount
from errors import NotFoundError, PaymentVerificationError, ProviderError
from payment_service import build_payment_service

st.set_page_config(page_title="Payment Verifier")

st.title("Treasury payment check")


@st.cache_resource
def load_service():
    return build_payment_service()


try:
    service = load_service()
except PaymentVerificationError as e:
    st.error(f"Setup failed: {e.message}")
    st.stop()

st.caption(f"Treasury: `{service.treasury_address}` on {service.settings.network}")

with st.form("verify"):
    tx_hash = st.text_input("Transaction hash", placeholder="0x...")
    amount = st.text_input("Expected amount", value="0.01")
    submitted = st.form_submit_button("Verify")

if submitted:
    try:
        expected = as_decimal(amount)
    except ValueError as e:
        st.error(str(e))
        st.stop()

    with st.spinner("Fetching receipt..."):
        try:
            result = service.verifier.verify(tx_hash, expected)
        except NotFoundError as e:
            st.error(f"Transaction not found: {e.message}")
            st.stop()
        except ProviderError as e:
            st.error(f"Chain provider unavailable: {e.message}")
            st.stop()

    if result.verified:
        st.success(f"Verified: {format_amount(expected)} received")
    elif result.reverted:
        st.error("Transaction failed or reverted")
    elif result.observed_amounts:
        seen = ", ".join(format_amount(a) for a in result.observed_amounts)
        st.warning(f"Mismatch: expected {format_amount(expected)}, got {seen}")
    else:
        st.warning("No token transfer to the treasury in this transaction")

    url = service.settings.tx_url(result.transaction_id)
    if url:
        st.markdown(f"[View on explorer]({url})")

st.subheader("Holdings")
try:
    balances = service.holdings()
except PaymentVerificationError as e:
    st.warning(f"Could not list holdings: {e.message}")
else:
    st.table([{"token": b.symbol or b.token, "amount": format_amount(b.amount)} for b in balances])
