# main.py
from decimal import Decimal
from functools import lru_cache

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from erc20_utils import format_amount
from errors import NotFoundError, PaymentVerificationError, ProviderError, TreasuryError
from log_utils import get_logger
from payment_service import PaymentService, build_payment_service

logger = get_logger(__name__)

app = FastAPI(title="Token Payment Verifier")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class VerifyRequest(BaseModel):
    tx_hash: str
    expected_amount: Decimal = Field(ge=0)  # human units, e.g. "0.01" USDC


@lru_cache
def _payment_service() -> PaymentService:
    return build_payment_service()


def get_payment_service() -> PaymentService:
    # a failed setup is not cached, the next request tries again
    try:
        return _payment_service()
    except PaymentVerificationError as e:
        logger.error(f"Payment service setup failed: {e.message}")
        raise HTTPException(status_code=503, detail={"msg": "Payment service unavailable", "error": e.message})


@app.get("/")
def root():
    return {"msg": "payment verifier running"}


@app.post("/verify")
def verify_endpoint(req: VerifyRequest, service: PaymentService = Depends(get_payment_service)):
    """
    200 with the verdict whether or not the payment matched.
    404 when the hash is malformed or unknown, 502/504 when the chain
    provider failed, so a fault is never reported as "not paid".
    """
    try:
        result = service.verifier.verify(req.tx_hash, req.expected_amount)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail={"msg": "Transaction not found", "error": e.message})
    except ProviderError as e:
        raise HTTPException(
            status_code=504 if e.cancelled else 502,
            detail={"msg": "Chain provider unavailable", "error": e.message},
        )

    body = result.to_dict()
    body["expected_amount"] = format_amount(req.expected_amount)
    body["treasury"] = service.treasury_address
    body["explorer_url"] = service.settings.tx_url(result.transaction_id)
    return body


@app.get("/treasury")
def treasury_endpoint(service: PaymentService = Depends(get_payment_service)):
    try:
        balances = service.holdings()
    except TreasuryError as e:
        raise HTTPException(status_code=502, detail={"msg": "Treasury lookup failed", "error": e.message})

    return {
        "address": service.treasury_address,
        "network": service.settings.network,
        "balances": [
            {"token": b.token, "symbol": b.symbol, "amount": format_amount(b.amount)}
            for b in balances
        ],
    }


if __name__ == "__main__":
    print("🚀 Payment verifier starting (Port: 9000)...")
    uvicorn.run(app, host="0.0.0.0", port=9000)
