"""
Payment routes: checkout, raw session initiation, payout recipients and banks
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_checkout_service, get_paystack_client, get_recipient_service
from ..schemas.payment import (
    BankListResponse,
    PaymentInitRequest,
    PaymentInitResponse,
    PaymentSessionResponse,
    RecipientCreate,
    RecipientResponse,
)
from ..schemas.transaction import (
    CheckoutCartRequest,
    CheckoutResponse,
    CheckoutSingleRequest,
    TransactionResponse,
)
from ..services.checkout import CheckoutResult, CheckoutService
from ..services.recipients import RecipientService
from ..utils.paystack import PaystackClient

router = APIRouter(tags=["Payments"])


def _checkout_response(result: CheckoutResult) -> CheckoutResponse:
    return CheckoutResponse(
        authorization_url=result.authorization_url,
        reference=result.reference,
        amount_subunits=result.amount_subunits,
        transactions=[TransactionResponse.model_validate(t) for t in result.transactions],
    )


@router.post("/checkout/single", response_model=CheckoutResponse)
def checkout_single(request: CheckoutSingleRequest, checkout: CheckoutService = Depends(get_checkout_service)):
    """Create a transaction for one listing and start its payment"""
    result = checkout.checkout_single(request.buyer_id, request.product_id, request.email, request.callback_url)
    return _checkout_response(result)


@router.post("/checkout/cart", response_model=CheckoutResponse)
def checkout_cart(request: CheckoutCartRequest, checkout: CheckoutService = Depends(get_checkout_service)):
    """Create one transaction per seller in the cart and start a single payment"""
    result = checkout.checkout_cart(request.buyer_id, request.email, request.callback_url)
    return _checkout_response(result)


@router.post("/paystack-init", response_model=PaymentInitResponse)
def paystack_init(request: PaymentInitRequest, gateway: PaystackClient = Depends(get_paystack_client)):
    """
    Start a Paystack session for a caller-managed transaction.

    The caller must store the returned reference on its transaction(s)
    before sending the payer to the authorization URL.
    """
    session = gateway.initialize_session(
        amount_subunits=request.amount,
        email=request.email,
        metadata=request.metadata,
        callback_url=request.callback_url,
    )
    return PaymentInitResponse(data=PaymentSessionResponse(
        authorization_url=session.authorization_url,
        reference=session.reference,
        access_code=session.access_code,
    ))


@router.post("/paystack-recipient", response_model=RecipientResponse)
def paystack_recipient(request: RecipientCreate, recipients: RecipientService = Depends(get_recipient_service)):
    """Register (or replace) the seller's payout bank account"""
    recipient_code = recipients.register(
        request.user_id,
        request.bank_code,
        request.account_number,
        request.account_name,
    )
    return RecipientResponse(recipient_code=recipient_code)


@router.get("/paystack-banks", response_model=BankListResponse)
def paystack_banks(recipients: RecipientService = Depends(get_recipient_service)):
    return {"data": recipients.list_banks()}
