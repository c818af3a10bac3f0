"""
Escrow transaction routes: party views, delivery confirmations, payout and admin closes
"""

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_escrow_service, require_admin_key
from ..models.transaction import Transaction
from ..schemas.transaction import (
    ConfirmationRequest,
    ConfirmationResponse,
    PayoutRequest,
    PayoutResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionSummary,
)
from ..services.escrow import EscrowService, Party

router = APIRouter(tags=["Transactions"])


def _confirmation_response(outcome) -> ConfirmationResponse:
    return ConfirmationResponse(
        transaction=TransactionResponse.model_validate(outcome.transaction),
        payout_error=outcome.payout_error,
    )


@router.post("/confirm-buyer", response_model=ConfirmationResponse)
def confirm_buyer(request: ConfirmationRequest, escrow: EscrowService = Depends(get_escrow_service)):
    """
    Buyer confirms the item was received.

    Releases funds when the seller has already confirmed delivery.
    """
    outcome = escrow.confirm(request.transaction_id, request.user_id, Party.BUYER)
    return _confirmation_response(outcome)


@router.post("/confirm-seller", response_model=ConfirmationResponse)
def confirm_seller(request: ConfirmationRequest, escrow: EscrowService = Depends(get_escrow_service)):
    """
    Seller confirms the item was delivered.

    Releases funds when the buyer has already confirmed receipt.
    """
    outcome = escrow.confirm(request.transaction_id, request.user_id, Party.SELLER)
    return _confirmation_response(outcome)


@router.post("/paystack-payout", response_model=PayoutResponse, dependencies=[Depends(require_admin_key)])
def release_payout(request: PayoutRequest, escrow: EscrowService = Depends(get_escrow_service)):
    """Retry a seller payout for a fully confirmed transaction"""
    outcome = escrow.release_funds(request.transaction_id)
    return PayoutResponse(
        transfer=outcome.transfer,
        transaction=TransactionResponse.model_validate(outcome.transaction),
    )


def _summary(transaction: Transaction, role: Party) -> TransactionSummary:
    counterparty = transaction.seller if role == Party.BUYER else transaction.buyer
    counterparty_id = transaction.seller_id if role == Party.BUYER else transaction.buyer_id
    fallback_name = "Seller" if role == Party.BUYER else "Buyer"
    product = transaction.product
    return TransactionSummary(
        id=transaction.id,
        product_id=transaction.product_id,
        product_title=product.title if product else "Untitled product",
        price=float(product.price) if product and product.price is not None else None,
        amount=float(transaction.amount),
        counterparty_id=counterparty_id,
        counterparty_name=(counterparty.name or counterparty.email or fallback_name) if counterparty else fallback_name,
        status=transaction.status,
        buyer_confirmed=bool(transaction.buyer_confirmed),
        seller_confirmed=bool(transaction.seller_confirmed),
        created_at=transaction.created_at,
    )


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    user_id: str = Query(..., min_length=1),
    role: Party = Query(...),
    limit: int = Query(20, ge=1, le=100),
    escrow: EscrowService = Depends(get_escrow_service),
):
    """
    A user's sales (role=seller) or purchases (role=buyer), newest first.

    Each row shows both confirmation flags so the app can prompt whoever
    still has to confirm.
    """
    transactions = escrow.store.list_for_party(user_id, role.value, limit=limit)
    return TransactionListResponse(
        transactions=[_summary(t, role) for t in transactions],
        completed_count=escrow.store.count_completed_for_party(user_id, role.value),
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    user_id: str = Query(..., min_length=1),
    escrow: EscrowService = Depends(get_escrow_service),
):
    """Transaction detail, visible to its buyer and seller only"""
    return escrow.get_for_party(transaction_id, user_id)


@router.post(
    "/transactions/{transaction_id}/cancel",
    response_model=TransactionResponse,
    dependencies=[Depends(require_admin_key)],
)
def cancel_transaction(transaction_id: str, escrow: EscrowService = Depends(get_escrow_service)):
    """Cancel a transaction that has not reached a terminal status (admin only)"""
    return escrow.cancel(transaction_id)


@router.post(
    "/transactions/{transaction_id}/refund",
    response_model=TransactionResponse,
    dependencies=[Depends(require_admin_key)],
)
def refund_transaction(transaction_id: str, escrow: EscrowService = Depends(get_escrow_service)):
    """Mark a transaction refunded (admin only)"""
    return escrow.refund(transaction_id)
