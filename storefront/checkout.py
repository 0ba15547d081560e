from storefront.errors import ApiError, GatewayUnavailable, InsufficientStock, NotFoundError
from storefront.ledger import OrderLedger
from storefront.models import Product
from storefront.pricing import compute_totals
from storefront.verification import PaymentClaim, PaymentVerifier


def create_payment_intent(context, session, product_id: int, quantity: int = 1, shipping_charge=0) -> dict:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product")
    if product.stock < quantity:
        raise InsufficientStock()

    totals = compute_totals(product, quantity, shipping_charge)
    try:
        gateway_order = context.gateway.create_order(
            amount=totals.amount_subunits,
            currency=context.settings.currency,
            notes={
                "productId": product.id,
                "productName": product.name,
                "quantity": quantity,
                "shippingCharge": totals.shipping_charge,
            },
        )
    except GatewayUnavailable as exc:
        raise ApiError("Error creating payment order", status_code=502, code="gateway_error") from exc

    return {
        "gatewayOrderId": gateway_order.id,
        "amount": gateway_order.amount,
        "currency": gateway_order.currency,
        "product": {
            "id": product.id,
            "name": product.name,
            "price": float(totals.unit_price),
            "image": product.image,
        },
        "subtotal": float(totals.subtotal),
        "shippingCharge": float(totals.shipping_charge),
        "totalAmount": float(totals.total_amount),
    }


def verify_and_create_order(context, session, request):
    """Verify the payment claim and commit the order.

    Returns ``(order, created)``. The confirmation email is only dispatched
    for freshly created orders and is never waited on.
    """
    verifier = PaymentVerifier(context.gateway, context.settings.payment_signing_secret)
    claim = PaymentClaim(
        gateway_order_id=request.gateway_order_id,
        gateway_payment_id=request.gateway_payment_id,
        signature=request.signature,
    )
    verified = verifier.verify(session, claim, request.product_id, request.quantity, request.shipping_charge)

    order, created = OrderLedger(session).create(
        verified,
        customer=request.customer,
        shipping_address=request.shipping_address,
        courier_name=request.courier_name,
    )
    if created:
        context.dispatcher.dispatch(order)
    return order, created
