from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

# tax is included in the catalog price
TAX = Decimal("0")


@dataclass(frozen=True)
class Totals:
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    shipping_charge: Decimal
    tax: Decimal
    total_amount: Decimal

    @property
    def amount_subunits(self) -> int:
        """Total in the smallest currency unit (paise, cents), rounded half-up."""
        return int((self.total_amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(product, quantity: int, shipping_charge) -> Totals:
    unit_price = Decimal(str(product.unit_price))
    shipping = Decimal(str(shipping_charge or 0))
    subtotal = unit_price * quantity
    return Totals(
        unit_price=unit_price,
        quantity=quantity,
        subtotal=subtotal,
        shipping_charge=shipping,
        tax=TAX,
        total_amount=subtotal + shipping + TAX,
    )
