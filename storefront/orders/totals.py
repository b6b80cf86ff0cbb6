from decimal import Decimal

from storefront.utils.helpers import to_decimal, to_money

TAX_RATE = Decimal('0.08')
SHIPPING_FLAT = Decimal('9.99')
FREE_SHIPPING_THRESHOLD = Decimal('100')


def commission_base(items):
    """Sum of price x quantity over the line items, before promos, tax or shipping."""
    return sum(
        (to_decimal(item.get('price')) * int(item.get('quantity') or 0) for item in items),
        Decimal('0')
    )


def checkout_subtotal(items):
    total = Decimal('0')
    for item in items:
        price = item.get('promoPrice') or item.get('price')
        total += to_decimal(price) * int(item.get('quantity') or 0)
    return total


def checkout_totals(items):
    subtotal = checkout_subtotal(items)
    shipping = Decimal('0') if subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_FLAT
    tax = subtotal * TAX_RATE
    return {
        'subtotal': float(to_money(subtotal)),
        'shipping': float(to_money(shipping)),
        'tax': float(to_money(tax)),
        'total': float(to_money(subtotal + shipping + tax))
    }
