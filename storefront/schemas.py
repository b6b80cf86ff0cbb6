import copy

from marshmallow import EXCLUDE, INCLUDE, fields, pre_load, validate

from storefront import ma

ROLES = ('user', 'admin', 'affiliate')
PAYOUT_SCHEDULES = ('weekly', 'biweekly', 'monthly')
SUPPLEMENTS = 'supplements'

EMPTY_HEALTH = {'ingredients': [], 'dosage': '', 'form': '', 'allergens': []}
EMPTY_VARIANT_IMAGES = {'color': {}, 'size': {}}


def _split_list(value):
    """Accept ``"S, M,L"`` as well as ``["S", "M", "L"]``."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    if isinstance(value, (list, tuple)):
        return [item for item in value if not (isinstance(item, str) and not item.strip())]
    return []


def _blank_to_none(data, names):
    for name in names:
        if name in data and data[name] in ('', None):
            data[name] = None
    return data


# ------------------ AUTH ------------------

class RegisterSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, validate=validate.Length(min=6))
    roleRequested = fields.String(load_default='user', validate=validate.OneOf(ROLES))

    @pre_load
    def default_role(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        if 'roleRequested' in data and data['roleRequested'] is None:
            data = dict(data, roleRequested='user')
        return data


class LoginSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.String(required=True)
    password = fields.String(required=True)
    roleRequested = fields.String(load_default=None, allow_none=True)


# ------------------ PRODUCTS ------------------

class ProductOptionsSchema(ma.Schema):
    class Meta:
        unknown = INCLUDE

    sizes = fields.List(fields.String(), load_default=list)
    colors = fields.List(fields.String(), load_default=list)

    @pre_load
    def split_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ('sizes', 'colors'):
            if key in data:
                data[key] = _split_list(data[key])
        return data


class HealthSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    ingredients = fields.List(fields.String(), load_default=list)
    dosage = fields.String(load_default='')
    form = fields.String(load_default='')
    allergens = fields.List(fields.String(), load_default=list)

    @pre_load
    def fill_blanks(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ('ingredients', 'allergens'):
            if key in data:
                data[key] = _split_list(data[key])
        for key in ('dosage', 'form'):
            if data.get(key) is None and key in data:
                data[key] = ''
        return data


class ProductSchema(ma.Schema):
    """Normalizes admin product payloads: numbers from strings, nested defaults."""

    class Meta:
        unknown = INCLUDE

    id = fields.Integer(dump_only=True)
    name = fields.String(required=True, validate=validate.Length(min=1))
    type = fields.String(load_default='')
    category = fields.String(load_default='')
    description = fields.String(load_default='')
    price = fields.Float(required=True, validate=validate.Range(min=0))
    promoPrice = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    weight = fields.Float(load_default=0, validate=validate.Range(min=0))
    estimatedShipping = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    options = fields.Nested(ProductOptionsSchema, load_default=lambda: {'sizes': [], 'colors': []})
    health = fields.Nested(HealthSchema, load_default=None, allow_none=True)
    variantImages = fields.Dict(load_default=lambda: copy.deepcopy(EMPTY_VARIANT_IMAGES))
    images = fields.List(fields.String(), load_default=list)

    @pre_load
    def blank_numbers(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = _blank_to_none(dict(data), ('promoPrice', 'estimatedShipping'))
        for key in ('weight', 'price'):
            if data.get(key) in ('', None) and key in data:
                data.pop(key)
        for key in ('id', 'createdAt', 'updatedAt'):
            data.pop(key, None)
        return data


def normalize_product(product):
    """Fill the nested blocks every stored product carries."""
    options = product.get('options') or {}
    product['options'] = {
        **options,
        'sizes': _split_list(options.get('sizes')),
        'colors': _split_list(options.get('colors')),
    }
    if product.get('category') == SUPPLEMENTS and product.get('health'):
        product['health'] = {**EMPTY_HEALTH, **product['health']}
    else:
        product['health'] = copy.deepcopy(EMPTY_HEALTH)
    product['variantImages'] = product.get('variantImages') or copy.deepcopy(EMPTY_VARIANT_IMAGES)
    product.setdefault('images', [])
    return product


# ------------------ ORDERS ------------------

class OrderItemSchema(ma.Schema):
    class Meta:
        unknown = INCLUDE

    price = fields.Float(required=True, validate=validate.Range(min=0))
    promoPrice = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    quantity = fields.Integer(required=True, validate=validate.Range(min=1))

    @pre_load
    def blank_promo(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return _blank_to_none(dict(data), ('promoPrice',))


class OrderSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    items = fields.List(fields.Nested(OrderItemSchema), required=True, validate=validate.Length(min=1))
    address = fields.Dict(load_default=dict)
    email = fields.Email(load_default=None, allow_none=True)
    paymentMethod = fields.String(load_default='card')
    paymentIntentId = fields.String(load_default=None, allow_none=True)
    notes = fields.String(load_default='')

    @pre_load
    def cart_as_items(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # the checkout page posts its line items as "cart"
        if 'items' not in data and 'cart' in data:
            data['items'] = data['cart']
        return data


class PaymentIntentSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    amount = fields.Float(required=True, validate=validate.Range(min=1))
    currency = fields.String(load_default='usd', validate=validate.Length(equal=3))


class ShippingPreviewSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    weight = fields.Float(required=True, validate=validate.Range(min=0, min_inclusive=False))
    fromZip = fields.String(load_default='90210')
    toZip = fields.String(load_default='10001')


# ------------------ AFFILIATES ------------------

class CommissionRateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    # bounds are enforced by the ledger so the error is an InvalidRateError
    rate = fields.Raw(required=True)


class AffiliateSettingsSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    defaultRate = fields.Float(validate=validate.Range(min=0, max=1, min_inclusive=False))
    minimumPayout = fields.Float(validate=validate.Range(min=0))
    payoutSchedule = fields.String(validate=validate.OneOf(PAYOUT_SCHEDULES))
    cookieDuration = fields.Integer(validate=validate.Range(min=1))
    terms = fields.String()

    @pre_load
    def accept_rate_alias(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if 'rate' in data and 'defaultRate' not in data:
            data['defaultRate'] = data.pop('rate')
        return data


register_schema = RegisterSchema()
login_schema = LoginSchema()
product_schema = ProductSchema()
order_schema = OrderSchema()
payment_intent_schema = PaymentIntentSchema()
shipping_preview_schema = ShippingPreviewSchema()
commission_rate_schema = CommissionRateSchema()
affiliate_settings_schema = AffiliateSettingsSchema()
