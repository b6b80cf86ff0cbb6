from flask import request

from storefront.errors import ValidationError


def load_json(schema, partial=False):
    """Validate the JSON body through schema; marshmallow errors become 400s."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be JSON')
    return schema.load(data, partial=partial)


def public_user(user):
    return {k: v for k, v in user.items() if k != 'password'}
