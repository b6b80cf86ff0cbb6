import os

from storefront import create_app


def check_environment(app):
    """Warn about secrets still on their development fallbacks"""
    warnings = []
    if not os.getenv('ENCRYPT_KEY'):
        warnings.append('ENCRYPT_KEY is not set, records are encrypted with the development key')
    if not (os.getenv('JWT_SECRET') or os.getenv('JWT_SECRET_KEY')):
        warnings.append('JWT_SECRET is not set, tokens are signed with the fallback secret')
    if not app.config.get('STRIPE_SECRET_KEY'):
        warnings.append('STRIPE_SECRET not set, Stripe disabled')
    if not app.config.get('EASYPOST_API_KEY'):
        warnings.append('EASYPOST_API_KEY not set, shipping previews disabled')

    for message in warnings:
        app.logger.warning(message)
    return not warnings


if __name__ == '__main__':
    app = create_app()
    check_environment(app)

    port = int(os.getenv('PORT', 5000))
    app.logger.info('Server running on http://localhost:%s', port)
    app.logger.info('Media served at http://localhost:%s/media', port)
    app.run(host='0.0.0.0', port=port, debug=os.getenv('FLASK_DEBUG') == '1')
