import logging
from pathlib import Path

from flask import Flask, send_from_directory
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_marshmallow import Marshmallow

jwt = JWTManager()
bcrypt = Bcrypt()
ma = Marshmallow()


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)


def create_app(config_object='storefront.config.Config', **overrides):
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_object)
    app.config.update(overrides)
    configure_logging(app)

    # Initialize extensions
    jwt.init_app(app)
    CORS(app)
    bcrypt.init_app(app)
    ma.init_app(app)

    from storefront.errors import register_error_handlers
    from storefront.utils.auth import register_jwt_callbacks
    register_error_handlers(app)
    register_jwt_callbacks(jwt)

    # Storage, ledger and provider clients, shared by every request
    from storefront.services import init_services
    init_services(app)

    with app.app_context():
        from storefront.data_setup import initialize_storage, register_cli_commands

        # Register CLI commands
        register_cli_commands(app)

        # Make sure the data directories exist before the first request
        initialize_storage(app)

    # Register blueprints
    from storefront.routes.auth import auth_bp
    from storefront.routes.products import products_bp
    from storefront.routes.orders import orders_bp
    from storefront.routes.affiliate import affiliate_bp
    from storefront.routes.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(affiliate_bp, url_prefix='/affiliate')
    app.register_blueprint(admin_bp, url_prefix='/admin')

    media_dir = Path(app.config['MEDIA_DIR']).resolve()

    @app.route('/media/<path:filename>')
    def serve_media(filename):
        return send_from_directory(media_dir, filename)

    # thumbnails are served as the full-size file
    @app.route('/media/thumbnail/<filename>')
    def serve_thumbnail(filename):
        return send_from_directory(media_dir, filename)

    @app.route('/api/health')
    def health_check():
        return {
            'status': 'healthy',
            'message': 'Storefront API is running!',
            'version': '1.0.0'
        }, 200

    app.logger.info('Storefront ready (data: %s, media: %s)', app.config['DATA_DIR'], media_dir)
    return app
