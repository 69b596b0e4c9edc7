"""Routes package for the forum translator."""


def register_routes(app):
    """Register all route blueprints with the application."""
    from .translations import translations_bp
    from .admin import admin_bp
    
    app.register_blueprint(translations_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin/translations')
