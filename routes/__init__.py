"""
Flask route blueprints for the Inkwell storefront.

This module contains all route handlers organized by pipeline step:
- main: Home redirect and health check
- draft: Order form and running totals
- preview: Story preview and edit
- finalize: Payment page and payment callbacks
- confirmation: Order confirmation and start-over
- api: Collaborator services (story, payment session, order recording)

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .draft import draft_bp
from .preview import preview_bp
from .finalize import finalize_bp
from .confirmation import confirmation_bp
from .api import api_bp

__all__ = [
    "main_bp",
    "draft_bp",
    "preview_bp",
    "finalize_bp",
    "confirmation_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(draft_bp)
    app.register_blueprint(preview_bp)
    app.register_blueprint(finalize_bp)
    app.register_blueprint(confirmation_bp)
    app.register_blueprint(api_bp)
