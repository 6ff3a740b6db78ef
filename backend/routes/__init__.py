from .progress import progress_bp
from .badges import badges_bp


def register_blueprints(app):
    app.register_blueprint(progress_bp, url_prefix="/progress")
    app.register_blueprint(badges_bp, url_prefix="/badges")
