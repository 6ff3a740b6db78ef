from flask import Flask
from flask_cors import CORS
from models import db
from flask_migrate import Migrate
from routes import register_blueprints
from flask_jwt_extended import JWTManager
from utils.logging_config import setup_logging
import os

migrate = Migrate()
jwt = JWTManager()


def create_app(test_config=None):
    app = Flask(__name__)

    # -------------------- Config --------------------
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///learnmatch.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-secret-key')
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-jwt-secret-key-change-me-please')
    app.config['FRONTEND_ORIGIN'] = os.getenv('FRONTEND_ORIGIN', 'http://localhost:3000')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    app.config['PROGRESS_MAX_RETRIES'] = int(os.getenv('PROGRESS_MAX_RETRIES', '3'))

    if test_config:
        app.config.update(test_config)

    setup_logging(app.config['LOG_LEVEL'])

    # -------------------- CORS --------------------
    CORS(
        app,
        resources={r"/*": {"origins": app.config['FRONTEND_ORIGIN']}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "OPTIONS"]
    )

    # -------------------- Extensions --------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # -------------------- Blueprints --------------------
    register_blueprints(app)

    @app.route("/")
    def home():
        return {"message": "Backend running!"}

    return app


app = create_app()

if __name__ == "__main__":
    app.run(port=5555, debug=True, threaded=True)
