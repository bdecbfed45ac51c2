# extensions.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

# Bound to the app inside create_app()
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
