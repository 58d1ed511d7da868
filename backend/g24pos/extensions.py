# Overview: Shared SQLAlchemy and Alembic handles, bound to the app in create_app().

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# SQLite cannot ALTER most constraints in place; autogenerate batch operations
migrate = Migrate(render_as_batch=True)
