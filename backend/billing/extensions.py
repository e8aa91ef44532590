# Overview: Flask extension instances for the billing database and its migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# SQLite cannot ALTER most constraints in place; autogenerate emits batch operations
migrate = Migrate(render_as_batch=True, compare_type=True)
